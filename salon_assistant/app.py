"""应用装配模块。

把配置、Provider、会话、转写客户端和录音适配器组装成一个
ConversationOrchestrator。每次调用都会得到全新的对象图，
会话由编排器显式持有，不使用全局变量。
"""

from typing import Optional

from salon_assistant.audio.capture import AudioCaptureAdapter, Microphone
from salon_assistant.config.settings import settings
from salon_assistant.conversation.orchestrator import WELCOME_TEXT, ConversationOrchestrator
from salon_assistant.conversation.session import SessionSlot, create_chat_session
from salon_assistant.providers import create_provider
from salon_assistant.providers.base import ProviderClient
from salon_assistant.speech.transcription import create_transcription_client


def build_orchestrator(
    cfg=settings,
    *,
    provider: Optional[ProviderClient] = None,
    microphone: Optional[Microphone] = None,
) -> ConversationOrchestrator:
    """组装编排器。

    Args:
        cfg: 配置对象，默认使用全局 settings。
        provider: 模型 Provider（可选，测试时可注入假实现）。
        microphone: 麦克风实现（可选，默认使用 sounddevice）。
    """

    provider = provider or create_provider()
    if microphone is None:
        # sounddevice 在导入时加载 PortAudio，只在真正需要时导入
        from salon_assistant.audio.microphone import microphone_from_settings

        microphone = microphone_from_settings(cfg)

    slot = SessionSlot(lambda location: create_chat_session(provider, location, cfg=cfg))
    return ConversationOrchestrator(
        slot,
        create_transcription_client(provider, cfg),
        AudioCaptureAdapter(microphone),
        welcome_text=WELCOME_TEXT if getattr(cfg, "welcome_enabled", True) else None,
    )
