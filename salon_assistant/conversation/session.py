"""对话会话。

ChatSession 绑定一个远端对话上下文：系统提示词、检索工具以及（可选的）
地理坐标都在创建时确定，之后每次 send 只需传入新的用户文本。

SessionSlot 是整个应用唯一的会话持有者：会话异步创建，创建完成前
调用 send 会立即抛出 SessionNotReady，由编排层决定如何处理。
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from salon_assistant.config.settings import settings
from salon_assistant.conversation.grounding import extract
from salon_assistant.domain.exceptions import BusinessError, PermissionDenied, SendFailed, SessionNotReady
from salon_assistant.domain.models import LocationCoords, Reply
from salon_assistant.infrastructure.logging.logger import log_event
from salon_assistant.prompts import load_system_prompt
from salon_assistant.providers.base import GenerateRequest, ProviderClient


# 后端返回空文本时展示给用户的兜底回复
FALLBACK_REPLY_TEXT = "عفواً، ما فهمت عليك. ممكن تعيد؟"

GROUNDING_TOOLS: List[Dict[str, Any]] = [
    {"googleSearch": {}},
    {"googleMaps": {}},
]


def build_tool_config(location: Optional[LocationCoords]) -> Optional[Dict[str, Any]]:
    """有坐标时生成地图检索所需的 retrievalConfig，否则返回 None。"""

    if location is None:
        return None
    return {
        "retrievalConfig": {
            "latLng": {
                "latitude": location.latitude,
                "longitude": location.longitude,
            }
        }
    }


class ChatSession:
    """一个远端对话上下文的句柄。

    历史轮次由会话自己保存，只有发送成功后才追加；发送失败不会
    破坏会话，调用方可以直接重试或继续使用。
    """

    def __init__(
        self,
        provider: ProviderClient,
        *,
        system_instruction: str,
        location: Optional[LocationCoords] = None,
        model: str = "salon-chat",
        timeout: Optional[float] = None,
    ):
        self.id = f"s-{uuid4().hex}"
        self._provider = provider
        self._system_instruction = system_instruction
        self._location = location
        self._model = model
        self._timeout = timeout
        self._tool_config = build_tool_config(location)
        self._history: List[Dict[str, Any]] = []

    @property
    def location(self) -> Optional[LocationCoords]:
        return self._location

    @property
    def history(self) -> Tuple[Dict[str, Any], ...]:
        return tuple(self._history)

    def build_request(self, text: str) -> GenerateRequest:
        user_turn = {"role": "user", "parts": [{"text": text}]}
        return GenerateRequest(
            model=self._model,
            contents=[*self._history, user_turn],
            system_instruction=self._system_instruction,
            tools=GROUNDING_TOOLS,
            tool_config=self._tool_config,
        )

    async def send(self, text: str) -> Reply:
        """发送一条用户消息并返回带引用来源的回复。

        Raises:
            SendFailed: 网络/后端错误或超时；原始错误保存在 __cause__ 中。
        """

        req = self.build_request(text)
        log_ctx = {"session_id": self.id, "provider": self._provider.name, "model": self._model}
        try:
            if self._timeout:
                result = await asyncio.wait_for(self._provider.generate(req), timeout=self._timeout)
            else:
                result = await self._provider.generate(req)
        except asyncio.TimeoutError as exc:
            log_event(logging.WARNING, "Chat send timed out", log_ctx, timeout=self._timeout)
            raise SendFailed(code="SEND_TIMEOUT", message=f"No reply within {self._timeout}s") from exc
        except BusinessError as exc:
            log_event(logging.WARNING, "Chat send failed", log_ctx, error_code=exc.code, error=exc.message)
            raise SendFailed(
                code="SEND_FAILED",
                message=exc.message,
                http_status=exc.http_status,
                cause_code=exc.code,
            ) from exc

        model_turn = dict(result.content) if result.content else {"parts": [{"text": result.text}]}
        model_turn["role"] = "model"
        self._history.append(req.contents[-1])
        self._history.append(model_turn)

        chunks = tuple(extract(result.raw))
        reply_text = result.text if result.text.strip() else FALLBACK_REPLY_TEXT
        log_event(
            logging.INFO,
            "Chat reply received",
            log_ctx,
            turns=len(self._history) // 2,
            grounding_chunks=len(chunks),
            empty_text=not result.text.strip(),
        )
        return Reply(text=reply_text, grounding_chunks=chunks, raw=result.raw)


def create_chat_session(
    provider: ProviderClient,
    location: Optional[LocationCoords] = None,
    *,
    cfg=settings,
) -> ChatSession:
    """按当前配置创建会话；location 在整个会话生命周期内固定。"""

    return ChatSession(
        provider,
        system_instruction=load_system_prompt(),
        location=location,
        model=getattr(cfg, "chat_model", "salon-chat"),
        timeout=getattr(cfg, "chat_timeout", None),
    )


class SessionSlot:
    """应用内唯一的会话持有者。"""

    def __init__(self, factory: Callable[[Optional[LocationCoords]], ChatSession]):
        self._factory = factory
        self._session: Optional[ChatSession] = None
        self._lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> Optional[ChatSession]:
        return self._session

    def require(self) -> ChatSession:
        if self._session is None:
            raise SessionNotReady(code="SESSION_NOT_READY", message="Chat session is still initializing")
        return self._session

    async def initialize(self, location_provider=None) -> ChatSession:
        """创建会话（仅一次）。定位失败时降级为不带坐标的会话。"""

        async with self._lock:
            if self._session is not None:
                return self._session
            location = await self._resolve_location(location_provider)
            self._session = self._factory(location)
            log_event(
                logging.INFO,
                "Chat session created",
                {"session_id": self._session.id},
                with_location=location is not None,
            )
            return self._session

    @staticmethod
    async def _resolve_location(location_provider) -> Optional[LocationCoords]:
        if location_provider is None:
            return None
        try:
            return await location_provider.locate()
        except PermissionDenied as exc:
            log_event(logging.WARNING, "Geolocation denied, initializing without location", {}, error=exc.message)
        except BusinessError as exc:
            log_event(
                logging.WARNING,
                "Geolocation error, initializing without location",
                {},
                error_code=exc.code,
                error=exc.message,
            )
        return None
