"""Salon Assistant 顶层包。

面向商户的对话助手前端核心：文字/语音输入、远端模型调用、
带检索来源的回复展示，以及串联这一切的对话状态机。
"""

from salon_assistant.app import build_orchestrator
from salon_assistant.conversation.orchestrator import ConversationOrchestrator

__all__ = ["build_orchestrator", "ConversationOrchestrator"]
