"""Provider 抽象接口。

上层 ChatSession / TranscriptionClient 不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- 每个厂商实现一个 ProviderClient（如 GeminiClient）。
- 负责：将 GenerateRequest 转成具体 API 请求，并把响应 JSON 解析为 GenerateResult。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol


@dataclass
class GenerateRequest:
    """一次完整的生成请求。

    contents 沿用后端的多轮结构：[{"role": "user"|"model", "parts": [...]}]，
    由调用方（会话或转写客户端）负责拼装。
    """

    model: str  # 逻辑模型名，如 "salon-chat"（再由 registry 映射为真实模型名）
    contents: List[Dict[str, Any]]
    system_instruction: Optional[str] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tool_config: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None


@dataclass
class GenerateResult:
    """一次生成调用的结果。

    - text: 首个候选回答的纯文本（可能为空字符串）。
    - content: 首个候选回答的原始 content，用于追加到会话历史。
    - raw: 原始响应 JSON，引用来源等信息从这里抽取。
    """

    provider: str
    model: str
    text: str
    content: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。"""

    name: str

    async def generate(self, req: GenerateRequest) -> GenerateResult:
        ...
