"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供具体实现 (gemini_client)。
"""

from typing import Literal, Optional

from salon_assistant.config.settings import settings
from salon_assistant.providers.base import ProviderClient
from salon_assistant.providers.gemini_client import GeminiClient
from salon_assistant.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认使用 gemini。"""

    provider_name = (name or "gemini").lower()
    # 未登记的名称直接报 KeyError
    get_provider_config(provider_name)
    return GeminiClient(settings)


DefaultProviderName = Literal["gemini"]
