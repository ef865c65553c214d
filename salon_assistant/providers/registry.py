"""Provider 与模型配置。

将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：代码里使用的统一名称，例如 "salon-chat"。
- provider_model：厂商实际提供的模型 ID，例如 "gemini-2.5-flash"。
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_output_tokens: Optional[int]
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]


GEMINI_CONFIG = ProviderConfig(
    name="gemini",
    base_url="https://generativelanguage.googleapis.com/v1beta",
    models={
        # 地图检索工具需要 2.5 系列模型
        "salon-chat": ModelConfig(
            logical_name="salon-chat",
            provider_model="gemini-2.5-flash",
            max_output_tokens=None,
            default_temperature=0.7,
        ),
        "salon-transcribe": ModelConfig(
            logical_name="salon-transcribe",
            provider_model="gemini-2.5-flash",
            max_output_tokens=2048,
            default_temperature=0.0,
        ),
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "gemini": GEMINI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_model(cfg: ProviderConfig, logical_name: str) -> ModelConfig:
    """逻辑名未登记时按原样当作厂商模型 ID 使用。"""

    model_cfg = cfg.models.get(logical_name)
    if model_cfg is not None:
        return model_cfg
    return ModelConfig(
        logical_name=logical_name,
        provider_model=logical_name,
        max_output_tokens=None,
        default_temperature=0.7,
    )
