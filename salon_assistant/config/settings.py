"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


LOCATION_MODES = ("ip", "static", "off")


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("SALON_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class PydanticSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 模型后端 ----
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API 密钥")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API 基础URL",
    )
    chat_model: str = Field(
        default="salon-chat",
        description="对话逻辑模型名，由 registry 映射为具体模型",
    )
    transcription_model: str = Field(
        default="salon-transcribe",
        description="语音转写逻辑模型名",
    )

    # ---- 超时 ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="单次 HTTP 请求超时（秒）")
    chat_timeout: float = Field(default=60.0, ge=1.0, description="一次对话发送的总超时（秒）")
    transcription_timeout: float = Field(default=45.0, ge=1.0, description="一次语音转写的总超时（秒）")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 定位 ----
    location_mode: str = Field(default="ip", description="定位方式: ip / static / off")
    static_latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    static_longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    geolocation_url: str = Field(default="https://ipapi.co/json/", description="IP 定位服务地址")

    # ---- 录音 ----
    audio_sample_rate: int = Field(default=16000, ge=8000, le=48000, description="录音采样率")
    audio_channels: int = Field(default=1, ge=1, le=2, description="录音声道数")
    audio_device: Optional[str] = Field(default=None, description="输入设备名称或编号，空则使用系统默认")

    welcome_enabled: bool = Field(default=True, description="启动时是否展示欢迎消息")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("gemini_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("location_mode")
    @classmethod
    def validate_location_mode(cls, v: str) -> str:
        mode = (v or "").strip().lower()
        if mode not in LOCATION_MODES:
            raise ValueError(f"location_mode must be one of {LOCATION_MODES}, got {v!r}")
        return mode

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = PydanticSettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = PydanticSettings
