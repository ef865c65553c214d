"""对话核心共享的数据模型。

本模块定义了各层之间传递的标准数据结构：

- Message: 消息日志中的一条消息（user/assistant），追加后不可变。
- WebSource / MapSource: 回复附带的引用来源（GroundingChunk 的两个分支）。
- LocationCoords: 会话创建时附带的地理坐标。
- Reply: 对话后端一次回复的统一结构。
- ActivityState: 编排器当前所处的唯一活动状态。
- CapturedAudio: 录音结束后得到的可传输音频。
- Notice: 面向用户的临时提示（不进入消息日志）。
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Optional, Tuple, Union
from uuid import uuid4


# 消息角色：后端协议里的 "model" 在本项目统一称为 assistant
Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class WebSource:
    """网页检索来源。"""

    uri: str
    title: Optional[str] = None
    kind: Literal["web"] = field(default="web", init=False)

    @property
    def display_title(self) -> str:
        return self.title or "Web Source"


@dataclass(frozen=True)
class MapSource:
    """地图检索来源，可附带若干用户评论摘录。"""

    uri: str
    title: Optional[str] = None
    review_snippets: Tuple[str, ...] = ()
    kind: Literal["maps"] = field(default="maps", init=False)

    @property
    def display_title(self) -> str:
        return self.title or "Google Maps"


GroundingChunk = Union[WebSource, MapSource]


@dataclass(frozen=True)
class LocationCoords:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class Message:
    """消息日志中的一条消息。

    - id: 不透明的唯一标识。
    - role: user 或 assistant。
    - text: 原样保存的 UTF-8 文本。
    - created_at: UTC 时间戳。
    - grounding_chunks: 仅 assistant 消息可能携带，None 表示后端未提供来源。
    - is_audio: 用户消息是否来自语音转写。
    """

    role: Role
    text: str
    id: str = field(default_factory=lambda: f"m-{uuid4().hex}")
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    grounding_chunks: Optional[Tuple[GroundingChunk, ...]] = None
    is_audio: bool = False


@dataclass(frozen=True)
class Reply:
    """ChatSession.send 的返回值。raw 保留原始响应 JSON，便于调试。"""

    text: str
    grounding_chunks: Tuple[GroundingChunk, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


class ActivityState(Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    TRANSCRIBING = "TRANSCRIBING"
    THINKING = "THINKING"


@dataclass(frozen=True)
class CapturedAudio:
    """录音结果：base64 编码后的音频与其 MIME 类型。"""

    data: str
    mime_type: str
    size_bytes: int

    @property
    def is_empty(self) -> bool:
        return self.size_bytes == 0


class NoticeKind(Enum):
    NOTHING_UNDERSTOOD = "NOTHING_UNDERSTOOD"
    TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
    MICROPHONE_UNAVAILABLE = "MICROPHONE_UNAVAILABLE"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    text: str
