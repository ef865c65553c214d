from typing import Callable, Iterator, List, Optional, Protocol, Tuple

from .models import Message


class MessageLogView(Protocol):
    """消息日志的只读视图，展示层只依赖这个协议。"""

    def snapshot(self) -> Tuple[Message, ...]:
        ...

    def __len__(self) -> int:
        ...


class MessageLog:
    """只追加、单调增长的消息日志。

    消息一旦追加便不可修改或删除；追加顺序即展示顺序。
    """

    def __init__(self, on_append: Optional[Callable[[Message], None]] = None):
        self._messages: List[Message] = []
        self._on_append = on_append

    def append(self, message: Message) -> None:
        if any(m.id == message.id for m in self._messages):
            raise ValueError(f"Duplicate message id: {message.id}")
        self._messages.append(message)
        if self._on_append is not None:
            self._on_append(message)

    def snapshot(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    def last(self) -> Optional[Message]:
        return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.snapshot())
