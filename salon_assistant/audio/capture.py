"""录音适配层。

AudioCaptureAdapter 包装设备麦克风：

1. start_capture: 打开麦克风，并在后台任务中按到达顺序收集音频块。
2. stop_capture: 停止采集，把所有块交给流 finalize 成一个完整的音频文件，
   再转成 base64 以便通过 JSON 传输。

硬件流在 stop_capture 的 finally 中关闭，因此无论 finalize/编码是否失败，
麦克风都恰好释放一次。
"""

import asyncio
import base64
import logging
from typing import AsyncIterator, List, Optional, Protocol, Sequence

from salon_assistant.domain.exceptions import BusinessError, DeviceUnavailable, ValidationError
from salon_assistant.domain.models import CapturedAudio
from salon_assistant.infrastructure.logging.logger import log_event


class CaptureStream(Protocol):
    """一次打开的麦克风流。"""

    mime_type: str

    def chunks(self) -> AsyncIterator[bytes]:
        """按到达顺序产出原始音频块；stop() 之后迭代结束。"""
        ...

    def stop(self) -> None:
        ...

    def finalize(self, chunks: Sequence[bytes]) -> bytes:
        """把收集到的块组装成一个完整的音频文件。"""
        ...

    def close(self) -> None:
        """释放硬件资源。"""
        ...


class Microphone(Protocol):
    async def open(self) -> CaptureStream:
        """申请麦克风。失败时抛出 PermissionDenied 或 DeviceUnavailable。"""
        ...


class AudioCaptureAdapter:
    def __init__(self, microphone: Microphone):
        self._microphone = microphone
        self._stream: Optional[CaptureStream] = None
        self._pump: Optional[asyncio.Task] = None
        self._chunks: List[bytes] = []

    @property
    def is_capturing(self) -> bool:
        return self._stream is not None

    async def start_capture(self) -> None:
        if self._stream is not None:
            raise ValidationError(code="CAPTURE_ACTIVE", message="Audio capture already in progress")
        stream = await self._microphone.open()
        self._chunks = []
        self._stream = stream
        self._pump = asyncio.create_task(self._collect(stream))
        log_event(logging.INFO, "Audio capture started", {}, mime_type=stream.mime_type)

    async def stop_capture(self) -> Optional[CapturedAudio]:
        """结束录音并返回编码后的音频；未在录音时直接返回 None。"""

        stream, pump = self._stream, self._pump
        if stream is None:
            return None
        self._stream = None
        self._pump = None
        try:
            stream.stop()
            if pump is not None:
                await pump
            chunks = list(self._chunks)
            # 没有任何音频块时不生成文件头，保证 CapturedAudio.is_empty 成立
            blob = stream.finalize(chunks) if chunks else b""
            encoded = base64.b64encode(blob).decode("ascii")
        except BusinessError:
            raise
        except Exception as exc:
            log_event(logging.ERROR, "Audio capture finalize failed", {}, error=str(exc))
            raise DeviceUnavailable(code="CAPTURE_FAILED", message=str(exc) or type(exc).__name__) from exc
        finally:
            stream.close()
            self._chunks = []
        log_event(logging.INFO, "Audio capture finished", {}, size_bytes=len(blob), mime_type=stream.mime_type)
        return CapturedAudio(data=encoded, mime_type=stream.mime_type, size_bytes=len(blob))

    async def abort(self) -> None:
        """丢弃正在进行的录音并释放麦克风，用于退出时清理。"""

        stream, pump = self._stream, self._pump
        if stream is None:
            return
        self._stream = None
        self._pump = None
        try:
            stream.stop()
        finally:
            if pump is not None:
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)
            stream.close()
            self._chunks = []
        log_event(logging.INFO, "Audio capture aborted", {}, mime_type=stream.mime_type)

    async def _collect(self, stream: CaptureStream) -> None:
        async for chunk in stream.chunks():
            if chunk:
                self._chunks.append(chunk)
