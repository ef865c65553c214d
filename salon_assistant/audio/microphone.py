"""基于 sounddevice (PortAudio) 的麦克风实现。

PortAudio 在自己的线程里回调，这里通过 loop.call_soon_threadsafe 把
每个音频块转交给事件循环上的 asyncio.Queue；stop() 之后放入一个结束
标记，chunks() 迭代随之结束。finalize 把 16-bit PCM 包装成 WAV。
"""

import asyncio
import io
import wave
from typing import AsyncIterator, Optional, Sequence, Union

import sounddevice as sd

from salon_assistant.config.settings import settings
from salon_assistant.domain.exceptions import DeviceUnavailable, PermissionDenied

_END = None
_PERMISSION_HINTS = ("permission", "denied", "not authorized", "not permitted")


def _device_error(exc: Exception):
    text = str(exc)
    if any(hint in text.lower() for hint in _PERMISSION_HINTS):
        return PermissionDenied(code="MICROPHONE_DENIED", message=text)
    return DeviceUnavailable(code="MICROPHONE_UNAVAILABLE", message=text)


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int, sample_width: int = 2) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buf.getvalue()


class SoundDeviceStream:
    mime_type = "audio/wav"

    def __init__(self, sample_rate: int, channels: int, device: Optional[Union[int, str]]):
        self._sample_rate = sample_rate
        self._channels = channels
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._stream = sd.RawInputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="int16",
            device=device,
            callback=self._callback,
        )

    def _callback(self, indata, frames, time_info, status) -> None:
        self._loop.call_soon_threadsafe(self._queue.put_nowait, bytes(indata))

    def start(self) -> None:
        self._stream.start()

    async def chunks(self) -> AsyncIterator[bytes]:
        while True:
            chunk = await self._queue.get()
            if chunk is _END:
                return
            yield chunk

    def stop(self) -> None:
        try:
            self._stream.stop()
        finally:
            # 停止后 PortAudio 不再回调，结束标记一定排在最后一个音频块之后
            self._loop.call_soon_threadsafe(self._queue.put_nowait, _END)

    def finalize(self, chunks: Sequence[bytes]) -> bytes:
        return pcm_to_wav(b"".join(chunks), self._sample_rate, self._channels)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._stream.close()


class SoundDeviceMicrophone:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[Union[int, str]] = None,
    ):
        self._sample_rate = sample_rate
        self._channels = channels
        self._device = device

    async def open(self) -> SoundDeviceStream:
        try:
            sd.check_input_settings(
                device=self._device,
                channels=self._channels,
                dtype="int16",
                samplerate=self._sample_rate,
            )
            stream = SoundDeviceStream(self._sample_rate, self._channels, self._device)
        except (sd.PortAudioError, ValueError) as exc:
            raise _device_error(exc) from exc
        try:
            stream.start()
        except sd.PortAudioError as exc:
            stream.close()
            raise _device_error(exc) from exc
        return stream


def microphone_from_settings(cfg=settings) -> SoundDeviceMicrophone:
    device = cfg.audio_device
    if isinstance(device, str) and device.isdigit():
        device = int(device)
    return SoundDeviceMicrophone(
        sample_rate=cfg.audio_sample_rate,
        channels=cfg.audio_channels,
        device=device,
    )
