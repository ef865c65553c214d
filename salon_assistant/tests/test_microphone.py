import asyncio
import io
import wave

import pytest

try:
    from salon_assistant.audio import microphone
except OSError:  # PortAudio 共享库不存在
    pytest.skip("PortAudio library not available", allow_module_level=True)

from salon_assistant.domain.exceptions import DeviceUnavailable, PermissionDenied


class FakeRawInputStream:
    instances = []

    def __init__(self, stop_error=None, start_error=None, **kwargs):
        self.kwargs = kwargs
        self.callback = kwargs["callback"]
        self.started = False
        self.close_count = 0
        self._stop_error = stop_error
        self._start_error = start_error
        FakeRawInputStream.instances.append(self)

    def start(self):
        if self._start_error is not None:
            raise self._start_error
        self.started = True

    def stop(self):
        if self._stop_error is not None:
            raise self._stop_error

    def close(self):
        self.close_count += 1


def _patch_stream(monkeypatch, **errors):
    FakeRawInputStream.instances = []
    monkeypatch.setattr(
        microphone.sd, "RawInputStream", lambda **kw: FakeRawInputStream(**errors, **kw)
    )
    monkeypatch.setattr(microphone.sd, "check_input_settings", lambda **kw: None)


def test_device_error_mapping():
    denied = microphone._device_error(RuntimeError("Permission denied by system"))
    assert isinstance(denied, PermissionDenied)
    assert denied.code == "MICROPHONE_DENIED"
    missing = microphone._device_error(RuntimeError("Error querying device -1"))
    assert isinstance(missing, DeviceUnavailable)
    assert missing.code == "MICROPHONE_UNAVAILABLE"


def test_pcm_to_wav_header():
    pcm = b"\x01\x00" * 160
    blob = microphone.pcm_to_wav(pcm, 16000, 1)
    assert blob[:4] == b"RIFF"
    assert blob[8:12] == b"WAVE"
    assert len(blob) == 44 + len(pcm)
    with wave.open(io.BytesIO(blob)) as wav:
        assert wav.getframerate() == 16000
        assert wav.getnchannels() == 1
        assert wav.getsampwidth() == 2
        assert wav.readframes(160) == pcm


def test_stream_delivers_chunks_and_ends_after_failed_stop(monkeypatch):
    _patch_stream(monkeypatch, stop_error=microphone.sd.PortAudioError("stream lost"))

    async def run():
        stream = microphone.SoundDeviceStream(16000, 1, None)
        raw = FakeRawInputStream.instances[0]
        raw.callback(b"ab", 1, None, None)
        raw.callback(b"cd", 1, None, None)
        with pytest.raises(microphone.sd.PortAudioError):
            stream.stop()
        collected = [chunk async for chunk in stream.chunks()]
        return stream, raw, collected

    stream, raw, collected = asyncio.run(run())
    assert collected == [b"ab", b"cd"]
    assert raw.kwargs["dtype"] == "int16"
    assert stream.finalize(collected)[:4] == b"RIFF"


def test_stream_close_is_idempotent(monkeypatch):
    _patch_stream(monkeypatch)

    async def run():
        stream = microphone.SoundDeviceStream(16000, 1, None)
        stream.close()
        stream.close()
        return FakeRawInputStream.instances[0]

    assert asyncio.run(run()).close_count == 1


def test_open_starts_stream(monkeypatch):
    _patch_stream(monkeypatch)
    stream = asyncio.run(microphone.SoundDeviceMicrophone(sample_rate=16000).open())
    assert stream.mime_type == "audio/wav"
    assert FakeRawInputStream.instances[0].started


def test_open_maps_settings_check_failure(monkeypatch):
    _patch_stream(monkeypatch)

    def check(**kw):
        raise microphone.sd.PortAudioError("Access to the microphone was denied (permission)")

    monkeypatch.setattr(microphone.sd, "check_input_settings", check)
    with pytest.raises(PermissionDenied):
        asyncio.run(microphone.SoundDeviceMicrophone().open())
    assert FakeRawInputStream.instances == []


def test_open_closes_stream_when_start_fails(monkeypatch):
    _patch_stream(monkeypatch, start_error=microphone.sd.PortAudioError("Device unavailable"))
    with pytest.raises(DeviceUnavailable):
        asyncio.run(microphone.SoundDeviceMicrophone().open())
    assert FakeRawInputStream.instances[0].close_count == 1


def test_microphone_from_settings_parses_numeric_device():
    class Cfg:
        audio_device = "2"
        audio_sample_rate = 22050
        audio_channels = 1

    mic = microphone.microphone_from_settings(Cfg())
    assert mic._device == 2
    assert mic._sample_rate == 22050
