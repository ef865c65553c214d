import asyncio
import io

from salon_assistant.audio.capture import AudioCaptureAdapter
from salon_assistant.conversation.orchestrator import ConversationOrchestrator
from salon_assistant.conversation.session import ChatSession, SessionSlot
from salon_assistant.domain.models import ActivityState, MapSource, Message, WebSource
from salon_assistant.providers.base import GenerateResult
from salon_assistant.speech.transcription import TranscriptionClient
from salon_assistant.ui.console import ConsoleApp
from salon_assistant.ui.render import ASSISTANT_NAME, render_message, status_line


class FakeProvider:
    name = "fake"

    def __init__(self, texts=()):
        self._texts = list(texts)

    async def generate(self, req):
        return GenerateResult(provider="fake", model=req.model, text=self._texts.pop(0))


class NoMicrophone:
    async def open(self):
        raise AssertionError("microphone should not be opened")


def _orchestrator(texts=()):
    provider = FakeProvider(texts)
    slot = SessionSlot(lambda loc: ChatSession(provider, system_instruction="sys", location=loc))
    return ConversationOrchestrator(slot, TranscriptionClient(provider), AudioCaptureAdapter(NoMicrophone()))


def test_render_message_with_sources():
    msg = Message(
        role="assistant",
        text="تفضل",
        grounding_chunks=(
            WebSource(uri="https://a.example"),
            MapSource(uri="https://maps.example", title="Maswadh", review_snippets=("Clean and fast",)),
        ),
    )
    out = render_message(msg)
    assert ASSISTANT_NAME in out
    assert "تفضل" in out
    assert "Sources:" in out
    assert "Web Source <https://a.example>" in out
    assert "Maswadh <https://maps.example>" in out
    assert '"Clean and fast"' in out


def test_render_user_voice_message():
    out = render_message(Message(role="user", text="hello", is_audio=True))
    assert "You (voice):" in out
    assert "Sources" not in out


def test_status_lines():
    assert status_line(ActivityState.IDLE) == ""
    assert status_line(ActivityState.RECORDING) == "Listening..."
    assert status_line(ActivityState.TRANSCRIBING) == "Transcribing Audio..."


def test_console_handles_text_and_quit():
    out = io.StringIO()
    orch = _orchestrator(["We open at 10:30"])
    app = ConsoleApp(orch, out=out)

    async def run():
        assert await app.handle_line("hours?") is True
        await orch.initialize()
        assert await app.handle_line("hours?") is True
        return await app.handle_line("/quit")

    assert asyncio.run(run()) is False
    text = out.getvalue()
    assert "Still connecting" in text
    assert "We open at 10:30" in text
    assert [m.role for m in orch.messages] == ["user", "assistant"]


class FakeStream:
    mime_type = "audio/wav"

    def __init__(self):
        self._stopped = asyncio.Event()
        self.close_count = 0

    async def chunks(self):
        yield b"\x00\x01"
        await self._stopped.wait()

    def stop(self):
        self._stopped.set()

    def finalize(self, chunks):
        return b"".join(chunks)

    def close(self):
        self.close_count += 1


class FakeMicrophone:
    def __init__(self):
        self.streams = []

    async def open(self):
        stream = FakeStream()
        self.streams.append(stream)
        return stream


def _scripted_input(monkeypatch, lines):
    pending = list(lines)

    def fake_input(prompt=""):
        if not pending:
            raise EOFError
        return pending.pop(0)

    monkeypatch.setattr("builtins.input", fake_input)


def test_console_eof_while_recording_releases_microphone(monkeypatch):
    mic = FakeMicrophone()
    stt = FakeProvider()
    slot = SessionSlot(lambda loc: ChatSession(stt, system_instruction="sys", location=loc))
    orch = ConversationOrchestrator(slot, TranscriptionClient(stt), AudioCaptureAdapter(mic))
    out = io.StringIO()
    _scripted_input(monkeypatch, ["/rec"])

    asyncio.run(ConsoleApp(orch, out=out).run())

    assert "Listening..." in out.getvalue()
    assert mic.streams[0].close_count == 1
    assert orch.state is ActivityState.IDLE
    assert orch.messages == ()


def test_console_reports_failed_initialization(monkeypatch):
    def broken_factory(loc):
        raise OSError("prompt file missing")

    provider = FakeProvider()
    orch = ConversationOrchestrator(
        SessionSlot(broken_factory), TranscriptionClient(provider), AudioCaptureAdapter(NoMicrophone())
    )
    out = io.StringIO()
    _scripted_input(monkeypatch, ["hello"])

    asyncio.run(ConsoleApp(orch, out=out).run())

    text = out.getvalue()
    assert "Could not connect to the assistant: prompt file missing" in text
    assert "Could not connect to the assistant. Please restart" in text
    assert "Still connecting" not in text
