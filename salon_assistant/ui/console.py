"""Console front-end for the salon assistant.

Typed lines are sent as messages. `/rec` starts voice capture and a second
`/rec` stops it; `/quit` exits.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional, TextIO

from salon_assistant.conversation.orchestrator import ConversationOrchestrator
from salon_assistant.domain.models import ActivityState, Message, Notice
from salon_assistant.infrastructure.logging.logger import log_event
from salon_assistant.ui.render import render_message, status_line

RECORD_COMMAND = "/rec"
QUIT_COMMANDS = {"/quit", "/exit"}


class ConsoleApp:
    def __init__(self, orchestrator: ConversationOrchestrator, out: Optional[TextIO] = None):
        self._orchestrator = orchestrator
        self._out = out or sys.stdout
        self._init_task: Optional[asyncio.Task] = None
        orchestrator.add_message_listener(self._on_message)
        orchestrator.add_state_listener(self._on_state)
        orchestrator.add_notice_listener(self._on_notice)

    def _print(self, text: str) -> None:
        print(text, file=self._out, flush=True)

    def _on_message(self, message: Message) -> None:
        self._print(render_message(message) + "\n")

    def _on_state(self, old: ActivityState, new: ActivityState) -> None:
        line = status_line(new)
        if line:
            self._print(f"... {line}")

    def _on_notice(self, notice: Notice) -> None:
        self._print(f"!! {notice.text}")

    async def handle_line(self, line: str) -> bool:
        """处理一行输入，返回 False 表示退出。"""

        command = line.strip()
        if command in QUIT_COMMANDS:
            return False
        orch = self._orchestrator
        if command == RECORD_COMMAND:
            if orch.can_stop_recording():
                await orch.stop_voice_capture()
            elif orch.can_start_recording():
                await orch.start_voice_capture()
            return True
        if orch.state is ActivityState.RECORDING:
            self._print(f"Recording... type {RECORD_COMMAND} to stop")
            return True
        if command and not orch.session_ready:
            if self._init_failed():
                self._print("Could not connect to the assistant. Please restart and try again.")
            else:
                self._print("Still connecting, please try again in a moment.")
            return True
        await orch.submit_text(line)
        return True

    def _init_failed(self) -> bool:
        task = self._init_task
        return task is not None and task.done() and not task.cancelled() and task.exception() is not None

    def _on_init_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_event(logging.ERROR, "Chat session initialization failed", {}, exc_info=exc, error=str(exc))
            self._print(f"!! Could not connect to the assistant: {exc}")

    async def run(self, location_provider=None) -> None:
        for message in self._orchestrator.messages:
            self._on_message(message)
        self._init_task = asyncio.create_task(self._orchestrator.initialize(location_provider))
        self._init_task.add_done_callback(self._on_init_done)
        try:
            while True:
                line = await asyncio.to_thread(input, "> ")
                if not await self.handle_line(line):
                    break
        except (EOFError, KeyboardInterrupt):
            pass
        finally:
            if not self._init_task.done():
                self._init_task.cancel()
            await self._orchestrator.shutdown()
