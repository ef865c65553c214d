"""对话编排器。

ConversationOrchestrator 持有消息日志和唯一的 ActivityState，负责串联：

- 文字输入: IDLE -> THINKING -> IDLE
- 语音输入: IDLE -> RECORDING -> TRANSCRIBING -> THINKING -> IDLE

只有 IDLE 状态才能开始新的用户操作。状态在第一个 await 之前同步切换，
在单线程事件循环里“检查 + 切换”是原子的，因此同一时刻最多只有一个
远端调用在进行。所有远端失败都在这里被转换成状态切换加上一条消息或提示，
不会继续向上抛出；原始错误只写入运维日志。
"""

import logging
from typing import Callable, List, Optional, Tuple

from salon_assistant.audio.capture import AudioCaptureAdapter
from salon_assistant.conversation.session import SessionSlot
from salon_assistant.domain.conversation import MessageLog, MessageLogView
from salon_assistant.domain.exceptions import BusinessError, DeviceUnavailable, PermissionDenied
from salon_assistant.domain.models import ActivityState, Message, Notice, NoticeKind
from salon_assistant.infrastructure.logging.logger import log_event
from salon_assistant.speech.transcription import TranscriptionClient


WELCOME_TEXT = (
    "أهلاً وسهلاً في صالون مسودة! 💇‍♂️✨\n"
    "أنا هون عشان أجاوب على كل استفساراتك.\n\n"
    "⏰ دوامنا: يومياً من 10:30 صباحاً - 9:00 مساءً.\n"
    "🚭 ملاحظة: التدخين ممنوع داخل المحل.\n\n"
    "كيف بقدر أساعدك اليوم؟"
)

# 发送失败时追加的固定道歉文本，不包含任何原始错误信息
CONNECTION_APOLOGY_TEXT = "صار في مشكلة صغيرة بالاتصال، جرب كمان مرة لو سمحت."

NOTICE_TEXTS = {
    NoticeKind.NOTHING_UNDERSTOOD: "Didn't catch that. Please try speaking again.",
    NoticeKind.TRANSCRIPTION_FAILED: "Error transcribing audio.",
    NoticeKind.MICROPHONE_UNAVAILABLE: "Could not access microphone. Please check permissions.",
}

StateListener = Callable[[ActivityState, ActivityState], None]
MessageListener = Callable[[Message], None]
NoticeListener = Callable[[Notice], None]


class ConversationOrchestrator:
    def __init__(
        self,
        session_slot: SessionSlot,
        transcriber: TranscriptionClient,
        capture: AudioCaptureAdapter,
        *,
        welcome_text: Optional[str] = None,
    ):
        self._slot = session_slot
        self._transcriber = transcriber
        self._capture = capture
        self._state = ActivityState.IDLE
        self._state_listeners: List[StateListener] = []
        self._message_listeners: List[MessageListener] = []
        self._notice_listeners: List[NoticeListener] = []
        self._notices: List[Notice] = []
        self._log = MessageLog(on_append=self._emit_message)
        if welcome_text:
            self._log.append(Message(role="assistant", text=welcome_text))

    # ---- 只读状态 ----

    @property
    def state(self) -> ActivityState:
        return self._state

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self._log.snapshot()

    @property
    def message_log(self) -> MessageLogView:
        return self._log

    @property
    def notices(self) -> Tuple[Notice, ...]:
        return tuple(self._notices)

    @property
    def session_ready(self) -> bool:
        return self._slot.ready

    def can_submit(self, draft: str) -> bool:
        return self._state is ActivityState.IDLE and bool(draft and draft.strip())

    def can_start_recording(self, draft: str = "") -> bool:
        # 已经输入文字时不允许录音，两种输入方式互斥
        return self._state is ActivityState.IDLE and not draft

    def can_stop_recording(self) -> bool:
        return self._state is ActivityState.RECORDING

    # ---- 监听 ----

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._message_listeners.append(listener)

    def add_notice_listener(self, listener: NoticeListener) -> None:
        self._notice_listeners.append(listener)

    # ---- 用户操作 ----

    async def initialize(self, location_provider=None) -> None:
        """创建会话；完成前提交的文字会被忽略。"""

        await self._slot.initialize(location_provider)

    async def submit_text(self, text: str) -> bool:
        """提交一条文字消息，返回是否被接受。"""

        if not text or not text.strip():
            return False
        if self._state is not ActivityState.IDLE:
            log_event(logging.INFO, "Submission rejected while busy", {}, state=self._state.value)
            return False
        if not self._slot.ready:
            log_event(logging.INFO, "Submission ignored, session not ready", {})
            return False
        self._set_state(ActivityState.THINKING)
        await self._exchange(text, is_audio=False)
        return True

    async def start_voice_capture(self) -> bool:
        if self._state is not ActivityState.IDLE:
            return False
        self._set_state(ActivityState.RECORDING)
        try:
            await self._capture.start_capture()
        except (PermissionDenied, DeviceUnavailable) as exc:
            log_event(logging.WARNING, "Microphone unavailable", {}, error_code=exc.code, error=exc.message)
            self._set_state(ActivityState.IDLE)
            self._notify(NoticeKind.MICROPHONE_UNAVAILABLE)
            return False
        except Exception as exc:
            log_event(logging.ERROR, "Microphone start failed", {}, exc_info=exc, error=str(exc))
            self._set_state(ActivityState.IDLE)
            self._notify(NoticeKind.MICROPHONE_UNAVAILABLE)
            return False
        return True

    async def stop_voice_capture(self) -> bool:
        """结束录音并走完转写流程，返回是否被接受。"""

        if self._state is not ActivityState.RECORDING:
            return False
        self._set_state(ActivityState.TRANSCRIBING)
        try:
            audio = await self._capture.stop_capture()
            if audio is None or audio.is_empty:
                transcript = ""
            else:
                transcript = await self._transcriber.transcribe(audio)
        except BusinessError as exc:
            log_event(logging.WARNING, "Voice input failed", {}, error_code=exc.code, error=exc.message)
            self._set_state(ActivityState.IDLE)
            self._notify(NoticeKind.TRANSCRIPTION_FAILED)
            return True
        except Exception as exc:
            log_event(logging.ERROR, "Voice input crashed", {}, exc_info=exc, error=str(exc))
            self._set_state(ActivityState.IDLE)
            self._notify(NoticeKind.TRANSCRIPTION_FAILED)
            return True

        if not transcript.strip():
            self._set_state(ActivityState.IDLE)
            self._notify(NoticeKind.NOTHING_UNDERSTOOD)
            return True
        if not self._slot.ready:
            log_event(logging.INFO, "Transcript dropped, session not ready", {}, chars=len(transcript))
            self._set_state(ActivityState.IDLE)
            return True
        self._set_state(ActivityState.THINKING)
        await self._exchange(transcript, is_audio=True)
        return True

    async def shutdown(self) -> None:
        """退出前调用：若仍在录音则丢弃录音并释放麦克风。"""

        if self._state is not ActivityState.RECORDING:
            return
        try:
            await self._capture.abort()
        except Exception as exc:
            log_event(logging.WARNING, "Microphone release failed on shutdown", {}, exc_info=exc, error=str(exc))
        finally:
            self._set_state(ActivityState.IDLE)

    # ---- 内部 ----

    async def _exchange(self, text: str, *, is_audio: bool) -> None:
        session = self._slot.require()
        user_message = Message(role="user", text=text, is_audio=is_audio)
        try:
            self._log.append(user_message)
            try:
                reply = await session.send(text)
            except BusinessError as exc:
                log_event(
                    logging.ERROR,
                    "Chat exchange failed",
                    {"session_id": session.id},
                    user_message_id=user_message.id,
                    error_code=exc.code,
                    error=exc.message,
                )
                self._log.append(Message(role="assistant", text=CONNECTION_APOLOGY_TEXT))
            except Exception as exc:
                log_event(
                    logging.ERROR,
                    "Chat exchange crashed",
                    {"session_id": session.id},
                    exc_info=exc,
                    user_message_id=user_message.id,
                    error=str(exc),
                )
                self._log.append(Message(role="assistant", text=CONNECTION_APOLOGY_TEXT))
            else:
                self._log.append(
                    Message(
                        role="assistant",
                        text=reply.text,
                        grounding_chunks=reply.grounding_chunks or None,
                    )
                )
        finally:
            self._set_state(ActivityState.IDLE)

    def _set_state(self, new_state: ActivityState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        log_event(logging.INFO, "Activity state changed", {}, from_state=old_state.value, to_state=new_state.value)
        for listener in list(self._state_listeners):
            listener(old_state, new_state)

    def _notify(self, kind: NoticeKind) -> None:
        notice = Notice(kind=kind, text=NOTICE_TEXTS[kind])
        self._notices.append(notice)
        for listener in list(self._notice_listeners):
            listener(notice)

    def _emit_message(self, message: Message) -> None:
        for listener in list(self._message_listeners):
            listener(message)
