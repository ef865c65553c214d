"""消息日志的纯文本渲染。只读取 Message，不修改任何状态。"""

from typing import List

from salon_assistant.domain.models import ActivityState, MapSource, Message

ASSISTANT_NAME = "صالون مسودة"
USER_LABEL = "You"

STATUS_TEXTS = {
    ActivityState.RECORDING: "Listening...",
    ActivityState.TRANSCRIBING: "Transcribing Audio...",
    ActivityState.THINKING: "Maswadh AI is thinking...",
}


def render_message(message: Message) -> str:
    speaker = USER_LABEL if message.role == "user" else ASSISTANT_NAME
    if message.is_audio:
        speaker += " (voice)"
    lines: List[str] = [f"[{message.created_at.astimezone():%H:%M}] {speaker}:", message.text]
    if message.grounding_chunks:
        lines.append("Sources:")
        for chunk in message.grounding_chunks:
            lines.append(f"  - {chunk.display_title} <{chunk.uri}>")
            if isinstance(chunk, MapSource):
                for snippet in chunk.review_snippets:
                    lines.append(f'      "{snippet}"')
    return "\n".join(lines)


def status_line(state: ActivityState) -> str:
    """IDLE 时返回空串。"""

    return STATUS_TEXTS.get(state, "")
