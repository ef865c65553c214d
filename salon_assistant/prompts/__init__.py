"""系统提示词加载工具。

按语言(locale) 从 prompts/<locale> 目录读取对应的 system prompt 文本，
用于构造会话的 systemInstruction。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent

# 语音转写使用的固定指令
TRANSCRIPTION_INSTRUCTION = "Transcribe this audio exactly as spoken in Arabic/English."


def load_system_prompt(locale: str = "ar") -> str:
    """根据语言加载沙龙助手的系统提示词文本。"""

    fname = PROMPTS_DIR / locale / "salon_system.md"
    return fname.read_text(encoding="utf-8")
