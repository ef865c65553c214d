"""语音转写客户端。

把录音得到的 base64 音频连同固定的转写指令发给模型，返回纯文本。
返回空串（或仅空白）表示“没听清”，这不是错误，由调用方单独处理。
"""

import asyncio
import logging
from typing import Optional

from salon_assistant.config.settings import settings
from salon_assistant.domain.exceptions import BusinessError, TranscriptionFailed, ValidationError
from salon_assistant.domain.models import CapturedAudio
from salon_assistant.infrastructure.logging.logger import log_event
from salon_assistant.prompts import TRANSCRIPTION_INSTRUCTION
from salon_assistant.providers.base import GenerateRequest, ProviderClient


class TranscriptionClient:
    def __init__(
        self,
        provider: ProviderClient,
        *,
        model: str = "salon-transcribe",
        instruction: str = TRANSCRIPTION_INSTRUCTION,
        timeout: Optional[float] = None,
    ):
        self._provider = provider
        self._model = model
        self._instruction = instruction
        self._timeout = timeout

    def build_request(self, audio: CapturedAudio) -> GenerateRequest:
        return GenerateRequest(
            model=self._model,
            contents=[
                {
                    "role": "user",
                    "parts": [
                        {"inlineData": {"mimeType": audio.mime_type, "data": audio.data}},
                        {"text": self._instruction},
                    ],
                }
            ],
            temperature=0.0,
        )

    async def transcribe(self, audio: CapturedAudio) -> str:
        """转写一段音频。

        Raises:
            ValidationError: 音频为空（不会发起请求）。
            TranscriptionFailed: 网络/后端错误或超时。
        """

        if audio.is_empty or not audio.data:
            raise ValidationError(code="EMPTY_AUDIO", message="Nothing to transcribe")
        req = self.build_request(audio)
        log_ctx = {"provider": self._provider.name, "model": self._model, "size_bytes": audio.size_bytes}
        try:
            if self._timeout:
                result = await asyncio.wait_for(self._provider.generate(req), timeout=self._timeout)
            else:
                result = await self._provider.generate(req)
        except asyncio.TimeoutError as exc:
            log_event(logging.WARNING, "Transcription timed out", log_ctx, timeout=self._timeout)
            raise TranscriptionFailed(
                code="TRANSCRIPTION_TIMEOUT",
                message=f"No transcript within {self._timeout}s",
            ) from exc
        except BusinessError as exc:
            log_event(logging.WARNING, "Transcription failed", log_ctx, error_code=exc.code, error=exc.message)
            raise TranscriptionFailed(
                code="TRANSCRIPTION_FAILED",
                message=exc.message,
                http_status=exc.http_status,
                cause_code=exc.code,
            ) from exc
        log_event(logging.INFO, "Transcription received", log_ctx, chars=len(result.text))
        return result.text


def create_transcription_client(provider: ProviderClient, cfg=settings) -> TranscriptionClient:
    return TranscriptionClient(
        provider,
        model=getattr(cfg, "transcription_model", "salon-transcribe"),
        timeout=getattr(cfg, "transcription_timeout", None),
    )
