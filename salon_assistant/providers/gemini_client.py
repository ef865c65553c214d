"""Gemini Provider 适配器。

本模块负责：

1. 接收统一的 GenerateRequest。
2. 将其转换为 Gemini generateContent REST 接口的请求格式。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 将响应 JSON 解析为统一的 GenerateResult。

接口约定：
- URL: {base_url}/models/{model}:generateContent
- 认证: x-goog-api-key: <api_key>
"""

from typing import Any, Dict, Optional

import httpx

from salon_assistant.config.settings import settings
from salon_assistant.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from salon_assistant.providers.base import GenerateRequest, GenerateResult
from salon_assistant.providers.registry import GEMINI_CONFIG, ModelConfig, resolve_model


class GeminiClient:
    """Gemini 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - generate: 对外统一调用入口，返回 GenerateResult。
    """

    name = "gemini"

    def __init__(self, cfg=settings):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = cfg

    async def generate(self, req: GenerateRequest) -> GenerateResult:
        if not getattr(self._settings, "gemini_api_key", None):
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(code="MISSING_API_KEY", message="GEMINI_API_KEY not set")
        model_cfg = resolve_model(GEMINI_CONFIG, req.model)
        payload = self._build_payload(req, model_cfg)
        base = getattr(self._settings, "gemini_base_url", None) or GEMINI_CONFIG.base_url
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base}/models/{model_cfg.provider_model}:generateContent",
                    json=payload,
                    headers={
                        "x-goog-api-key": self._settings.gemini_api_key,
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="Gemini rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        try:
            data = resp.json()
        except ValueError:
            raise ApiError(code="BAD_RESPONSE", message="Response body is not JSON", http_status=resp.status_code)
        if not isinstance(data, dict):
            raise ApiError(code="BAD_RESPONSE", message="Response body is not an object", http_status=resp.status_code)
        return self._parse_response(data, req)

    def _build_payload(self, req: GenerateRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        """将 GenerateRequest 转成 Gemini 所需的请求 JSON。"""

        payload: Dict[str, Any] = {"contents": req.contents}
        if req.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": req.system_instruction}]}
        if req.tools:
            payload["tools"] = req.tools
        if req.tool_config:
            payload["toolConfig"] = req.tool_config
        generation_config: Dict[str, Any] = {
            "temperature": req.temperature if req.temperature is not None else model_cfg.default_temperature,
        }
        if model_cfg.max_output_tokens:
            generation_config["maxOutputTokens"] = model_cfg.max_output_tokens
        payload["generationConfig"] = generation_config
        return payload

    def _parse_response(self, data: Dict[str, Any], req: GenerateRequest) -> GenerateResult:
        """将原始响应 JSON 解析为统一的 GenerateResult。"""

        content = _first_candidate_content(data)
        text = ""
        if content is not None:
            parts = content.get("parts") or []
            # 检索工具开启时，文本可能被拆成多个 part
            text = "".join(p.get("text") or "" for p in parts if isinstance(p, dict) and not p.get("thought"))
        return GenerateResult(provider=self.name, model=req.model, text=text, content=content, raw=data)


def _first_candidate_content(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    return content if isinstance(content, dict) else None
