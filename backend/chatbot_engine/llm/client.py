"""Generative model client for the Gemini ``generateContent`` REST API."""

from __future__ import annotations

import time
from typing import Any

import httpx

from chatbot_engine.core.errors import ProviderConfigError, ProviderError, RateLimitError
from chatbot_engine.core.logging import get_logger
from chatbot_engine.core.metrics import GENERATION_LATENCY

logger = get_logger(__name__)


class GenerativeClient:
    """``generate(model_id, prompt, max_tokens, temperature) -> text``.

    Every transport, HTTP status, quota or payload problem surfaces as
    ProviderError. Calls are attempted once.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = float(timeout_seconds)
        self._transport = transport

    def generate(
        self,
        model_id: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        purpose: str = "answer",
    ) -> str:
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        url = f"{self.base_url}/models/{model_id}:generateContent"
        started = time.perf_counter()
        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = client.post(url, params={"key": self.api_key}, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = f"Model {model_id} returned HTTP {status}"
            details = {"status_code": status, "quota": status == 429}
            if status == 429:
                raise RateLimitError(message, details=details) from exc
            if status in (401, 403) or "API key" in exc.response.text:
                raise ProviderConfigError(message, details=details) from exc
            raise ProviderError(message, details=details) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Model {model_id} request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(f"Model {model_id} returned a non-JSON body") from exc
        finally:
            GENERATION_LATENCY.labels(purpose=purpose).observe(time.perf_counter() - started)

        text = _extract_text(data)
        if text is None:
            raise ProviderError(f"Model {model_id} returned no candidates")
        logger.debug("Generated %s chars with %s", len(text), model_id, extra={"ctx_purpose": purpose})
        return text


def _extract_text(data: Any) -> str | None:
    """Joined text parts of the first candidate; None when the payload has another shape."""
    if not isinstance(data, dict):
        return None
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return None
    content = candidates[0].get("content")
    if not isinstance(content, dict):
        return None
    parts = content.get("parts")
    if not isinstance(parts, list):
        return None
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    if not texts:
        return None
    return "".join(texts)


__all__ = ["GenerativeClient"]
