import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from cropgen.core.errors import (
    EmptyResponse,
    GenerationTimeout,
    QuotaExceeded,
    UpstreamError,
)

logger = logging.getLogger("cropgen.gemini")

DEFAULT_TIMEOUT = 30.0


class GeminiClient:
    """Single-attempt client for the Gemini `generateContent` endpoint.

    Retrying is the caller's business; every failure is raised as one of the
    GenerationError subclasses so callers can tell quota exhaustion apart from
    timeouts and broken responses.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
        temperature: float = 0.7,
        max_output_tokens: int = 4000,
        default_timeout: float = DEFAULT_TIMEOUT,
    ):
        self._http = http
        self._api_key = api_key
        self.model = model
        self.url = f"{base_url.rstrip('/')}/{model}:generateContent"
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.default_timeout = default_timeout

    def _payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

    async def _post(self, prompt: str) -> httpx.Response:
        return await self._http.post(
            self.url,
            json=self._payload(prompt),
            headers={"x-goog-api-key": self._api_key},
        )

    async def generate(self, prompt: str, timeout: Optional[float] = None) -> str:
        if not self._api_key:
            raise UpstreamError("GEMINI_API_KEY is not configured")

        timeout = timeout or self.default_timeout
        logger.info("Calling Gemini %s (single attempt, timeout=%.0fs)", self.model, timeout)

        try:
            resp = await asyncio.wait_for(self._post(prompt), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise GenerationTimeout()
        except httpx.HTTPError as e:
            raise UpstreamError(f"Gemini request failed: {e.__class__.__name__}")

        if resp.status_code >= 400:
            body = resp.text
            if resp.status_code == 429 or "quota" in body.lower():
                logger.error("Gemini quota exceeded (status %d)", resp.status_code)
                raise QuotaExceeded()
            raise UpstreamError(f"Gemini API error {resp.status_code}", status=resp.status_code)

        try:
            data = resp.json()
        except ValueError:
            raise UpstreamError("Gemini returned a non-JSON body", status=resp.status_code)

        text = _first_text(data)
        if not text or not text.strip():
            raise EmptyResponse()

        logger.info("Gemini call succeeded (%d chars)", len(text))
        return text


def _first_text(data: Any) -> Optional[str]:
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None
