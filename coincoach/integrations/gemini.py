"""Gemini generateContent client.

Thin wrapper over the REST endpoint. Every caller decides its own fallback,
so this client only raises; it never retries.
"""
import logging
from typing import Any, Optional, Union

import httpx

from coincoach.config import get_settings
from coincoach.core.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

Contents = list[dict[str, Any]]


def user_text(text: str) -> dict[str, Any]:
    """A single user turn in Gemini's ``contents`` format."""
    return {"role": "user", "parts": [{"text": text}]}


def model_text(text: str) -> dict[str, Any]:
    return {"role": "model", "parts": [{"text": text}]}


class GeminiClient:
    """Client for the Gemini generative language API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate_content(
        self,
        contents: Union[str, Contents],
        max_output_tokens: int = 2048,
        temperature: float = 0.7,
    ) -> str:
        """Send a prompt (or a full conversation) and return the first candidate's text.

        Raises:
            ConfigurationError: no API key is set.
            UpstreamError: non-2xx response, transport failure, or a body
                without candidate text.
        """
        if not self.configured:
            raise ConfigurationError("Gemini API key not configured")

        if isinstance(contents, str):
            contents = [user_text(contents)]

        payload = {
            "contents": contents,
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.warning("Gemini request failed: %s", e)
            raise UpstreamError(f"Gemini request failed: {e}", 502) from e

        if response.status_code != 200:
            message = _error_message(response)
            logger.warning("Gemini error: %s - %s", response.status_code, message)
            raise UpstreamError(f"Gemini API error: {message}", response.status_code)

        text = _candidate_text(response.json())
        if text is None:
            raise UpstreamError("Invalid response from Gemini API", 500)
        return text


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Unknown error"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return "Unknown error"


def _candidate_text(result: Any) -> Optional[str]:
    try:
        text = result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text else None


# Singleton instance
_client: GeminiClient | None = None


def get_gemini_client() -> GeminiClient:
    """Get or create the Gemini client from settings."""
    global _client
    if _client is None:
        settings = get_settings()
        _client = GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout=settings.upstream_timeout_seconds,
        )
    return _client
