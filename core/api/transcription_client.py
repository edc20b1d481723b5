"""
core.api.transcription_client

Speech-to-text pass-through backed by Gemini ``generateContent``.

The browser records a short clip, base64-encodes it and posts it to
/api/transcribe; this client forwards it inline together with a one-line
transcription instruction and returns the trimmed text.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from configs.settings import Settings
from exceptions.exceptions import MissingCredential, UpstreamError


logger = logging.getLogger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MIME_TYPE = "audio/webm"
DEFAULT_LANGUAGE = "Kurdish Sorani"


def _error_message(resp: httpx.Response) -> str:
    """Prefer Gemini's structured ``error.message`` over the raw body."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        message = data["error"].get("message")
        if message:
            return str(message)
    return resp.text or f"HTTP {resp.status_code}"


def _extract_text(payload: Any) -> Optional[str]:
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class TranscriptionClient:
    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: str = GEMINI_BASE_URL,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "TranscriptionClient":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.upstream_timeout,
            **kwargs,
        )

    def require_credentials(self) -> str:
        if not self.api_key:
            raise MissingCredential("GEMINI_API_KEY")
        return self.api_key

    async def transcribe(
        self,
        audio_b64: str,
        mime_type: Optional[str] = None,
        lang: Optional[str] = None,
    ) -> str:
        """Transcribe base64 audio into ``lang`` text.

        Raises
        ------
        MissingCredential
            If GEMINI_API_KEY is not configured.
        UpstreamError
            On HTTP failure or when Gemini returns no text.
        """
        api_key = self.require_credentials()
        mime_type = (mime_type or "").strip() or DEFAULT_MIME_TYPE
        lang = (lang or "").strip() or DEFAULT_LANGUAGE

        payload = {
            "contents": [
                {
                    "parts": [
                        {"text": f"Transcribe this audio precisely into {lang} text. Only provide the text output."},
                        {"inline_data": {"mime_type": mime_type, "data": audio_b64}},
                    ]
                }
            ]
        }
        url = f"{self.base_url}/{quote(self.model, safe='')}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                # Key goes in a header so it can never end up in an error message.
                resp = await client.post(url, json=payload, headers={"x-goog-api-key": api_key})
        except httpx.HTTPError as exc:
            raise UpstreamError("Gemini", body=type(exc).__name__) from exc

        if resp.status_code >= 400:
            logger.warning("[STT] Gemini HTTP %s", resp.status_code)
            raise UpstreamError("Gemini", status=resp.status_code, body=_error_message(resp))

        try:
            data = resp.json()
        except ValueError:
            data = None

        text = _extract_text(data)
        if text is None or not text.strip():
            raise UpstreamError("Gemini", detail="returned no text")
        return text.strip()
