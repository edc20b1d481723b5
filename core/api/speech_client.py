"""
core.api.speech_client

Text-to-speech pass-through for persona replies.

Speech is optional: without KURDISH_TTS_API_KEY the client simply returns
None. Upstream failures raise DegradedFeature so the relay can drop the
audio without failing the turn.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional

import httpx

from configs.settings import Settings
from exceptions.exceptions import DegradedFeature


logger = logging.getLogger(__name__)


class SpeechClient:
    def __init__(
        self,
        api_key: Optional[str],
        api_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "SpeechClient":
        return cls(
            api_key=settings.tts_api_key,
            api_url=settings.tts_api_url,
            timeout=settings.upstream_timeout,
            **kwargs,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def synthesize(self, text: str, speaker_id: str) -> Optional[str]:
        """Return base64-encoded audio for ``text``, or None if speech is off."""
        if not self.enabled:
            logger.debug("[SPEECH] KURDISH_TTS_API_KEY not set; skipping synthesis")
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    json={"text": text, "speaker_id": speaker_id},
                    headers={"x-api-key": self.api_key},
                )
        except httpx.HTTPError as exc:
            raise DegradedFeature("speech", type(exc).__name__) from exc

        if resp.status_code >= 400:
            raise DegradedFeature("speech", f"HTTP {resp.status_code}: {resp.text or 'Request failed'}")

        return base64.b64encode(resp.content).decode("ascii")
