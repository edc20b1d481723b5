from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


DEFAULT_CLAUDE_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_TTS_API_URL = "https://www.kurdishtts.com/api/tts-proxy"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


def _clean(value: Optional[str]) -> Optional[str]:
    """Treat unset and whitespace-only env values the same way."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int_env(name: str, default: int) -> int:
    raw = _clean(os.getenv(name))
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.")


class Settings:
    """
    Central configuration for the call relay.

    Values are loaded once from environment variables (with sensible defaults)
    and then exposed via typed properties. Credentials are optional here:
    the upstream adapters decide whether a missing key is fatal
    (chat, transcription) or just disables a feature (speech).
    """

    def __init__(self) -> None:
        # Chat completion upstream
        self._claude_api_key = _clean(os.getenv("CLAUDE_API_KEY"))
        self._claude_api_url = _clean(os.getenv("CLAUDE_API_URL")) or DEFAULT_CLAUDE_API_URL
        self._claude_model = _clean(os.getenv("CLAUDE_MODEL")) or ""
        self._claude_max_tokens = _int_env("CLAUDE_MAX_TOKENS", 1024)

        # Text-to-speech upstream
        self._tts_api_key = _clean(os.getenv("KURDISH_TTS_API_KEY"))
        self._tts_api_url = _clean(os.getenv("KURDISH_TTS_API_URL")) or DEFAULT_TTS_API_URL

        # Speech-to-text upstream
        self._gemini_api_key = _clean(os.getenv("GEMINI_API_KEY"))
        self._gemini_model = _clean(os.getenv("GEMINI_MODEL")) or DEFAULT_GEMINI_MODEL

        # HTTP server
        self._port = _int_env("PORT", 3005)
        self._cors_origin = _clean(os.getenv("CORS_ORIGIN"))

        # Sessions
        self._session_secret = _clean(os.getenv("SESSION_SECRET")) or "dev-secret"
        self._session_backend = (_clean(os.getenv("SESSION_BACKEND")) or "cookie").lower()
        self._session_max_entries = _int_env("SESSION_MAX_ENTRIES", 1000)
        self._session_ttl_seconds = _int_env("SESSION_TTL_SECONDS", 3600)

        self._upstream_timeout = float(_int_env("UPSTREAM_TIMEOUT_SECONDS", 60))
        self._log_level = (_clean(os.getenv("LOG_LEVEL")) or "INFO").upper()

        if self._session_backend not in ("cookie", "signed"):
            raise RuntimeError(
                f"SESSION_BACKEND must be 'cookie' or 'signed', got {self._session_backend!r}."
            )

    # ------------------------------------------------------------------
    # Chat upstream
    # ------------------------------------------------------------------

    @property
    def claude_api_key(self) -> Optional[str]:
        return self._claude_api_key

    @property
    def claude_api_url(self) -> str:
        return self._claude_api_url

    @property
    def claude_model(self) -> str:
        return self._claude_model

    @property
    def claude_max_tokens(self) -> int:
        return self._claude_max_tokens

    # ------------------------------------------------------------------
    # Speech upstreams
    # ------------------------------------------------------------------

    @property
    def tts_api_key(self) -> Optional[str]:
        return self._tts_api_key

    @property
    def tts_api_url(self) -> str:
        return self._tts_api_url

    @property
    def gemini_api_key(self) -> Optional[str]:
        return self._gemini_api_key

    @property
    def gemini_model(self) -> str:
        return self._gemini_model

    # ------------------------------------------------------------------
    # Server / sessions
    # ------------------------------------------------------------------

    @property
    def port(self) -> int:
        return self._port

    @property
    def cors_origin(self) -> Optional[str]:
        return self._cors_origin

    @property
    def session_secret(self) -> str:
        return self._session_secret

    @property
    def session_backend(self) -> str:
        return self._session_backend

    @property
    def session_max_entries(self) -> int:
        return self._session_max_entries

    @property
    def session_ttl_seconds(self) -> int:
        return self._session_ttl_seconds

    @property
    def upstream_timeout(self) -> float:
        return self._upstream_timeout

    @property
    def log_level(self) -> str:
        return self._log_level

    def credential_summary(self) -> dict:
        """Which credentials are present; never the values themselves."""
        return {
            "CLAUDE_API_KEY": self._claude_api_key is not None,
            "KURDISH_TTS_API_KEY": self._tts_api_key is not None,
            "GEMINI_API_KEY": self._gemini_api_key is not None,
            "PORT": self._port,
        }


settings = Settings()
