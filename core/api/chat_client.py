"""
core.api.chat_client

Thin async wrapper around the Anthropic Messages API for the call relay.

Used by:
  - runtime/agents/call_agent.py (replies and opening greetings)

History contract: ``complete`` never mutates the history it is given. It
replays every non-empty turn in order and appends the new user message
exactly once, so callers must pass the history *before* storing the current
user turn.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic

from configs.settings import Settings
from core.api.model_resolver import ModelResolver, get_model_resolver
from core.characters.registry import Character
from exceptions.exceptions import CallRelayError, MissingCredential, UpstreamError


logger = logging.getLogger(__name__)

GREETING_MAX_TOKENS = 100
MESSAGES_PATH = "/v1/messages"

# Appended to the persona prompt when the call is first picked up.
# "Someone is calling you now. Speak first, as when a phone rings; greet or
# ask who it is differently each time. One short natural sentence."
GREETING_INSTRUCTION = (
    "\n\nزۆر گرنگ: ئێستا کەسێک پەیوەندیت پێوە دەگرێت. تۆ دەبێت سەرەتا قسە بکەیت "
    "وەک کاتێک کەسێک تەلەفۆنت بۆ دێت. هەر جارێک بە شێوەیەکی جیاواز سڵاو بکە یان "
    "بپرسە کێیە. بۆ نموونە:\n- ئەلۆ؟\n- ئەلۆ کێیە؟\n- بەڵێ فەرموو؟\n- ئەلۆ تۆ کێیت؟"
    "\n- هەڵۆ؟\n- ئەلۆ فەرموو؟\n- بەڵێ؟\n\nتەنها یەک ڕستەی کورت بڵێ بە شێوەی سروشتی "
    "وەک کاتێک کەسێک تەلەفۆنت بۆ دێت."
)

# Seed user turn standing in for "the phone is ringing"; not real input.
INCOMING_CALL_PLACEHOLDER = "[پەیوەندی تەلەفۆن دەگرێت]"


def api_base_url(api_url: str) -> str:
    """Turn the configured Messages endpoint into the SDK's base URL.

    ``https://proxy.test:8443/v1/messages?beta=1`` -> ``https://proxy.test:8443``.
    A URL without the ``/v1/messages`` suffix is taken as the API root.
    """
    url = httpx.URL(api_url)
    path = url.path.rstrip("/")
    if path.endswith(MESSAGES_PATH):
        path = path[: -len(MESSAGES_PATH)]
    return f"{url.scheme}://{url.netloc.decode('ascii')}{path}"


def _extract_text(message: Any) -> Optional[str]:
    """Pull ``content[0].text`` out of a Messages API response."""
    content = getattr(message, "content", None)
    if not isinstance(content, list) or not content:
        return None
    text = getattr(content[0], "text", None)
    return text if isinstance(text, str) else None


def build_messages(user_message: str, history: Sequence[Any]) -> List[Dict[str, str]]:
    """Project history turns to wire messages and append the new user turn.

    Turns with blank content are skipped. A reply that was only the end-call
    marker is stored as an empty assistant turn, and the Messages API rejects
    empty content blocks.
    """
    messages = [
        {"role": turn.role, "content": turn.content}
        for turn in history
        if turn.content and turn.content.strip()
    ]
    messages.append({"role": "user", "content": user_message})
    return messages


class ChatClient:
    """Client for the chat-completion upstream.

    Parameters
    ----------
    api_key:
        Anthropic key. May be None; every chat call then fails with
        MissingCredential (greetings quietly return None instead).
    api_url:
        Messages endpoint. The SDK is pointed at its origin, where the model
        listing also lives.
    requested_model:
        Raw CLAUDE_MODEL value, resolved through ``model_resolver``.
    transport:
        Optional httpx transport, used by tests to fake the upstream.
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_url: str,
        requested_model: str = "",
        max_tokens: int = 1024,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        model_resolver: Optional[ModelResolver] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.requested_model = requested_model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._transport = transport
        self._resolver = model_resolver or get_model_resolver()

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ChatClient":
        return cls(
            api_key=settings.claude_api_key,
            api_url=settings.claude_api_url,
            requested_model=settings.claude_model,
            max_tokens=settings.claude_max_tokens,
            timeout=settings.upstream_timeout,
            **kwargs,
        )

    def require_credentials(self) -> str:
        if not self.api_key:
            raise MissingCredential("CLAUDE_API_KEY")
        return self.api_key

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def complete(self, character: Character, user_message: str, history: Sequence[Any]) -> str:
        """Return the character's reply to ``user_message`` given ``history``.

        Raises
        ------
        MissingCredential
            If CLAUDE_API_KEY is not configured.
        UpstreamError
            If the HTTP call fails or the reply carries no text.
        """
        messages = build_messages(user_message, history)
        message = await self._create_message(
            system=character.system_prompt,
            messages=messages,
            max_tokens=self.max_tokens,
        )

        text = _extract_text(message)
        if text is None or not text.strip():
            raise UpstreamError("Claude API", detail="returned no text response")
        return text

    async def initial_greeting(self, character: Character) -> Optional[str]:
        """Return an opening line as if picking up a call, or None on failure."""
        if not self.api_key:
            logger.warning("[CHAT] greeting skipped for %s: CLAUDE_API_KEY not set", character.id)
            return None

        try:
            message = await self._create_message(
                system=character.system_prompt + GREETING_INSTRUCTION,
                messages=[{"role": "user", "content": INCOMING_CALL_PLACEHOLDER}],
                max_tokens=GREETING_MAX_TOKENS,
            )
        except CallRelayError as exc:
            logger.warning("[CHAT] initial greeting failed for %s: %s", character.id, exc)
            return None

        text = _extract_text(message)
        if text is None or not text.strip():
            logger.warning("[CHAT] initial greeting for %s came back empty", character.id)
            return None
        return text.strip()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _sdk_client(self, api_key: str) -> AsyncAnthropic:
        return AsyncAnthropic(
            api_key=api_key,
            base_url=api_base_url(self.api_url),
            max_retries=0,
            timeout=self.timeout,
            http_client=httpx.AsyncClient(timeout=self.timeout, transport=self._transport),
        )

    async def _create_message(self, *, system: str, messages: List[Dict[str, str]], max_tokens: int) -> Any:
        api_key = self.require_credentials()

        async with self._sdk_client(api_key) as client:
            model = await self._resolver.resolve(self.requested_model, client=client)

            try:
                return await client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    system=system,
                    messages=messages,
                )
            except APIStatusError as exc:
                logger.warning("[CHAT] upstream HTTP %s for model=%s", exc.status_code, model)
                raise UpstreamError("Claude API", status=exc.status_code, body=exc.response.text) from exc
            except APIConnectionError as exc:
                raise UpstreamError("Claude API", body=type(exc).__name__) from exc
