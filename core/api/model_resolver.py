"""
core.api.model_resolver

Process-wide resolution of the chat model identifier.

Operators may configure CLAUDE_MODEL with a loose alias such as
"sonnet 3.7" or "claude-3-7-sonnet". Those aliases are looked up once
against the upstream model listing and the concrete id is cached for the
rest of the process. Dated snapshot ids ("claude-3-7-sonnet-20250219") are
already concrete and are used verbatim.

Operational note: the cache is never invalidated. If the upstream roster
changes (a model is retired or a newer snapshot appears), the process keeps
using the id it resolved at first use until it is restarted.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic

from exceptions.exceptions import UpstreamError


logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-3-5-haiku-20241022"
LISTING_PAGE_SIZE = 100

# "sonnet 3.7", "3.7 sonnet", "claude-3-7-sonnet", "Sonnet3.7", ...
_AMBIGUOUS_ALIAS = re.compile(
    r"(sonnet[\s\-_]*3[.\-_]?7|3[.\-_]?7[\s\-_]*sonnet)",
    re.IGNORECASE,
)
_DATED_SNAPSHOT = re.compile(r"-\d{8}$")
_SONNET = re.compile(r"sonnet", re.IGNORECASE)
_VERSION_37 = re.compile(r"3[.\-_]?7", re.IGNORECASE)


def is_ambiguous_alias(name: str) -> bool:
    if _DATED_SNAPSHOT.search(name.strip()):
        return False
    return bool(_AMBIGUOUS_ALIAS.search(name))


def _pick_listed_model(entries: Optional[Iterable[Any]]) -> Optional[str]:
    """Return the first listed id that looks like a Sonnet 3.7 model."""
    if entries is None:
        return None

    for entry in entries:
        model_id = str(getattr(entry, "id", None) or "")
        display_name = str(getattr(entry, "display_name", None) or "")
        haystack = f"{model_id} {display_name}"
        if _SONNET.search(haystack) and _VERSION_37.search(haystack):
            return model_id.strip() or None
    return None


class ModelResolver:
    """Resolves a requested model name once and remembers the answer.

    The first successful ``resolve`` call fixes the result; every later call
    returns it unchanged, whatever name is requested.
    """

    def __init__(self) -> None:
        self._resolved: Optional[str] = None

    @property
    def resolved(self) -> Optional[str]:
        return self._resolved

    async def resolve(self, requested_name: Optional[str], *, client: AsyncAnthropic) -> str:
        if self._resolved:
            return self._resolved

        requested = (requested_name or "").strip()

        if not requested:
            self._resolved = DEFAULT_MODEL
        elif not is_ambiguous_alias(requested):
            self._resolved = requested
        else:
            self._resolved = await self._lookup(requested, client)

        logger.info("[MODEL] using model=%s (requested=%r)", self._resolved, requested)
        return self._resolved

    async def _lookup(self, requested: str, client: AsyncAnthropic) -> str:
        try:
            page = await client.models.list(limit=LISTING_PAGE_SIZE)
        except APIStatusError as exc:
            raise UpstreamError("Claude models list", status=exc.status_code, body=exc.response.text) from exc
        except APIConnectionError as exc:
            raise UpstreamError("Claude models list", body=type(exc).__name__) from exc

        # An undecodable listing comes back without a usable ``data`` list.
        entries = getattr(page, "data", None)
        if not isinstance(entries, list):
            logger.warning("[MODEL] models list was not decodable; falling back to %s", DEFAULT_MODEL)
            entries = None

        match = _pick_listed_model(entries)
        if match is None:
            logger.warning(
                "[MODEL] no listed model matches %r; falling back to %s",
                requested,
                DEFAULT_MODEL,
            )
            return DEFAULT_MODEL
        return match


# -------------------------------------------------------------------
# Process-wide singleton
# -------------------------------------------------------------------

_RESOLVER = ModelResolver()


def get_model_resolver() -> ModelResolver:
    """Return the shared resolver (initialized once, never torn down)."""
    return _RESOLVER
