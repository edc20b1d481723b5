"""CallAgent implementation.

Responsible for:
- binding a session to a character and producing the opening greeting
- turning one caller message into one persona reply
- keeping the session history consistent (user turn, then assistant turn)
- recognizing the end-of-call marker in the reply
- voicing replies without letting speech failures break the turn

Per-session state machine::

    NoCharacterSelected --select--> CharacterSelected --send--> AwaitingReply
            ^                                                     |   ^
            +-------------------------reset-----------------------+   +--send

End-of-call protocol: the chat upstream has no structured way to say "hang
up", so each persona prompt tells the model to finish its goodbye with
END_CALL_MARKER. The agent treats that token as a signal, not content: it is
stripped before the reply is shown, voiced or stored in history. Changing
the token means changing the persona prompts in core/characters/registry.py
as well.
"""

import asyncio
import logging
import re
import weakref
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from core.characters.registry import Character, get_character
from exceptions.exceptions import (
    DegradedFeature,
    EmptyMessage,
    InvalidCharacter,
    NoCharacterSelected,
)
from ..models.session_models import Session, Turn


logger = logging.getLogger(__name__)

END_CALL_MARKER = "[END_CALL]"
_END_CALL_RE = re.compile(r"\s*" + re.escape(END_CALL_MARKER) + r"\s*")


def split_end_call(text: str) -> Tuple[str, bool]:
    """Strip every end-of-call marker from ``text``.

    Returns the cleaned, trimmed text and whether a marker was present.

    Each marker and the whitespace on both sides of it collapse to one
    space, so ``"a [END_CALL] b"`` becomes ``"a b"``. Deleting the marker
    together with its surrounding whitespace would fuse the words into
    ``"ab"``, and deleting only the token would leave ``"a  b"`` with a
    double space that shows in the transcript and is read out by TTS.
    A reply made only of the marker comes back as ``""``.
    """
    if END_CALL_MARKER not in text:
        return text.strip(), False
    return _END_CALL_RE.sub(" ", text).strip(), True


@dataclass(frozen=True)
class SelectResult:
    character: Character
    initial_message: Optional[str]
    initial_audio: Optional[str]


@dataclass(frozen=True)
class SendResult:
    response: str
    end_call: bool
    audio: Optional[str]


class CallAgent:
    """Conversation relay between a caller session and the persona upstreams.

    Parameters
    ----------
    session_store:
        Store owning Session objects and all history mutation.
    chat_client:
        Upstream chat adapter exposing ``complete``, ``initial_greeting`` and
        ``require_credentials``.
    speech_client:
        Optional text-to-speech adapter exposing ``synthesize``. When None,
        replies carry no audio.
    log_store:
        Optional event sink exposing ``log_event(event_type, payload)``.

    Concurrency: operations on the same session_id are serialized with a
    per-session asyncio.Lock; different sessions proceed independently.
    """

    def __init__(self, session_store, chat_client, speech_client=None, log_store=None):
        self.session_store = session_store
        self.chat_client = chat_client
        self.speech_client = speech_client
        self.log_store = log_store
        # Locks disappear once no in-flight operation holds a reference.
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def select(self, session: Session, character_id: Optional[str]) -> SelectResult:
        """Start a call with ``character_id`` on ``session``.

        Raises InvalidCharacter for unknown ids and MissingCredential when
        the chat upstream is not configured; the session is untouched in
        both cases.
        """
        character = get_character(character_id)
        if character is None:
            raise InvalidCharacter(character_id)
        self.chat_client.require_credentials()

        async with self._lock_for(session.session_id):
            self.session_store.set_character(session, character.id)

            initial_message = await self.chat_client.initial_greeting(character)
            initial_audio = None
            if initial_message:
                self.session_store.append_turns(
                    session, [Turn(role="assistant", content=initial_message)]
                )
                initial_audio = await self._try_speech(initial_message, character)

        self._log_event(
            "character_selected",
            {
                "session_id": session.session_id,
                "character": character.id,
                "greeting": initial_message is not None,
                "audio": initial_audio is not None,
            },
        )
        return SelectResult(
            character=character,
            initial_message=initial_message,
            initial_audio=initial_audio,
        )

    async def send(
        self,
        session: Session,
        user_message: Optional[str],
        fallback_character: Optional[str] = None,
    ) -> SendResult:
        """Relay one caller message and return the persona's reply.

        ``fallback_character`` is used only when the session has no
        selection yet (e.g. the session expired mid-call); it is then bound
        to the session.

        History grows by exactly two turns on success and is left untouched
        on any failure.
        """
        async with self._lock_for(session.session_id):
            character = get_character(session.selected_character)
            if character is None:
                character = get_character((fallback_character or "").strip())
                if character is None:
                    raise NoCharacterSelected()

            text = (user_message or "").strip()
            if not text:
                raise EmptyMessage()

            if session.selected_character != character.id:
                self.session_store.set_character(session, character.id)

            # Snapshot: the current user turn is not stored yet, so complete()
            # replays exactly what came before it.
            history = list(session.conversation_history)
            raw_reply = await self.chat_client.complete(character, text, history)

            reply, end_call = split_end_call(raw_reply)
            self.session_store.append_turns(
                session,
                [
                    Turn(role="user", content=text),
                    Turn(role="assistant", content=reply),
                ],
            )

            audio = await self._try_speech(reply, character)

        self._log_event(
            "call_ended" if end_call else "turn_completed",
            {
                "session_id": session.session_id,
                "character": character.id,
                "history_len": len(session.conversation_history),
                "end_call": end_call,
                "audio": audio is not None,
            },
        )
        return SendResult(response=reply, end_call=end_call, audio=audio)

    async def reset(self, session: Session) -> None:
        """Hang up: forget the character and the history. Idempotent."""
        async with self._lock_for(session.session_id):
            self.session_store.reset(session)
        self._log_event("conversation_reset", {"session_id": session.session_id})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def _try_speech(self, text: str, character: Character) -> Optional[str]:
        """Voice ``text``; any speech failure means no audio, not an error."""
        if self.speech_client is None or not text:
            return None
        try:
            return await self.speech_client.synthesize(text, character.speaker_id)
        except DegradedFeature as exc:
            logger.warning("[SPEECH] %s (character=%s)", exc, character.id)
            return None

    def _log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self.log_store is None:
            return
        try:
            self.log_store.log_event(event_type=event_type, payload=payload)
        except Exception:
            # Event logging failures should not affect the call.
            logger.debug("[EVENT] failed to log %s", event_type, exc_info=True)
