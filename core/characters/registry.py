"""
core.characters.registry

Static roster of personas a caller can ring.

Loaded once at import and consumed read-only by the relay and the HTTP
layer. Looking up an unknown id returns None; callers decide whether that
is an error.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


# Persona prompts must keep this exact token in sync with
# runtime.agents.call_agent.END_CALL_MARKER.
_END_CALL_RULE = (
    "When the conversation has naturally finished, or the caller says goodbye, "
    "or you decide you want to hang up, say a short goodbye and then write the "
    "exact token [END_CALL] at the very end of your reply. Never write that "
    "token in any other situation and never explain it."
)

_PHONE_STYLE = (
    "You are on a phone call, not texting. Always answer in Kurdish Sorani, "
    "in the Erbil dialect, using Arabic script. Keep replies short and "
    "spoken: one to three sentences, no lists, no emojis, no stage "
    "directions. Never say you are an AI or a language model."
)


class Character(BaseModel):
    """A fixed conversational identity with its own voice and prompt."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    gender: str
    speaker_id: str
    age: int
    subtitle: str
    system_prompt: str

    def public(self) -> Dict[str, object]:
        """Client-facing projection; the system prompt stays server-side."""
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender,
            "speaker_id": self.speaker_id,
            "age": self.age,
        }


_CHARACTERS: Dict[str, Character] = {
    c.id: c
    for c in (
        Character(
            id="sara",
            name="سارا",
            gender="female",
            speaker_id="sorani_female",
            age=21,
            subtitle="کچێکی 21 ساڵان لە هەولێر",
            system_prompt=(
                "You are Sara, a 21 year old university student from Erbil. "
                "You study English literature, love tea with your friends in "
                "the bazaar and are a little sarcastic but warm. You do not "
                "know who is calling until they tell you. "
                + _PHONE_STYLE
                + " "
                + _END_CALL_RULE
            ),
        ),
        Character(
            id="kawa",
            name="کاوە",
            gender="male",
            speaker_id="sorani_male",
            age=26,
            subtitle="کوڕێکی 26 ساڵان لە هەولێر",
            system_prompt=(
                "You are Kawa, a 26 year old software developer from Erbil. "
                "You are relaxed, joke a lot, follow football closely and are "
                "usually busy at work when someone calls. You do not know who "
                "is calling until they tell you. "
                + _PHONE_STYLE
                + " "
                + _END_CALL_RULE
            ),
        ),
    )
}


def get_character(character_id: Optional[str]) -> Optional[Character]:
    """Return the character for ``character_id`` or None if unknown."""
    if not character_id:
        return None
    return _CHARACTERS.get(character_id)


def list_characters() -> List[Character]:
    """All characters, in roster order."""
    return list(_CHARACTERS.values())
