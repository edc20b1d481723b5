"""
Session-related models for the call relay.

These describe:
- a Session object (selected character + ordered conversation history)
- Turn entries (user / assistant)
"""

import time
from datetime import datetime, timezone
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class Turn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class Session(BaseModel):
    session_id: str
    selected_character: Optional[str] = None
    conversation_history: List[Turn] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    # Monotonic clock reading of the last access; drives TTL eviction.
    last_seen: float = Field(default_factory=time.monotonic)
