import json
from typing import Callable, List, Optional

import httpx
import pytest

from core.api.chat_client import ChatClient
from core.api.model_resolver import ModelResolver
from core.api.speech_client import SpeechClient
from runtime.models.session_models import Session
from runtime.store.session_store import SessionStore


CLAUDE_URL = "https://claude.test/v1/messages"
TTS_URL = "https://tts.test/api/tts-proxy"


def claude_reply(text: Optional[str]) -> httpx.Response:
    content = [] if text is None else [{"type": "text", "text": text}]
    return httpx.Response(
        200,
        json={
            "id": "msg_test",
            "type": "message",
            "role": "assistant",
            "model": "claude-test",
            "content": content,
            "stop_reason": "end_turn",
            "stop_sequence": None,
            "usage": {"input_tokens": 1, "output_tokens": 1},
        },
    )


def model_listing(entries: list) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "data": [dict(entry, type="model", created_at="2025-02-19T00:00:00Z") for entry in entries],
            "has_more": False,
            "first_id": entries[0]["id"] if entries else None,
            "last_id": entries[-1]["id"] if entries else None,
        },
    )


class Recorder:
    """Collects every request a MockTransport handler sees."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []

    def json_bodies(self, path: Optional[str] = None) -> List[dict]:
        return [
            json.loads(r.content)
            for r in self.requests
            if path is None or r.url.path == path
        ]

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def recording_transport(recorder: Recorder, handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    def _handle(request: httpx.Request) -> httpx.Response:
        recorder.requests.append(request)
        return handler(request)

    return httpx.MockTransport(_handle)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def make_chat_client(recorder):
    """Build a ChatClient whose upstream answers with ``handler``."""

    def _make(handler, api_key: Optional[str] = "test-key", requested_model: str = "") -> ChatClient:
        return ChatClient(
            api_key=api_key,
            api_url=CLAUDE_URL,
            requested_model=requested_model,
            max_tokens=256,
            transport=recording_transport(recorder, handler),
            model_resolver=ModelResolver(),
        )

    return _make


@pytest.fixture
def make_speech_client():
    def _make(handler, api_key: Optional[str] = "tts-key") -> SpeechClient:
        return SpeechClient(
            api_key=api_key,
            api_url=TTS_URL,
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(max_entries=10, ttl_seconds=None)


@pytest.fixture
def session(store) -> Session:
    return store.get_or_create("caller-1")
