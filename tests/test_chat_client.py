import httpx
import pytest

from conftest import claude_reply, model_listing
from core.api.chat_client import GREETING_INSTRUCTION, INCOMING_CALL_PLACEHOLDER
from core.api.model_resolver import DEFAULT_MODEL
from core.characters.registry import get_character
from exceptions.exceptions import MissingCredential, UpstreamError
from runtime.models.session_models import Turn


SARA = get_character("sara")


@pytest.mark.asyncio
async def test_complete_replays_history_then_appends_user_message_once(make_chat_client, recorder) -> None:
    client = make_chat_client(lambda request: claude_reply("بەڵێ"))
    history = [
        Turn(role="assistant", content="ئەلۆ؟"),
        Turn(role="user", content="سڵاو"),
        Turn(role="assistant", content="چۆنی؟"),
    ]

    text = await client.complete(SARA, "باشم", history)

    assert text == "بەڵێ"
    body = recorder.json_bodies("/v1/messages")[0]
    assert body["messages"] == [
        {"role": "assistant", "content": "ئەلۆ؟"},
        {"role": "user", "content": "سڵاو"},
        {"role": "assistant", "content": "چۆنی؟"},
        {"role": "user", "content": "باشم"},
    ]
    assert body["system"] == SARA.system_prompt
    assert body["max_tokens"] == 256
    assert body["model"] == DEFAULT_MODEL
    assert len(history) == 3


@pytest.mark.asyncio
async def test_complete_skips_empty_turns_left_by_end_call(make_chat_client, recorder) -> None:
    client = make_chat_client(lambda request: claude_reply("ئەلۆ؟"))
    history = [
        Turn(role="assistant", content="ئەلۆ؟"),
        Turn(role="user", content="خوا حافیز"),
        Turn(role="assistant", content=""),
    ]

    await client.complete(SARA, "دیسان منم", history)

    body = recorder.json_bodies("/v1/messages")[0]
    assert body["messages"] == [
        {"role": "assistant", "content": "ئەلۆ؟"},
        {"role": "user", "content": "خوا حافیز"},
        {"role": "user", "content": "دیسان منم"},
    ]
    assert all(m["content"] for m in body["messages"])


@pytest.mark.asyncio
async def test_complete_sends_credentials_headers(make_chat_client, recorder) -> None:
    client = make_chat_client(lambda request: claude_reply("ok"))

    await client.complete(SARA, "hi", [])

    request = recorder.requests[0]
    assert request.headers["x-api-key"] == "test-key"
    assert request.headers["anthropic-version"] == "2023-06-01"


@pytest.mark.asyncio
async def test_complete_surfaces_upstream_status_and_body(make_chat_client) -> None:
    client = make_chat_client(lambda request: httpx.Response(529, text='{"type":"overloaded_error"}'))

    with pytest.raises(UpstreamError) as info:
        await client.complete(SARA, "hi", [])

    assert info.value.status == 529
    assert info.value.status_code == 502
    assert "Claude API HTTP 529" in str(info.value)
    assert "overloaded_error" in str(info.value)


@pytest.mark.parametrize("reply", [None, "   "])
@pytest.mark.asyncio
async def test_complete_rejects_empty_text(make_chat_client, reply) -> None:
    client = make_chat_client(lambda request: claude_reply(reply))

    with pytest.raises(UpstreamError, match="no text"):
        await client.complete(SARA, "hi", [])


@pytest.mark.asyncio
async def test_complete_wraps_transport_failures(make_chat_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    client = make_chat_client(handler)

    with pytest.raises(UpstreamError) as info:
        await client.complete(SARA, "hi", [])

    assert info.value.status is None
    assert "Claude API request failed: APIConnectionError" in str(info.value)


@pytest.mark.asyncio
async def test_complete_without_key_names_the_missing_credential(make_chat_client, recorder) -> None:
    client = make_chat_client(lambda request: claude_reply("never"), api_key=None)

    with pytest.raises(MissingCredential) as info:
        await client.complete(SARA, "hi", [])

    assert "CLAUDE_API_KEY" in str(info.value)
    assert info.value.status_code == 500
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_complete_uses_resolved_alias_model(make_chat_client, recorder) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/models":
            return model_listing([{"id": "claude-3-7-sonnet-20250219", "display_name": "Claude Sonnet 3.7"}])
        return claude_reply("ok")

    client = make_chat_client(handler, requested_model="sonnet 3.7")

    await client.complete(SARA, "one", [])
    await client.complete(SARA, "two", [])

    assert recorder.paths() == ["/v1/models", "/v1/messages", "/v1/messages"]
    assert {b["model"] for b in recorder.json_bodies("/v1/messages")} == {"claude-3-7-sonnet-20250219"}


@pytest.mark.asyncio
async def test_initial_greeting_uses_call_prompt_and_placeholder(make_chat_client, recorder) -> None:
    client = make_chat_client(lambda request: claude_reply("  ئەلۆ کێیە؟ "))

    greeting = await client.initial_greeting(SARA)

    assert greeting == "ئەلۆ کێیە؟"
    body = recorder.json_bodies("/v1/messages")[0]
    assert body["system"] == SARA.system_prompt + GREETING_INSTRUCTION
    assert body["messages"] == [{"role": "user", "content": INCOMING_CALL_PLACEHOLDER}]
    assert body["max_tokens"] == 100


@pytest.mark.asyncio
async def test_initial_greeting_failure_returns_none(make_chat_client) -> None:
    client = make_chat_client(lambda request: httpx.Response(500, text="down"))

    assert await client.initial_greeting(SARA) is None


@pytest.mark.asyncio
async def test_initial_greeting_without_key_returns_none(make_chat_client, recorder) -> None:
    client = make_chat_client(lambda request: claude_reply("never"), api_key=None)

    assert await client.initial_greeting(SARA) is None
    assert recorder.requests == []
