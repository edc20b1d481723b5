import pytest

from runtime.models.session_models import Turn
from runtime.store.session_store import SessionStore


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_same_token_returns_same_session_object() -> None:
    store = SessionStore()
    first = store.get_or_create("abc")
    first.selected_character = "sara"

    assert store.get_or_create("abc") is first
    assert store.get_or_create("abc").selected_character == "sara"


def test_distinct_tokens_never_alias() -> None:
    store = SessionStore()
    a = store.get_or_create("a")
    b = store.get_or_create("b")

    store.append_turns(a, [Turn(role="user", content="hi")])

    assert a is not b
    assert b.conversation_history == []
    assert len(store) == 2


def test_new_session_starts_without_character_or_history() -> None:
    session = SessionStore().get_or_create("fresh")

    assert session.session_id == "fresh"
    assert session.selected_character is None
    assert session.conversation_history == []


def test_set_character_clears_history() -> None:
    store = SessionStore()
    session = store.get_or_create("t")
    store.append_turns(session, [Turn(role="user", content="x"), Turn(role="assistant", content="y")])

    store.set_character(session, "kawa")

    assert session.selected_character == "kawa"
    assert session.conversation_history == []


def test_append_turns_keeps_order() -> None:
    store = SessionStore()
    session = store.get_or_create("t")
    store.append_turns(session, [Turn(role="assistant", content="hello")])
    store.append_turns(session, [Turn(role="user", content="q"), Turn(role="assistant", content="a")])

    assert [(t.role, t.content) for t in session.conversation_history] == [
        ("assistant", "hello"),
        ("user", "q"),
        ("assistant", "a"),
    ]


def test_clear_keeps_character_and_reset_drops_it() -> None:
    store = SessionStore()
    session = store.get_or_create("t")
    store.set_character(session, "sara")
    store.append_turns(session, [Turn(role="assistant", content="hello")])

    store.clear(session)
    assert session.selected_character == "sara"
    assert session.conversation_history == []

    store.reset(session)
    store.reset(session)
    assert session.selected_character is None
    assert session.conversation_history == []


def test_least_recently_used_session_is_evicted() -> None:
    store = SessionStore(max_entries=2, ttl_seconds=None)
    a = store.get_or_create("a")
    store.get_or_create("b")
    store.get_or_create("a")  # touch a, so b is now oldest
    store.get_or_create("c")

    assert "a" in store
    assert "b" not in store
    assert "c" in store
    assert store.get_or_create("a") is a


def test_idle_sessions_expire_and_come_back_empty() -> None:
    clock = FakeClock()
    store = SessionStore(max_entries=10, ttl_seconds=60, clock=clock)
    old = store.get_or_create("idle")
    store.set_character(old, "sara")

    clock.now += 61
    renewed = store.get_or_create("idle")

    assert renewed is not old
    assert renewed.selected_character is None


def test_active_sessions_do_not_expire() -> None:
    clock = FakeClock()
    store = SessionStore(max_entries=10, ttl_seconds=60, clock=clock)
    session = store.get_or_create("busy")

    for _ in range(5):
        clock.now += 30
        assert store.get_or_create("busy") is session


def test_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        SessionStore(max_entries=0)


def test_turns_are_immutable() -> None:
    turn = Turn(role="user", content="hi")
    with pytest.raises(Exception):
        turn.content = "changed"
