"""
Tests for ConversationContextStore.
"""
import pytest

from pyq_retrieval.models.context_schemas import ConversationContext
from pyq_retrieval.models.schemas import SearchIntent
from pyq_retrieval.services.context_store import ConversationContextStore


@pytest.fixture
def store(clock):
    return ConversationContextStore(ttl_seconds=3600, clock=clock)


def context(offset=0, ids=None):
    return ConversationContext(
        conversation_key="ignored",
        intent=SearchIntent(topic="polity", offset=offset),
        shown_question_ids=ids or [],
    )


def test_set_stamps_key_and_time(store, clock):
    store.set("chat-1", context(offset=30, ids=["a"]))

    stored = store.get("chat-1")
    assert stored.conversation_key == "chat-1"
    assert stored.last_updated == clock()
    assert stored.intent.offset == 30
    assert stored.shown_question_ids == ["a"]


def test_overwrite(store):
    store.set("chat-1", context(offset=30))
    store.set("chat-1", context(offset=60))

    assert store.get("chat-1").intent.offset == 60
    assert len(store) == 1


def test_clear(store):
    store.set("chat-1", context())
    store.clear("chat-1")
    store.clear("never-set")

    assert store.get("chat-1") is None


def test_expires_after_ttl(store, clock):
    store.set("chat-1", context())

    clock.advance(3600)
    assert store.get("chat-1") is not None
    clock.advance(1)
    assert store.get("chat-1") is None


def test_prune_expired(store, clock):
    store.set("old", context())
    clock.advance(3000)
    store.set("fresh", context())
    clock.advance(700)

    assert store.prune_expired() == 1
    assert store.get("fresh") is not None
    assert len(store) == 1


def test_missing_key_ignored(store):
    store.set(None, context())
    store.set("", context())

    assert store.get(None) is None
    assert len(store) == 0
