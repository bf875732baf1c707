"""Unit tests for the bounded conversation store."""

import random

import pytest

from plan_coach.conversation import ConversationStore, sanitize_message, strip_empty_fields, trim_history
from plan_coach.models import AgentResponse, CoachMessage, WeeklyPlan
from plan_coach.store import conversation_path


def _messages(count):
    return [
        CoachMessage(role="user" if idx % 2 == 0 else "assistant", content=f"message {idx}", created_at=idx)
        for idx in range(1, count + 1)
    ]


@pytest.mark.unit
def test_trim_history_keeps_most_recent_in_ascending_order():
    messages = _messages(20)
    shuffled = messages[:]
    random.Random(7).shuffle(shuffled)

    trimmed = trim_history(shuffled, limit=12)

    assert [m.created_at for m in trimmed] == list(range(9, 21))


@pytest.mark.unit
def test_trim_history_with_short_history_keeps_everything():
    assert len(trim_history(_messages(3), limit=12)) == 3
    assert trim_history(_messages(3), limit=0) == []


@pytest.mark.unit
def test_save_persists_only_the_window(documents):
    store = ConversationStore(documents, history_limit=12)
    kept = store.save("learner-1", _messages(20))

    stored = documents.fetch_conversation("learner-1")
    assert len(kept) == 12
    assert [m["createdAt"] for m in stored] == list(range(9, 21))
    assert "updatedAt" in documents.store.get(conversation_path("learner-1"))


@pytest.mark.unit
def test_context_window_is_configured_separately(documents):
    store = ConversationStore(documents, history_limit=12, context_limit=4)
    window = store.context_window(_messages(10))
    assert [m.created_at for m in window] == [7, 8, 9, 10]


@pytest.mark.unit
def test_strip_empty_fields_removes_nulls_recursively():
    payload = {
        "role": "assistant",
        "operations": None,
        "weeklyPlan": {"week": 2, "tasks": ["a", None], "estimatedMinutes": None},
    }
    assert strip_empty_fields(payload) == {"role": "assistant", "weeklyPlan": {"week": 2, "tasks": ["a"]}}


@pytest.mark.unit
def test_sanitize_message_drops_absent_plan_and_operations():
    message = CoachMessage(role="assistant", content="hi", created_at=1)
    assert sanitize_message(message) == {"role": "assistant", "content": "hi", "createdAt": 1}


@pytest.mark.unit
def test_append_turn_stores_user_and_assistant(documents):
    store = ConversationStore(documents)
    response = AgentResponse(
        message="Plan below",
        operations=[],
        weekly_plan=WeeklyPlan(week=2, tasks=["Read docs"]),
    )

    stored = store.append_turn("learner-1", [], "Plan my week", response, created_at=500)

    assert [m.role for m in stored] == ["user", "assistant"]
    raw = documents.fetch_conversation("learner-1")
    assert raw[0] == {"role": "user", "content": "Plan my week", "createdAt": 500}
    assert raw[1] == {
        "role": "assistant",
        "content": "Plan below",
        "createdAt": 501,
        "weeklyPlan": {"week": 2, "tasks": ["Read docs"]},
    }


@pytest.mark.unit
def test_load_returns_sorted_messages(documents):
    documents.save_conversation(
        "learner-1",
        [
            {"role": "assistant", "content": "second", "createdAt": 2},
            {"role": "user", "content": "first", "createdAt": 1},
        ],
    )
    loaded = ConversationStore(documents).load("learner-1")
    assert [m.content for m in loaded] == ["first", "second"]


@pytest.mark.unit
def test_clear_drops_the_document(documents):
    store = ConversationStore(documents)
    store.save("learner-1", _messages(2))
    store.clear("learner-1")
    assert store.load("learner-1") == []


@pytest.mark.unit
def test_append_turn_sorts_after_existing_history(documents):
    store = ConversationStore(documents)
    history = [CoachMessage(role="assistant", content="earlier", created_at=900)]

    stored = store.append_turn("learner-1", history, "again", AgentResponse(message="sure"), created_at=900)

    assert [(m.content, m.created_at) for m in stored] == [("earlier", 900), ("again", 901), ("sure", 902)]
