"""
Bounded chat history for the coach, backed by the document store.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from .models import AgentResponse, CoachMessage
from .store import CoachDocuments, now_millis

DEFAULT_HISTORY_LIMIT = 12


def strip_empty_fields(value: Any) -> Any:
    """
    Drop ``None`` values from nested dicts/lists.

    The backing store rejects explicit nulls on write, so optional fields such as
    ``weeklyPlan`` or ``weeklyPlan.estimatedMinutes`` must be absent instead.
    """

    if isinstance(value, dict):
        return {key: strip_empty_fields(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [strip_empty_fields(item) for item in value if item is not None]
    return value


def sanitize_message(message: CoachMessage | Dict[str, Any]) -> Dict[str, Any]:
    payload = message.to_dict() if isinstance(message, CoachMessage) else dict(message)
    return strip_empty_fields(payload)


def trim_history(messages: Sequence[CoachMessage], limit: int = DEFAULT_HISTORY_LIMIT) -> List[CoachMessage]:
    """Sort by ``created_at`` and keep the most recent ``limit`` messages."""
    ordered = sorted(messages, key=lambda message: message.created_at)
    if limit <= 0:
        return []
    return ordered[-limit:]


class ConversationStore:
    """
    Loads, trims and persists ``coachConversations/<user>``.

    ``history_limit`` bounds what is written back; ``context_limit`` bounds what
    is replayed to the model. Messages beyond the window are dropped for good.
    """

    def __init__(
        self,
        documents: CoachDocuments,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        context_limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> None:
        self.documents = documents
        self.history_limit = history_limit
        self.context_limit = context_limit

    def load(self, user_id: str) -> List[CoachMessage]:
        raw_messages = self.documents.fetch_conversation(user_id)
        return trim_history([CoachMessage.from_dict(raw) for raw in raw_messages], limit=len(raw_messages))

    def context_window(self, messages: Sequence[CoachMessage]) -> List[CoachMessage]:
        return trim_history(messages, self.context_limit)

    def save(self, user_id: str, messages: Sequence[CoachMessage]) -> List[CoachMessage]:
        kept = trim_history(messages, self.history_limit)
        self.documents.save_conversation(user_id, [sanitize_message(message) for message in kept])
        return kept

    def append_turn(
        self,
        user_id: str,
        history: Sequence[CoachMessage],
        user_message: str,
        response: AgentResponse,
        created_at: Optional[int] = None,
    ) -> List[CoachMessage]:
        """Persist the user message plus the assistant reply and return the stored window."""
        stamp = created_at if created_at is not None else now_millis()
        # New messages always sort after the stored ones, even within one millisecond.
        stamp = max(stamp, max((message.created_at for message in history), default=-1) + 1)
        user_entry = CoachMessage(role="user", content=user_message, created_at=stamp)
        assistant_entry = CoachMessage(
            role="assistant",
            content=response.message,
            created_at=stamp + 1,
            operations=list(response.operations) or None,
            weekly_plan=response.weekly_plan,
        )
        return self.save(user_id, [*history, user_entry, assistant_entry])

    def clear(self, user_id: str) -> None:
        self.documents.clear_conversation(user_id)
