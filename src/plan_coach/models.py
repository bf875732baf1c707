"""
Dataclasses shared across the plan_coach package.

Curriculum and progress documents stay plain dicts (they are stored and
mutated wholesale); the conversational vocabulary lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

TASK_STATUSES = ("todo", "in_progress", "done", "skipped")
NO_RESPONSE = "No response"


def coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class UpdateStatus:
    """
    Upsert a task's status in the progress map.
    """

    task_id: str
    status: str
    type: ClassVar[str] = "update_status"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "taskId": self.task_id, "status": self.status}


@dataclass
class Reschedule:
    """
    Move a task to the end of another week.
    """

    task_id: str
    new_week: int
    type: ClassVar[str] = "reschedule"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "taskId": self.task_id, "newWeek": self.new_week}


@dataclass
class NewTask:
    text: str
    id: Optional[str] = None
    estimated_minutes: Optional[int] = None
    category: Optional[str] = None
    time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"text": self.text}
        if self.id:
            payload["id"] = self.id
        if self.estimated_minutes is not None:
            payload["estimatedMinutes"] = self.estimated_minutes
        if self.category:
            payload["category"] = self.category
        if self.time:
            payload["time"] = self.time
        return payload


@dataclass
class AddTask:
    """
    Append a new task to a week.
    """

    week: int
    task: NewTask
    type: ClassVar[str] = "add_task"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "week": self.week, "task": self.task.to_dict()}


@dataclass
class DeleteTask:
    """
    Remove a task from whichever week holds it.
    """

    task_id: str
    type: ClassVar[str] = "delete_task"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "taskId": self.task_id}


AgentOperation = Union[UpdateStatus, Reschedule, AddTask, DeleteTask]


def _plan_task_text(task: Any) -> Optional[str]:
    """Plan entries are task texts; object entries keep their minutes as a ``(<n> min)`` suffix."""
    if task is None:
        return None
    if isinstance(task, dict):
        text = str(task.get("text") or "").strip()
        if not text:
            return None
        minutes = coerce_int(task.get("estimatedMinutes"))
        return f"{text} ({minutes} min)" if minutes and minutes > 0 else text
    return str(task).strip() or None


@dataclass
class WeeklyPlan:
    """
    Unapplied proposal: candidate task texts for one week.
    """

    week: int
    tasks: List[str] = field(default_factory=list)
    estimated_minutes: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"week": self.week, "tasks": list(self.tasks)}
        if self.estimated_minutes is not None:
            payload["estimatedMinutes"] = self.estimated_minutes
        return payload

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["WeeklyPlan"]:
        """Build a plan from model/storage output; None when the shape is unusable."""
        if isinstance(raw, WeeklyPlan):
            return raw
        if not isinstance(raw, dict):
            return None
        week = coerce_int(raw.get("week"))
        tasks = raw.get("tasks")
        if week is None or not isinstance(tasks, list):
            return None
        return cls(
            week=week,
            tasks=[text for text in (_plan_task_text(task) for task in tasks) if text],
            estimated_minutes=coerce_int(raw.get("estimatedMinutes")),
        )


@dataclass
class AgentResponse:
    """
    Structured reply returned to the caller for one user turn.

    Operations are kept in their tagged wire form so that shapes we do not
    recognise are carried through untouched.
    """

    message: str = NO_RESPONSE
    operations: List[Dict[str, Any]] = field(default_factory=list)
    weekly_plan: Optional[WeeklyPlan] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "message": self.message or NO_RESPONSE,
            "operations": list(self.operations),
        }
        if self.weekly_plan is not None:
            payload["weeklyPlan"] = self.weekly_plan.to_dict()
        return payload


class TurnKind(str, Enum):
    """
    Role of an assistant turn in the propose → confirm → apply protocol.
    """

    CHAT = "chat"
    PROPOSAL = "proposal"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


@dataclass
class CoachMessage:
    """
    One persisted chat message. `created_at` is epoch milliseconds.
    """

    role: str
    content: str
    created_at: int
    operations: Optional[List[Dict[str, Any]]] = None
    weekly_plan: Optional[WeeklyPlan] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "role": self.role,
            "content": self.content,
            "createdAt": self.created_at,
        }
        if self.operations is not None:
            payload["operations"] = list(self.operations)
        if self.weekly_plan is not None:
            payload["weeklyPlan"] = self.weekly_plan.to_dict()
        return payload

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "CoachMessage":
        operations = raw.get("operations")
        return cls(
            role="assistant" if raw.get("role") == "assistant" else "user",
            content=str(raw.get("content") or ""),
            created_at=coerce_int(raw.get("createdAt")) or 0,
            operations=list(operations) if isinstance(operations, list) else None,
            weekly_plan=WeeklyPlan.from_dict(raw.get("weeklyPlan")),
        )
