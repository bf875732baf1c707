"""
Ingress normalisation for coach operations.

The model is free to emit operations in the current tagged form
(``{"type": "add_task", ...}``) or in the legacy form that used an
``operation`` field as the tag. Everything is rewritten into the tagged form
once, here, before anything else looks at it.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .models import (
    TASK_STATUSES,
    AddTask,
    AgentOperation,
    DeleteTask,
    NewTask,
    Reschedule,
    UpdateStatus,
    coerce_int,
)

OPERATION_TYPES = ("update_status", "reschedule", "add_task", "delete_task")
_TASK_FIELDS = ("id", "text", "estimatedMinutes", "category", "time")


def normalize_operation(raw: Any) -> Any:
    """
    Rewrite a legacy ``operation``-tagged dict into the ``type``-tagged form.

    Inputs:
        raw: Anything the model produced inside ``operations``.

    Outputs:
        A new tagged dict for legacy shapes; every other value is returned
        unchanged (unknown shapes are never dropped).
    """

    if not isinstance(raw, dict) or "type" in raw:
        return raw
    legacy_tag = raw.get("operation")
    if not isinstance(legacy_tag, str):
        return raw

    normalized: Dict[str, Any] = {"type": legacy_tag}
    normalized.update({key: value for key, value in raw.items() if key != "operation"})

    # Older prompts produced add_task with the task fields flattened.
    if legacy_tag == "add_task" and "task" not in normalized and "text" in normalized:
        normalized["task"] = {key: normalized.pop(key) for key in _TASK_FIELDS if key in normalized}
    return normalized


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def operation_from_dict(raw: Any) -> Optional[AgentOperation]:
    """
    Coerce a wire operation into its typed variant; None for unrecognised shapes.
    """

    if isinstance(raw, (UpdateStatus, Reschedule, AddTask, DeleteTask)):
        return raw
    raw = normalize_operation(raw)
    if not isinstance(raw, dict):
        return None

    op_type = raw.get("type")
    if op_type == "update_status":
        task_id = _first(raw, "taskId", "task_id")
        status = raw.get("status")
        if not task_id or status not in TASK_STATUSES:
            return None
        return UpdateStatus(task_id=str(task_id), status=status)

    if op_type == "reschedule":
        task_id = _first(raw, "taskId", "task_id")
        new_week = coerce_int(_first(raw, "newWeek", "new_week"))
        if not task_id or new_week is None:
            return None
        return Reschedule(task_id=str(task_id), new_week=new_week)

    if op_type == "add_task":
        week = coerce_int(raw.get("week"))
        task = raw.get("task")
        if week is None or not isinstance(task, dict):
            return None
        text = str(task.get("text") or "").strip()
        if not text:
            return None
        return AddTask(
            week=week,
            task=NewTask(
                text=text,
                id=str(task["id"]) if task.get("id") else None,
                estimated_minutes=coerce_int(_first(task, "estimatedMinutes", "estimated_minutes")),
                category=task.get("category") or None,
                time=task.get("time") or None,
            ),
        )

    if op_type == "delete_task":
        task_id = _first(raw, "taskId", "task_id")
        if not task_id:
            return None
        return DeleteTask(task_id=str(task_id))

    return None


def describe_operation(op: Any) -> str:
    """Human-readable one-liner for a confirmed operation."""
    typed = operation_from_dict(op)
    if isinstance(typed, UpdateStatus):
        return f"Update {typed.task_id} → {typed.status}"
    if isinstance(typed, Reschedule):
        return f"Move {typed.task_id} → Week {typed.new_week}"
    if isinstance(typed, DeleteTask):
        return f"Remove task: {typed.task_id}"
    if isinstance(typed, AddTask):
        return f"Add task to Week {typed.week}: {typed.task.text or 'New task'}"
    return f"Unrecognised operation: {op!r}"
