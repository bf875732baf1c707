"""
Pure, local application of confirmed coach operations.

``apply_operations`` never mutates its inputs: it works on deep copies and
returns the new curriculum and progress map. Operations whose targets cannot
be found are skipped without error.
"""

from __future__ import annotations

import copy
import itertools
import logging
import time
import uuid
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .models import AddTask, DeleteTask, Reschedule, UpdateStatus, coerce_int
from .operations import operation_from_dict

logger = logging.getLogger(__name__)

_task_counter = itertools.count(1)


def generate_task_id() -> str:
    """Unique even for several adds inside the same millisecond."""
    stamp = int(time.time() * 1000)
    return f"auto-{stamp}-{next(_task_counter)}-{uuid.uuid4().hex[:6]}"


def format_task_time(estimated_minutes: Optional[int]) -> str:
    if not estimated_minutes or estimated_minutes <= 0:
        return "1 hr"
    hours = int(estimated_minutes / 60 + 0.5) or 1
    return f"{hours} hr"


def is_duplicate_task(text: str, existing_texts: Iterable[str]) -> bool:
    """
    Case-insensitive containment check in either direction.

    Known to be aggressive: "Set up database" blocks "Set up database backups".
    """

    candidate = text.strip().lower()
    if not candidate:
        return False
    for existing in existing_texts:
        other = (existing or "").strip().lower()
        if not other:
            continue
        if candidate == other or candidate in other or other in candidate:
            return True
    return False


def _iter_weeks(curriculum: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    for phase in curriculum.get("phases") or []:
        for week in phase.get("weeks") or []:
            yield week


def _find_week(curriculum: Dict[str, Any], week_id: int) -> Optional[Dict[str, Any]]:
    for week in _iter_weeks(curriculum):
        if coerce_int(week.get("id")) == week_id:
            return week
    return None


def _find_task(curriculum: Dict[str, Any], task_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
    for week in _iter_weeks(curriculum):
        for index, task in enumerate(week.get("tasks") or []):
            if task.get("id") == task_id:
                return week, index
    return None


def _reschedule(curriculum: Dict[str, Any], op: Reschedule) -> bool:
    located = _find_task(curriculum, op.task_id)
    target = _find_week(curriculum, op.new_week)
    if located is None or target is None:
        return False
    source, index = located
    task = source["tasks"].pop(index)
    target.setdefault("tasks", []).append(task)
    return True


def _add_task(curriculum: Dict[str, Any], op: AddTask) -> bool:
    target = _find_week(curriculum, op.week)
    if target is None:
        return False
    tasks: List[Dict[str, Any]] = target.setdefault("tasks", [])
    if is_duplicate_task(op.task.text, (task.get("text", "") for task in tasks)):
        logger.debug("Skipping near-duplicate task for week %s: %s", op.week, op.task.text)
        return False

    new_task: Dict[str, Any] = {
        "id": op.task.id or generate_task_id(),
        "text": op.task.text,
        "time": op.task.time or format_task_time(op.task.estimated_minutes),
    }
    if op.task.estimated_minutes is not None:
        new_task["estimatedMinutes"] = op.task.estimated_minutes
    if op.task.category:
        new_task["category"] = op.task.category
    tasks.append(new_task)
    return True


def _delete_task(curriculum: Dict[str, Any], op: DeleteTask) -> bool:
    located = _find_task(curriculum, op.task_id)
    if located is None:
        return False
    week, index = located
    week["tasks"].pop(index)
    return True


def apply_operations(
    operations: Iterable[Any],
    curriculum: Dict[str, Any],
    task_progress: Dict[str, Dict[str, Any]],
) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
    """
    Apply operations in order to copies of the curriculum and progress map.

    Inputs:
        operations: Tagged dicts, legacy ``operation`` dicts or typed operations.
        curriculum: ``{"phases": [...]}`` document.
        task_progress: Mapping of task id → ``{status, userConfidence?, notes?}``.

    Outputs:
        ``(curriculum', task_progress')``. Progress entries may reference task ids
        that are not (or no longer) in the curriculum.
    """

    updated_curriculum = copy.deepcopy(curriculum)
    updated_progress = copy.deepcopy(task_progress)

    for raw in operations:
        op = operation_from_dict(raw)
        if op is None:
            logger.debug("Ignoring unrecognised operation: %r", raw)
            continue
        if isinstance(op, UpdateStatus):
            entry = dict(updated_progress.get(op.task_id) or {})
            entry["status"] = op.status
            updated_progress[op.task_id] = entry
            continue
        if isinstance(op, Reschedule):
            applied = _reschedule(updated_curriculum, op)
        elif isinstance(op, AddTask):
            applied = _add_task(updated_curriculum, op)
        else:
            applied = _delete_task(updated_curriculum, op)
        if not applied:
            logger.debug("Operation had no effect: %s", op.to_dict())

    return updated_curriculum, updated_progress
