"""
Progress snapshot helpers: current week, completion counts and a text report.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from .models import CoachMessage, coerce_int


def completed_task_ids(progress: Dict[str, Any]) -> Set[str]:
    task_progress = progress.get("taskProgress") or {}
    return {
        task_id
        for task_id, entry in task_progress.items()
        if isinstance(entry, dict) and entry.get("status") == "done"
    }


def get_current_week(phases: Iterable[Dict[str, Any]], completed: Set[str]) -> int:
    """
    First week that still has an unfinished task; the last week once everything is done.
    """

    last_week: Optional[int] = None
    for phase in phases:
        for week in phase.get("weeks") or []:
            week_id = coerce_int(week.get("id"))
            if week_id is None:
                continue
            last_week = week_id
            if not all(task.get("id") in completed for task in week.get("tasks") or []):
                return week_id
    return last_week if last_week is not None else 1


@dataclass
class ProgressSnapshot:
    current_week: int
    total_weeks: int
    completed_tasks: int
    total_tasks: int
    hours_per_week_target: Optional[float] = None
    weekly_plan_minutes: Optional[int] = None

    @property
    def percent_complete(self) -> int:
        if not self.total_tasks:
            return 0
        return min(100, round(self.completed_tasks / self.total_tasks * 100))


def progress_snapshot(
    curriculum: Dict[str, Any],
    progress: Dict[str, Any],
    messages: Sequence[CoachMessage] = (),
) -> ProgressSnapshot:
    phases = curriculum.get("phases") or []
    completed = completed_task_ids(progress)
    task_ids: List[str] = [
        task.get("id")
        for phase in phases
        for week in phase.get("weeks") or []
        for task in week.get("tasks") or []
    ]
    total_weeks = sum(len(phase.get("weeks") or []) for phase in phases)

    weekly_plan_minutes = None
    for message in reversed(messages):
        if message.weekly_plan is not None and message.weekly_plan.estimated_minutes:
            weekly_plan_minutes = message.weekly_plan.estimated_minutes
            break

    return ProgressSnapshot(
        current_week=get_current_week(phases, completed),
        total_weeks=total_weeks,
        completed_tasks=sum(1 for task_id in task_ids if task_id in completed),
        total_tasks=len(task_ids),
        hours_per_week_target=progress.get("hoursPerWeekTarget"),
        weekly_plan_minutes=weekly_plan_minutes,
    )


def format_progress_report(snapshot: ProgressSnapshot) -> str:
    lines = [
        f"Week {snapshot.current_week} of {snapshot.total_weeks}",
        f"{snapshot.completed_tasks}/{snapshot.total_tasks} tasks ({snapshot.percent_complete}%)",
    ]
    if snapshot.hours_per_week_target:
        lines.append(f"~{snapshot.hours_per_week_target} hrs/week target")
    if snapshot.weekly_plan_minutes:
        lines.append(f"This week: ~{snapshot.weekly_plan_minutes} minutes planned")
    return "\n".join(lines)
