"""
Utility helpers for loading the static curriculum from a CSV seed file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from .store import CoachDocuments

REQUIRED_COLUMNS = ("phase_id", "phase_title", "week_id", "task_id", "text")


def _clean(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def curriculum_from_frame(frame: pd.DataFrame) -> Dict[str, Any]:
    """
    Fold one-row-per-task data into ``{"phases": [{"weeks": [{"tasks": [...]}]}]}``.

    Inputs:
        frame: DataFrame with at least phase_id, phase_title, week_id, task_id, text.
               Optional columns: week_title, week_goal, time, estimated_minutes, category.

    Outputs:
        Curriculum dict; row order fixes phase, week and task order.
    """

    missing = [column for column in REQUIRED_COLUMNS if column not in frame.columns]
    if missing:
        raise ValueError(f"Curriculum CSV is missing columns: {', '.join(missing)}")

    phases: List[Dict[str, Any]] = []
    phase_index: Dict[str, Dict[str, Any]] = {}
    week_index: Dict[int, Dict[str, Any]] = {}

    for row in frame.to_dict(orient="records"):
        phase_id = str(row["phase_id"])
        phase = phase_index.get(phase_id)
        if phase is None:
            phase = {"id": phase_id, "title": str(row["phase_title"]), "weeks": []}
            phase_index[phase_id] = phase
            phases.append(phase)

        week_id = int(row["week_id"])
        week = week_index.get(week_id)
        if week is None:
            week = {"id": week_id, "tasks": []}
            for column, key in (("week_title", "title"), ("week_goal", "goal")):
                value = _clean(row.get(column))
                if value is not None:
                    week[key] = str(value)
            week_index[week_id] = week
            phase["weeks"].append(week)

        task: Dict[str, Any] = {"id": str(row["task_id"]), "text": str(row["text"])}
        minutes = _clean(row.get("estimated_minutes"))
        if minutes is not None:
            task["estimatedMinutes"] = int(minutes)
        for column, key in (("time", "time"), ("category", "category")):
            value = _clean(row.get(column))
            if value is not None:
                task[key] = str(value)
        week["tasks"].append(task)

    return {"phases": phases}


def load_curriculum_csv(path: Path | str) -> Dict[str, Any]:
    frame = pd.read_csv(Path(path))
    return curriculum_from_frame(frame)


def seed_curriculum(documents: CoachDocuments, path: Path | str, overwrite: bool = False) -> bool:
    """
    Write the CSV curriculum to the store unless one is already there.

    Returns True when the store was written.
    """

    if not overwrite and documents.fetch_curriculum()["phases"]:
        return False
    documents.persist_curriculum(load_curriculum_csv(path))
    return True
