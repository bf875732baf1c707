"""
System prompt assembly for the plan coach model call.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from .models import CoachMessage
from .parser import normalize_message_content

CURRICULUM_CHAR_LIMIT = 14_000
PROGRESS_CHAR_LIMIT = 5_000
REMINDER_TURNS = 4
REMINDER_CHAR_LIMIT = 280

COACH_SYSTEM_PROMPT = """
You are a Plan Coach Agent that adjusts a 12-week curriculum for one learner.

YOU MUST RETURN STRICT JSON:
{
  "message": "markdown text shown to the learner",
  "operations": [ ... ],
  "weeklyPlan": { "week": 3, "tasks": ["full task text", "..."], "estimatedMinutes": 180 }
}

Allowed operations (use these exact shapes):
- { "type": "update_status", "taskId": "...", "status": "todo|in_progress|done|skipped" }
- { "type": "reschedule", "taskId": "...", "newWeek": 4 }
- { "type": "add_task", "week": 4, "task": { "text": "...", "estimatedMinutes": 60, "category": "..." } }
- { "type": "delete_task", "taskId": "..." }

Two-phase protocol:
1. PROPOSE: when suggesting new work, return a weeklyPlan with the full task texts and
   leave operations empty. Never change the curriculum in a proposal turn.
2. CONFIRM: only after the learner clearly agrees (yes, sure, go ahead, add them...),
   return the matching operations and omit weeklyPlan.
   A turn has either a weeklyPlan or operations, never both.
3. If the learner declines, acknowledge it and return no operations.

Formatting rules for "message":
- Use markdown bullets, one task per line: - **Task name** (1 hr) short reason
- Never show raw JSON, task ids or field names to the learner.
- End every proposal with an explicit question such as "Shall I add these to Week 3?"
- Be concise and actionable.
""".strip()


def summarize_progress(progress: Dict[str, Any]) -> Dict[str, Any]:
    """
    Condense the progress document into what the model needs to plan.
    """

    task_progress = progress.get("taskProgress") or {}
    statuses = {
        task_id: (entry or {}).get("status", "todo")
        for task_id, entry in task_progress.items()
        if isinstance(entry, dict)
    }
    target = progress.get("hoursPerWeekTarget")
    return {
        "hoursPerWeekTarget": target if target is not None else "unknown",
        "focusAreas": progress.get("focusAreas") or [],
        "taskProgress": statuses,
        "completed": [task_id for task_id, status in statuses.items() if status == "done"],
        "skipped": [task_id for task_id, status in statuses.items() if status == "skipped"],
    }


def cap_json(value: Any, limit: int) -> str:
    """
    Serialise ``value`` compactly and cut it at ``limit`` characters.

    Truncation is silent and may leave invalid JSON.
    """

    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return text[: max(limit, 0)]


def _shorten(text: str, limit: int = REMINDER_CHAR_LIMIT) -> str:
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3].rstrip() + "..."


def build_context_reminder(history: Sequence[CoachMessage], turns: int = REMINDER_TURNS) -> str:
    """Digest of the last few turns so follow-ups like "more" keep their referent."""
    recent = list(history)[-turns:] if turns > 0 else []
    if not recent:
        return ""
    lines = ["Recent conversation (oldest first):"]
    for message in recent:
        speaker = "Coach" if message.role == "assistant" else "Learner"
        line = f"- {speaker}: {_shorten(normalize_message_content(message.content))}"
        if message.weekly_plan is not None and message.weekly_plan.tasks:
            proposed = "; ".join(message.weekly_plan.tasks)
            line += f" [proposed for Week {message.weekly_plan.week}: {_shorten(proposed)}]"
        lines.append(line)
    lines.append(
        "If the learner asks for more or different tasks, build on these suggestions "
        "instead of repeating them."
    )
    return "\n".join(lines)


def build_system_prompt(
    curriculum: Dict[str, Any],
    progress: Dict[str, Any],
    history: Sequence[CoachMessage] = (),
) -> str:
    sections = [
        COACH_SYSTEM_PROMPT,
        f"Curriculum summary: {cap_json(curriculum or {'phases': []}, CURRICULUM_CHAR_LIMIT)}",
        f"User progress summary: {cap_json(summarize_progress(progress or {}), PROGRESS_CHAR_LIMIT)}",
    ]
    reminder = build_context_reminder(history)
    if reminder:
        sections.append(reminder)
    return "\n\n".join(sections)


def build_chat_turns(history: Sequence[CoachMessage], user_message: str) -> List[Dict[str, str]]:
    turns = [
        {
            "role": "assistant" if message.role == "assistant" else "user",
            "content": normalize_message_content(message.content),
        }
        for message in history
        if message.content
    ]
    turns.append({"role": "user", "content": user_message})
    return turns
