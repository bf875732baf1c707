"""
Propose → confirm → apply: decide what an assistant turn is allowed to do.

Turn kinds are derived once per turn from the user's wording, the parsed
model reply and the previous assistant message, and carried forward as a
TurnKind. A turn never leaves here with both operations and a weekly plan.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import AddTask, AgentResponse, CoachMessage, NewTask, TurnKind, WeeklyPlan
from .operations import operation_from_dict
from .parser import normalize_message_content

logger = logging.getLogger(__name__)

DEFAULT_TASK_MINUTES = 60
MIN_TASK_LINE_CHARS = 5

_AFFIRMATIVE = re.compile(
    r"\b(yes|yeah|yep|yup|sure|ok|okay|do it|add them|add it|add those|go ahead|"
    r"confirm|confirmed|sounds good|please do|let'?s do it|absolutely|approved?)\b",
    re.IGNORECASE,
)
_NEGATIVE_OPENER = re.compile(r"^\W*(no|not|nope|nah|don'?t|do not|not now|cancel|stop)\b", re.IGNORECASE)
_HEDGE = re.compile(r"\bnot\s+(sure|ok|okay)\b", re.IGNORECASE)
_NEGATIVE = re.compile(r"\b(no|nope|nah|don'?t|do not|not now|cancel|never mind|skip it)\b", re.IGNORECASE)

_BULLET_LINE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+(?P<body>.+?)\s*$")
_BOLD = re.compile(r"\*\*(?P<title>.+?)\*\*")
_DURATION = re.compile(r"(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>hours?|hrs?|minutes?|mins?)\b", re.IGNORECASE)
_TRAILING_PAREN = re.compile(r"\s*\([^)]*\)\s*$")
_PAREN_GROUP = re.compile(r"\s*\([^)]*\)")
_WEEK = re.compile(r"\bweek\s+(\d+)\b", re.IGNORECASE)


def is_affirmative(text: str) -> bool:
    """Whole-word match against the confirmation vocabulary, unless the reply opens with a refusal or hedges."""
    if not text or not text.strip():
        return False
    if _NEGATIVE_OPENER.match(text) or _HEDGE.search(text):
        return False
    return bool(_AFFIRMATIVE.search(text))


def is_negative(text: str) -> bool:
    if not text or is_affirmative(text):
        return False
    return bool(_NEGATIVE.search(text))


def parse_minutes(text: str) -> Optional[int]:
    """First ``<n> hr|hour|min`` mention in ``text`` converted to minutes."""
    match = _DURATION.search(text or "")
    if not match:
        return None
    amount = float(match.group("amount"))
    if match.group("unit").lower().startswith("h"):
        amount *= 60
    minutes = int(round(amount))
    return minutes if minutes > 0 else None


def split_task_duration(task_text: str) -> Tuple[str, Optional[int]]:
    """Separate ``"Build server (2 hrs)"`` into ``("Build server", 120)``."""
    minutes = parse_minutes(task_text)
    clean = task_text
    if minutes is not None:
        clean = _PAREN_GROUP.sub(
            lambda group: "" if _DURATION.search(group.group(0)) else group.group(0),
            clean,
        )
    clean = " ".join(clean.replace("**", "").split()).strip(" -–:,;")
    return clean, minutes


def _plan_week(text: str, default_week: Optional[int]) -> Optional[int]:
    """Week named in the "shall I ..." question, else the last week mentioned, else the default."""
    for line in reversed(text.splitlines()):
        if "shall i" in line.lower():
            mentions = _WEEK.findall(line)
            if mentions:
                return int(mentions[-1])
    mentions = _WEEK.findall(text)
    if mentions:
        return int(mentions[-1])
    return default_week


def extract_plan_from_text(text: str, default_week: Optional[int] = None) -> Optional[WeeklyPlan]:
    """
    Heuristically recover a weekly plan from markdown bullets in assistant prose.

    Lines look like ``- **Task name** (2 hrs) why it matters``. The bold part
    is the task; a duration anywhere on the line is kept as a trailing note.
    The week comes from the confirmation question, else the last "Week <n>"
    mention, else ``default_week``.
    """

    if not text:
        return None
    tasks: List[str] = []
    total_minutes = 0
    for line in text.splitlines():
        match = _BULLET_LINE.match(line)
        if not match:
            continue
        body = match.group("body")
        if len(body) < MIN_TASK_LINE_CHARS or "shall i" in body.lower():
            continue
        bold = _BOLD.search(body)
        title = bold.group("title") if bold else body
        title, _ = split_task_duration(title)
        title = _TRAILING_PAREN.sub("", title).strip(" -–:,;")
        if len(title) < MIN_TASK_LINE_CHARS or title.lower().startswith("total"):
            continue
        minutes = parse_minutes(body) or DEFAULT_TASK_MINUTES
        total_minutes += minutes
        tasks.append(f"{title} ({minutes} min)")

    week = _plan_week(text, default_week)
    if not tasks or week is None:
        return None
    return WeeklyPlan(week=week, tasks=tasks, estimated_minutes=total_minutes)


def operations_from_plan(plan: WeeklyPlan) -> List[Dict[str, Any]]:
    """One ``add_task`` per plan entry, in plan order."""
    texts = [task for task in plan.tasks if task and task.strip()]
    if not texts:
        return []
    fallback = DEFAULT_TASK_MINUTES
    if plan.estimated_minutes:
        fallback = max(1, int(round(plan.estimated_minutes / len(texts))))

    operations: List[Dict[str, Any]] = []
    for task_text in texts:
        clean, minutes = split_task_duration(task_text)
        if not clean:
            continue
        op = AddTask(week=plan.week, task=NewTask(text=clean, estimated_minutes=minutes or fallback))
        operations.append(op.to_dict())
    return operations


def _last_assistant(history: Sequence[CoachMessage]) -> Optional[CoachMessage]:
    for message in reversed(history):
        if message.role == "assistant":
            return message
    return None


@dataclass
class TurnResult:
    kind: TurnKind
    response: AgentResponse
    plan_source: Optional[str] = None


def _pending_plan(
    response: AgentResponse,
    history: Sequence[CoachMessage],
    default_week: Optional[int],
) -> Tuple[Optional[WeeklyPlan], Optional[str]]:
    if response.weekly_plan is not None and response.weekly_plan.tasks:
        return response.weekly_plan, "current_plan"
    previous = _last_assistant(history)
    if previous is None or previous.operations:
        return None, None
    if previous.weekly_plan is not None and previous.weekly_plan.tasks:
        return previous.weekly_plan, "previous_plan"
    extracted = extract_plan_from_text(
        normalize_message_content(previous.content), default_week=default_week
    )
    if extracted is not None:
        return extracted, "previous_text"
    return None, None


def reconcile_turn(
    user_message: str,
    response: AgentResponse,
    history: Sequence[CoachMessage],
    default_week: Optional[int] = None,
) -> TurnResult:
    """
    Classify the turn and make its operations/plan consistent with that kind.

    Inputs:
        user_message: What the learner just said.
        response: Parsed model reply for this turn.
        history: Stored conversation before this turn, oldest first.
        default_week: Week used when a plan recovered from prose names none.

    Outputs:
        TurnResult with a new AgentResponse; the input is left untouched.
    """

    if any(operation_from_dict(op) is not None for op in response.operations):
        return TurnResult(TurnKind.CONFIRMED, replace(response, weekly_plan=None), "model")
    if response.operations:
        logger.info("Ignoring %d unrecognised operation(s) from the model", len(response.operations))
        response = replace(response, operations=[])

    if is_affirmative(user_message):
        plan, source = _pending_plan(response, history, default_week)
        operations = operations_from_plan(plan) if plan is not None else []
        if operations:
            logger.info("Derived %d operation(s) from %s", len(operations), source)
            return TurnResult(
                TurnKind.CONFIRMED,
                replace(response, operations=operations, weekly_plan=None),
                source,
            )
        logger.info("Affirmative reply with no pending plan; nothing to apply")
        return TurnResult(TurnKind.CHAT, replace(response, operations=[], weekly_plan=None))

    if response.weekly_plan is not None:
        return TurnResult(TurnKind.PROPOSAL, replace(response, operations=[]))

    if is_negative(user_message):
        return TurnResult(TurnKind.REJECTED, replace(response, operations=[]))

    return TurnResult(TurnKind.CHAT, replace(response, operations=[]))
