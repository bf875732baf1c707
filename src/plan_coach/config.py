"""
Environment-driven settings for the plan coach.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class CoachSettings:
    openai_api_key: Optional[str]
    llm_model: str = DEFAULT_LLM_MODEL
    temperature: float = 0.3
    max_tokens: int = 800
    history_limit: int = 12
    context_limit: int = 12
    data_dir: Path = Path(".plan_coach")


def _read_number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %r", name, raw, default)
        return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> CoachSettings:
    """
    Build settings from the process environment (after loading ``.env``).

    A missing OPENAI_API_KEY is only a warning: the coach still starts and the
    first model call fails instead.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    api_key = env.get("OPENAI_API_KEY") or None
    if not api_key:
        logger.warning("OPENAI_API_KEY is not set. Coach model calls will fail at runtime.")

    return CoachSettings(
        openai_api_key=api_key,
        llm_model=env.get("PLAN_COACH_LLM_MODEL") or DEFAULT_LLM_MODEL,
        temperature=_read_number(env, "PLAN_COACH_TEMPERATURE", 0.3, float),
        max_tokens=_read_number(env, "PLAN_COACH_MAX_TOKENS", 800, int),
        history_limit=_read_number(env, "PLAN_COACH_HISTORY_LIMIT", 12, int),
        context_limit=_read_number(env, "PLAN_COACH_CONTEXT_LIMIT", 12, int),
        data_dir=Path(env.get("PLAN_COACH_DATA_DIR") or ".plan_coach"),
    )
