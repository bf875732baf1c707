"""
Turn raw model text into an AgentResponse, whatever the model actually sent.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from .models import NO_RESPONSE, AgentResponse, WeeklyPlan
from .operations import normalize_operation

logger = logging.getLogger(__name__)

_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_MESSAGE_FIELD = re.compile(r'"message"\s*:\s*"((?:[^"\\]|\\.)*)"', re.DOTALL)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _response_from_object(data: Dict[str, Any]) -> AgentResponse:
    message = data.get("message")
    if not isinstance(message, str):
        message = str(message) if message else ""
    operations = data.get("operations")
    if not isinstance(operations, list):
        operations = []
    return AgentResponse(
        message=message.strip() or NO_RESPONSE,
        operations=[normalize_operation(op) for op in operations],
        weekly_plan=WeeklyPlan.from_dict(data.get("weeklyPlan")),
    )


def parse_agent_response(raw_text: Any) -> AgentResponse:
    """
    Normalise model output into ``{message, operations, weeklyPlan}``.

    Fallback chain, each step only if the previous one failed:
        1. the whole text is a JSON object;
        2. the span from the first ``{`` to the last ``}`` is a JSON object;
        3. the whole text is the human-readable message.

    Never raises; the message is never empty.
    """

    text = raw_text if isinstance(raw_text, str) else ""
    stripped = text.strip()

    data = _load_object(stripped)
    if data is None:
        match = _OBJECT_SPAN.search(stripped)
        if match:
            data = _load_object(match.group(0))
            if data is not None:
                logger.info("Recovered JSON object embedded in model prose")

    if data is not None:
        return _response_from_object(data)

    logger.warning("Model output carried no JSON object; using it as plain message")
    return AgentResponse(message=stripped or NO_RESPONSE, operations=[])


def _extract_once(content: str) -> str:
    stripped = content.strip()
    data = _load_object(stripped)
    if data is not None:
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message
        return content

    match = _MESSAGE_FIELD.search(stripped)
    if match:
        try:
            message = json.loads(f'"{match.group(1)}"')
        except (json.JSONDecodeError, ValueError):
            message = match.group(1)
        if message.strip():
            return message
    return content


def normalize_message_content(content: Any) -> str:
    """
    Strip embedded response JSON out of a stored chat message body.

    Idempotent: clean text comes back unchanged, and so does anything this
    function has already returned.
    """

    if not isinstance(content, str):
        return "" if content is None else str(content)
    current = content
    while True:
        extracted = _extract_once(current)
        if extracted == current:
            return current
        current = extracted
