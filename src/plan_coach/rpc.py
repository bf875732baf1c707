"""
Inbound call boundary: ``{message}`` in, AgentResponse dict out.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .agent import CoachAgent

logger = logging.getLogger(__name__)

DEFAULT_USER_ID = "default"


class CoachCallError(Exception):
    """
    Error surfaced to the caller with a status code such as ``invalid-argument`` or ``internal``.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "message": self.message}


def extract_user_message(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    message = data.get("message")
    if isinstance(message, str) and message:
        return message
    nested = data.get("data")
    if isinstance(nested, dict) and isinstance(nested.get("message"), str):
        return nested["message"]
    return ""


def handle_coach_call(
    data: Any,
    agent: CoachAgent,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    user_message = extract_user_message(data)
    if not user_message.strip():
        raise CoachCallError("invalid-argument", "message is required")

    try:
        response = agent.process_turn(user_id or DEFAULT_USER_ID, user_message)
    except Exception as exc:
        logger.exception("coach call failed")
        raise CoachCallError("internal", str(exc) or "Unknown error") from exc
    return response.to_dict()
