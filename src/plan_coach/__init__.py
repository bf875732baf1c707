"""
Plan coach: a conversational coach that proposes and applies structured edits
to a 12-week curriculum and the learner's progress record.

Exports the pipeline entry points and the pure helpers it is built from.
"""

from .agent import CoachAgent
from .applier import apply_operations
from .confirmation import is_affirmative, reconcile_turn
from .models import AgentResponse, CoachMessage, TurnKind, WeeklyPlan
from .parser import normalize_message_content, parse_agent_response
from .rpc import CoachCallError, handle_coach_call
from .store import CoachDocuments, InMemoryDocumentStore, JsonFileDocumentStore

__all__ = [
    "CoachAgent",
    "apply_operations",
    "is_affirmative",
    "reconcile_turn",
    "AgentResponse",
    "CoachMessage",
    "TurnKind",
    "WeeklyPlan",
    "normalize_message_content",
    "parse_agent_response",
    "CoachCallError",
    "handle_coach_call",
    "CoachDocuments",
    "InMemoryDocumentStore",
    "JsonFileDocumentStore",
]
