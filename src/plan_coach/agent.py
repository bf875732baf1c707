"""
Coach pipeline: fetch state → build prompt → call model → parse → reconcile → persist.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from .applier import apply_operations
from .config import CoachSettings, load_settings
from .confirmation import TurnResult, reconcile_turn
from .conversation import ConversationStore
from .llm import CoachLLM
from .models import AgentResponse, CoachMessage
from .parser import parse_agent_response
from .progress import ProgressSnapshot, completed_task_ids, get_current_week, progress_snapshot
from .prompt_builder import build_chat_turns, build_system_prompt
from .store import CoachDocuments, JsonFileDocumentStore

logger = logging.getLogger(__name__)

COACH_GREETING = (
    "Hi! I'm your plan coach. Tell me how last week went and how much time you have "
    "this week, and I'll suggest a plan."
)


class CoachAgent:
    """
    One call per user message; no state is kept between calls except in the store.
    """

    def __init__(
        self,
        documents: CoachDocuments,
        llm: Optional[CoachLLM] = None,
        settings: Optional[CoachSettings] = None,
    ) -> None:
        if settings is None:
            settings = llm.settings if llm is not None else load_settings()
        self.settings = settings
        self.documents = documents
        self.llm = llm or CoachLLM(settings)
        self.conversations = ConversationStore(
            documents,
            history_limit=settings.history_limit,
            context_limit=settings.context_limit,
        )

    @classmethod
    def from_settings(cls, settings: Optional[CoachSettings] = None) -> "CoachAgent":
        settings = settings or load_settings()
        documents = CoachDocuments(JsonFileDocumentStore(settings.data_dir))
        return cls(documents=documents, settings=settings)

    def initial_greeting(self) -> str:
        return COACH_GREETING

    def _fetch_state(self, user_id: str) -> Tuple[Dict[str, Any], Dict[str, Any], List[CoachMessage]]:
        # The three reads are independent; all must finish before prompting.
        with ThreadPoolExecutor(max_workers=3) as pool:
            curriculum = pool.submit(self.documents.fetch_curriculum)
            progress = pool.submit(self.documents.fetch_progress, user_id)
            history = pool.submit(self.conversations.load, user_id)
            return curriculum.result(), progress.result(), history.result()

    def run_turn(self, user_id: str, user_message: str) -> TurnResult:
        curriculum, progress, history = self._fetch_state(user_id)
        context = self.conversations.context_window(history)

        system_prompt = build_system_prompt(curriculum, progress, context)
        raw_text = self.llm.complete(system_prompt, build_chat_turns(context, user_message))
        parsed = parse_agent_response(raw_text)

        current_week = get_current_week(curriculum.get("phases") or [], completed_task_ids(progress))
        turn = reconcile_turn(user_message, parsed, context, default_week=current_week)
        logger.info("Coach turn for %s classified as %s", user_id, turn.kind.value)

        self.conversations.append_turn(user_id, history, user_message, turn.response)
        return turn

    def process_turn(self, user_id: str, user_message: str) -> AgentResponse:
        return self.run_turn(user_id, user_message).response

    def apply_response(
        self, user_id: str, response: AgentResponse
    ) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
        """
        Apply a confirmed turn's operations and persist whatever changed.
        """

        curriculum = self.documents.fetch_curriculum()
        progress = self.documents.fetch_progress(user_id)
        task_progress = progress.get("taskProgress") or {}

        updated_curriculum, updated_progress = apply_operations(
            response.operations, curriculum, task_progress
        )
        if updated_curriculum != curriculum:
            self.documents.persist_curriculum(updated_curriculum)
        if updated_progress != task_progress:
            self.documents.persist_progress(user_id, updated_progress)
        return updated_curriculum, updated_progress

    def snapshot(self, user_id: str) -> ProgressSnapshot:
        curriculum, progress, history = self._fetch_state(user_id)
        return progress_snapshot(curriculum, progress, history)

    def clear_conversation(self, user_id: str) -> None:
        self.conversations.clear(user_id)
