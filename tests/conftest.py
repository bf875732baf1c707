"""Shared pytest fixtures for the plan_coach test suite.

These fixtures provide:
* A queued-response OpenAI client stand-in
* A small three-week curriculum and matching progress document
* In-memory document store + CoachDocuments facade
* A CoachAgent pre-wired to the fake client and store
"""

from __future__ import annotations

import copy
import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest

from plan_coach.agent import CoachAgent
from plan_coach.config import CoachSettings
from plan_coach.llm import CoachLLM
from plan_coach.models import CoachMessage, WeeklyPlan
from plan_coach.store import CURRICULUM_PATH, CoachDocuments, InMemoryDocumentStore, progress_path


class DummyLLMClient:
    """Minimal OpenAI-compatible client for deterministic unit tests."""

    def __init__(self) -> None:
        self._queued: List[Any] = []
        self.calls: List[Dict[str, Any]] = []
        self.chat = SimpleNamespace(
            completions=SimpleNamespace(create=self._create_completion)
        )

    def queue_response(self, payload: Any) -> None:
        """Add a raw string, a dict (serialized to JSON) or a list of content parts."""
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self._queued.append(payload)

    def _create_completion(self, **kwargs: Any) -> SimpleNamespace:
        if not self._queued:
            raise AssertionError("DummyLLMClient received a call with no queued responses.")
        content = self._queued.pop(0)
        self.calls.append(kwargs)
        return SimpleNamespace(
            choices=[
                SimpleNamespace(
                    message=SimpleNamespace(content=content)
                )
            ]
        )


# ---------------------------------------------------------------------------
# Document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_curriculum() -> Dict[str, Any]:
    """Two phases, three weeks; week ids are globally unique."""
    return {
        "phases": [
            {
                "id": "phase1",
                "title": "Foundations",
                "weeks": [
                    {
                        "id": 1,
                        "title": "MCP Basics",
                        "goal": "Get a first MCP server running",
                        "tasks": [
                            {
                                "id": "w1t1",
                                "text": "Set up MCP dev environment (Python SDK, Docs)",
                                "time": "2 hr",
                                "estimatedMinutes": 120,
                            },
                            {"id": "w1t2", "text": "Build a hello-world MCP server", "time": "2 hr"},
                        ],
                    },
                    {
                        "id": 2,
                        "title": "Tool Design",
                        "goal": "Design reliable tools",
                        "tasks": [
                            {"id": "w2t1", "text": "Write three typed tools", "time": "3 hr"},
                        ],
                    },
                ],
            },
            {
                "id": "phase2",
                "title": "Agents",
                "weeks": [
                    {
                        "id": 3,
                        "title": "Agent Loops",
                        "goal": "Run a plan-act-observe loop",
                        "tasks": [
                            {"id": "w3t1", "text": "Implement a minimal agent loop", "time": "3 hr"},
                        ],
                    }
                ],
            },
        ]
    }


@pytest.fixture
def sample_progress() -> Dict[str, Any]:
    return {
        "taskProgress": {
            "w1t1": {"status": "done", "userConfidence": 4},
            "w1t2": {"status": "in_progress", "notes": "server boots"},
            "w2t1": {"status": "skipped"},
        },
        "hoursPerWeekTarget": 5,
        "focusAreas": ["agents", "evaluation"],
    }


@pytest.fixture
def proposal_history() -> List[CoachMessage]:
    """A user ask followed by an assistant proposal carrying a weekly plan."""
    return [
        CoachMessage(role="user", content="Plan my week, I have 3 hours.", created_at=1_000),
        CoachMessage(
            role="assistant",
            content=(
                "Here's a plan for Week 2:\n"
                "- **Write three typed tools** (2 hrs)\n"
                "- **Add retries to tool calls** (1 hr)\n"
                "Shall I add these to Week 2?"
            ),
            created_at=1_001,
            weekly_plan=WeeklyPlan(
                week=2,
                tasks=["Add retries to tool calls", "Write tool docs"],
                estimated_minutes=120,
            ),
        ),
    ]


# ---------------------------------------------------------------------------
# Store + component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_store(sample_curriculum, sample_progress) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(
        {
            CURRICULUM_PATH: copy.deepcopy(sample_curriculum),
            progress_path("learner-1"): copy.deepcopy(sample_progress),
        }
    )


@pytest.fixture
def documents(memory_store) -> CoachDocuments:
    return CoachDocuments(memory_store)


@pytest.fixture
def coach_settings() -> CoachSettings:
    return CoachSettings(openai_api_key="test-key", llm_model="mock-model")


@pytest.fixture
def mock_openai_client() -> DummyLLMClient:
    """Provide a queued-response OpenAI client stand-in."""
    return DummyLLMClient()


@pytest.fixture
def coach_agent(documents, coach_settings, mock_openai_client) -> CoachAgent:
    """
    CoachAgent wired up with the in-memory store and the mock LLM client.

    Tests enqueue model replies into the mock client before calling `process_turn`.
    """

    llm = CoachLLM(settings=coach_settings, client=mock_openai_client)
    return CoachAgent(documents=documents, llm=llm, settings=coach_settings)
