"""End-to-end tests for the terminal conversation loop."""

import builtins
from pathlib import Path

import pytest

from plan_coach.run_demo import build_demo_coach, interactive_loop

REPO_CURRICULUM = Path(__file__).resolve().parents[2] / "data" / "curriculum.csv"


def _feed(monkeypatch, lines):
    remaining = iter(lines)

    def fake_input(*_args):
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr(builtins, "input", fake_input)


@pytest.mark.e2e
def test_propose_confirm_apply_session(monkeypatch, capsys, coach_agent, mock_openai_client, documents):
    mock_openai_client.queue_response(
        {
            "message": "Here's a plan for Week 2. Shall I add these?",
            "operations": [],
            "weeklyPlan": {"week": 2, "tasks": ["Add retries to tool calls"], "estimatedMinutes": 60},
        }
    )
    mock_openai_client.queue_response({"message": "Done!", "operations": []})
    _feed(monkeypatch, ["/status", "", "plan my week", "yes", "quit"])

    interactive_loop(coach_agent, "learner-1")

    output = capsys.readouterr().out
    assert "Week 1 of 3" in output
    assert "1/4 tasks (25%)" in output
    assert "Proposed plan for Week 2:" in output
    assert "  - Add retries to tool calls" in output
    assert "Applying changes:" in output
    assert "Add task to Week 2: Add retries to tool calls" in output
    assert output.rstrip().endswith("Goodbye!")

    week_two = documents.fetch_curriculum()["phases"][0]["weeks"][1]["tasks"]
    assert [task["text"] for task in week_two] == ["Write three typed tools", "Add retries to tool calls"]


@pytest.mark.e2e
def test_clear_and_errors_do_not_stop_the_loop(monkeypatch, capsys, coach_agent, documents):
    documents.save_conversation("learner-1", [{"role": "user", "content": "old", "createdAt": 1}])
    _feed(monkeypatch, ["/clear", "hello"])

    interactive_loop(coach_agent, "learner-1")

    output = capsys.readouterr().out
    assert "Conversation cleared." in output
    assert "Error processing turn:" in output
    assert "Goodbye!" in output
    assert documents.fetch_conversation("learner-1") == []


@pytest.mark.e2e
def test_build_demo_coach_seeds_json_store(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    data_dir = tmp_path / "store"

    coach = build_demo_coach(data_dir=str(data_dir), seed_csv=str(REPO_CURRICULUM))

    assert coach.settings.data_dir == data_dir
    assert (data_dir / "curriculum" / "main.json").exists()
    assert len(coach.documents.fetch_curriculum()["phases"]) == 4
    assert "Seeded curriculum" in capsys.readouterr().out

    build_demo_coach(data_dir=str(data_dir), seed_csv=str(REPO_CURRICULUM))
    assert "Seeded curriculum" not in capsys.readouterr().out
