"""
CLI entrypoint that runs the plan coach conversation in a terminal.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

from .agent import CoachAgent
from .config import load_settings
from .data_loader import seed_curriculum
from .models import TurnKind
from .operations import describe_operation
from .progress import format_progress_report


def build_demo_coach(data_dir: Optional[str] = None, seed_csv: Optional[str] = None) -> CoachAgent:
    """
    Wire settings, the JSON file store and the model client together.

    Inputs:
        data_dir: Override for PLAN_COACH_DATA_DIR.
        seed_csv: Curriculum CSV written to the store when it has no curriculum yet.

    Outputs:
        CoachAgent ready for conversation.
    """

    settings = load_settings()
    if data_dir:
        settings = replace(settings, data_dir=Path(data_dir))
    coach = CoachAgent.from_settings(settings)
    if seed_csv and seed_curriculum(coach.documents, seed_csv):
        print(f"Seeded curriculum from {seed_csv}")
    return coach


def interactive_loop(coach: CoachAgent, user_id: str) -> None:
    """
    Simple REPL: every confirmed turn is applied to the stored curriculum/progress.
    """

    print("Plan Coach\nType 'quit' to exit, '/status' for progress, '/clear' to reset the chat.\n")
    print(f"Coach: {coach.initial_greeting()}\n")
    sys.stdout.flush()

    while True:
        try:
            sys.stdout.write("You: ")
            sys.stdout.flush()
            user_text = input().strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            break

        if not user_text:
            continue
        if user_text.lower() in {"quit", "exit"}:
            print("Goodbye!")
            break
        if user_text == "/status":
            print(format_progress_report(coach.snapshot(user_id)) + "\n")
            continue
        if user_text == "/clear":
            coach.clear_conversation(user_id)
            print("Conversation cleared.\n")
            continue

        try:
            turn = coach.run_turn(user_id, user_text)
        except Exception as exc:
            print(f"Error processing turn: {exc}")
            continue

        print(f"Coach: {turn.response.message}\n")
        plan = turn.response.weekly_plan
        if turn.kind is TurnKind.PROPOSAL and plan is not None:
            print(f"Proposed plan for Week {plan.week}:")
            for task in plan.tasks:
                print(f"  - {task}")
            print()
        if turn.kind is TurnKind.CONFIRMED:
            print("Applying changes:")
            for op in turn.response.operations:
                print(f"  - {describe_operation(op)}")
            coach.apply_response(user_id, turn.response)
            print()
        sys.stdout.flush()


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Chat with the 12-week plan coach.")
    parser.add_argument("--user", default="default", help="User id whose progress is coached.")
    parser.add_argument("--data-dir", default=None, help="Directory of the JSON document store.")
    parser.add_argument("--seed-csv", default=None, help="Curriculum CSV used when the store is empty.")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, ...).")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    coach = build_demo_coach(data_dir=args.data_dir, seed_csv=args.seed_csv)
    interactive_loop(coach, args.user)


if __name__ == "__main__":
    main()
