#!/usr/bin/env python3
"""
Print a learning report for an exported question history.

The input is a JSON file holding either a list of attempt records, or an
object with ``attempts`` and optionally ``answers`` / ``quiz_duration`` /
``time_spent`` to also score a quiz:

    quizlearn-report history.json
    quizlearn-report history.json --json
"""

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from quizlearn.core.logging_config import setup_logging
from quizlearn.services.attempt_analysis import create_attempt_pattern_analyzer
from quizlearn.services.dynamic_scoring import create_dynamic_score_calculator


console = Console()

PRIORITY_STYLES = {
    "HIGH": "bold red",
    "MEDIUM": "yellow",
    "INFO": "cyan",
    "SUCCESS": "green",
    "LOW": "dim",
}


def load_payload(path: Path) -> dict:
    """Read the export and normalize it to a dict with an ``attempts`` list."""
    raw = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(raw, list):
        return {"attempts": raw}
    if not isinstance(raw, dict):
        raise ValueError("expected a list of attempts or an object with 'attempts'")
    raw.setdefault("attempts", [])
    for field in ("attempts", "answers"):
        if raw.get(field) is not None and not isinstance(raw[field], list):
            raise ValueError(f"'{field}' must be a list")
    return raw


def build_report(payload: dict) -> dict:
    """Run the analysis (and quiz scoring when answers are present)."""
    analyzer = create_attempt_pattern_analyzer()
    analysis = analyzer.analyze(payload["attempts"], user_id=payload.get("user_id"))

    report = {
        "learning_progress": analysis["learning_progress"].model_dump(mode="json"),
        "recommendations": [r.model_dump(mode="json") for r in analysis["recommendations"]],
        "first_attempt_accuracy": analysis["first_attempt_accuracy"].model_dump(),
        "final_accuracy": analysis["final_accuracy"].model_dump(),
    }

    if payload.get("answers"):
        calculator = create_dynamic_score_calculator()
        summary = calculator.process_quiz_completion(
            payload["answers"],
            total_questions=payload.get("total_questions"),
            quiz_duration=payload.get("quiz_duration"),
            time_spent=payload.get("time_spent"),
        )
        report["quiz_score"] = summary.model_dump(mode="json")

    return report


def print_report(report: dict) -> None:
    """Render the report as rich tables."""
    progress = report["learning_progress"]

    console.print("📊 Learning Progress", style="bold blue")
    patterns = Table(show_header=True, header_style="bold magenta")
    patterns.add_column("Pattern", style="cyan")
    patterns.add_column("Questions", justify="right")
    for pattern, questions in progress["questions_by_pattern"].items():
        patterns.add_row(pattern, str(len(questions)))
    console.print(patterns)

    console.print(
        f"Success rate: [bold]{progress['final_success_rate']}%[/bold]  "
        f"Improvement rate: {progress['improvement_rate']}%  "
        f"Mastery: [bold]{progress['mastery_level']}[/bold]"
    )
    console.print(
        f"Accuracy first/final: {report['first_attempt_accuracy']['accuracy']}% → "
        f"{report['final_accuracy']['accuracy']}%  "
        f"Avg time 1st/2nd attempt: {progress['average_time_first_attempt']}ms / "
        f"{progress['average_time_second_attempt']}ms"
    )
    console.print()

    if report["recommendations"]:
        console.print("💡 Recommendations", style="bold blue")
        for rec in report["recommendations"]:
            style = PRIORITY_STYLES.get(rec["priority"], "white")
            console.print(f"[{style}]{rec['priority']}[/{style}] {rec['title']}: {rec['message']}")
            for action in rec["actions"]:
                console.print(f"   • {action}")
        console.print()

    if "quiz_score" in report:
        quiz = report["quiz_score"]
        console.print("🏁 Quiz Score", style="bold blue")
        scores = Table(show_header=True, header_style="bold magenta")
        scores.add_column("Question", style="cyan")
        scores.add_column("Base", justify="right")
        scores.add_column("Speed", justify="right")
        scores.add_column("Streak", justify="right")
        scores.add_column("Time", justify="right")
        scores.add_column("x Diff", justify="right")
        scores.add_column("Points", justify="right", style="bold")
        for row in quiz["detailed_results"]:
            scores.add_row(
                str(row["question_id"]),
                str(row["base_points"]),
                str(row["speed_bonus"]),
                str(row["streak_bonus"]),
                str(row["time_bonus"]),
                str(row["difficulty_multiplier"]),
                str(row["total_points"]),
            )
        console.print(scores)
        for bonus in quiz["perfect_bonuses"]:
            console.print(f"✨ {bonus['name']}: +{bonus['bonus']}", style="green")
        console.print(
            f"Total: [bold]{quiz['total_score']}[/bold] "
            f"({quiz['correct_answers']}/{quiz['total_questions']} correct, {quiz['accuracy']}%)"
        )


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Learning report for an exported question history")
    parser.add_argument("history", type=Path, help="JSON file with attempt records")
    parser.add_argument("--json", action="store_true", help="Print the raw report as JSON")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write log lines to this file")
    args = parser.parse_args(argv)

    setup_logging(args.log_level, args.log_file)

    try:
        payload = load_payload(args.history)
    except (OSError, ValueError) as e:
        console.print(f"❌ Could not read {args.history}: {e}", style="red")
        return 1

    report = build_report(payload)

    if args.json:
        console.print_json(data=report)
    else:
        print_report(report)

    return 0


if __name__ == "__main__":
    sys.exit(main())
