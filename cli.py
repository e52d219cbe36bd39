#!/usr/bin/env python3
"""
Contribution Pipeline - command line entry point.

    python cli.py problems
    python cli.py submit USER PROBLEM solution.json [--metadata meta.json]
    python cli.py progress USER
    python cli.py achievements USER
    python cli.py leaderboard [--limit N]

Uses the backend from config (set PIPELINE_BACKEND=json to keep state
between runs).
"""

import argparse
import json
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich import box

from errors import PipelineError
from pipeline import get_pipeline

console = Console()


def _load_json(path: str):
    with open(Path(path)) as f:
        return json.load(f)


def cmd_problems(args) -> int:
    problems = get_pipeline().catalog.list_active()
    if not problems:
        console.print("[dim]No active problems. Add some to problems.yaml.[/dim]")
        return 0

    table = Table(title="Active Problems", box=box.ROUNDED)
    table.add_column("ID", style="cyan")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Difficulty", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Contributions", justify="right")
    for p in problems:
        table.add_row(
            p.problem_id, p.problem_type.value, p.title,
            str(p.difficulty), f"{p.quality_threshold:.2f}", str(p.total_contributions),
        )
    console.print(table)
    return 0


def cmd_submit(args) -> int:
    payload = _load_json(args.solution)
    metadata = _load_json(args.metadata) if args.metadata else None

    try:
        result = get_pipeline().submit_solution(args.user, args.problem, payload, metadata)
    except PipelineError as e:
        console.print(f"[red]{e.code}[/red]: {e.message}")
        if e.details.get("field"):
            console.print(f"[dim]field: {e.details['field']}[/dim]")
        return 2 if e.retryable else 1

    color = "green" if result.status.value == "validated" else "yellow"
    lines = [
        f"Status:     [{color}]{result.status.value}[/{color}]",
        f"Quality:    {result.quality_score}",
        f"Confidence: {result.confidence_score}",
        f"Points:     {result.points_awarded}",
    ]
    if result.rejection_reason:
        lines.append(f"Reason:     {result.rejection_reason} ({', '.join(result.failed_criteria)})")
    if result.unlocked_achievements:
        lines.append(f"Unlocked:   {', '.join(result.unlocked_achievements)}")
    console.print(Panel.fit("\n".join(lines), title=result.contribution_id))
    return 0


def cmd_progress(args) -> int:
    progress = get_pipeline().get_progress(args.user)

    table = Table(title=f"Progress: {args.user}", box=box.SIMPLE, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Level", str(progress.level))
    table.add_row("Experience", str(progress.experience))
    table.add_row("Lifetime score", str(progress.lifetime_score))
    table.add_row("Streak", f"{progress.current_streak} (best {progress.best_streak})")
    table.add_row("Validated", str(progress.validated_contributions))
    for category, value in sorted(progress.skill_proficiency.items()):
        table.add_row(f"  {category}", f"{value:.3f}")
    table.add_row("Achievements", ", ".join(progress.achievements) or "-")
    console.print(table)
    return 0


def cmd_achievements(args) -> int:
    table = Table(title=f"Achievements: {args.user}", box=box.ROUNDED)
    table.add_column("Achievement", style="cyan")
    table.add_column("Progress", justify="right")
    table.add_column("", justify="center")
    for p in get_pipeline().achievement_progress(args.user):
        mark = "[green]✓[/green]" if p.unlocked else ""
        table.add_row(p.name, f"{p.current:g}/{p.required:g} ({p.percentage:.0f}%)", mark)
    console.print(table)
    return 0


def cmd_leaderboard(args) -> int:
    rows = get_pipeline().leaderboard(args.limit)
    if not rows:
        console.print("[dim]No validated contributions yet.[/dim]")
        return 0
    table = Table(title="Leaderboard", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("User", style="cyan")
    table.add_column("Points", justify="right")
    table.add_column("Validated", justify="right")
    for row in rows:
        table.add_row(str(row["rank"]), row["user_id"], str(row["points"]), str(row["validated_contributions"]))
    console.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Research contribution pipeline")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("problems", help="List active problems").set_defaults(func=cmd_problems)

    p = sub.add_parser("submit", help="Submit a solution")
    p.add_argument("user")
    p.add_argument("problem")
    p.add_argument("solution", help="Path to solution JSON")
    p.add_argument("--metadata", help="Path to submission metadata JSON")
    p.set_defaults(func=cmd_submit)

    p = sub.add_parser("progress", help="Show a user's progress")
    p.add_argument("user")
    p.set_defaults(func=cmd_progress)

    p = sub.add_parser("achievements", help="Show achievement progress")
    p.add_argument("user")
    p.set_defaults(func=cmd_achievements)

    p = sub.add_parser("leaderboard", help="Top users by points")
    p.add_argument("--limit", type=int, default=10)
    p.set_defaults(func=cmd_leaderboard)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except PipelineError as e:
        console.print(f"[red]{e.code}[/red]: {e.message}")
        return 2 if e.retryable else 1


if __name__ == "__main__":
    sys.exit(main())
