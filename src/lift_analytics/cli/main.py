"""
CLI entry point using Typer.

Analysis commands:
- streaks: Training streak runs
- changes: Last N days against the N days before
- contributions: Top gainers and decliners
- trend: Trend line for one exercise
- readiness: Readiness score for a day

Program commands live under 'program' (create, today, show, list,
archive, restore, delete, complete, skip, move, reset).
"""

from .app import app
from .commands import analysis, program  # noqa: F401  (registers commands)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
