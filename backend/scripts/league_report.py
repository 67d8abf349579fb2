"""CLI helper for printing a category's standings or top scorers."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional, Sequence

from league_core import LeagueService, create_gateway
from league_core.models import ScorerEntry, Standing


def _format_standings(standings: Sequence[Standing]) -> str:
    lines = ["#   Team                  PJ  G   E   P   GF  GC  DG   PTS"]
    for row in standings:
        lines.append(
            f"{str(row.position).ljust(4)}{row.team_name[:20].ljust(22)}"
            f"{str(row.played).ljust(4)}{str(row.won).ljust(4)}{str(row.drawn).ljust(4)}"
            f"{str(row.lost).ljust(4)}{str(row.goals_for).ljust(4)}{str(row.goals_against).ljust(4)}"
            f"{str(row.goal_difference).ljust(5)}{row.points}"
        )
    return "\n".join(lines)


def _format_scorers(scorers: Sequence[ScorerEntry]) -> str:
    lines = ["#   Player                No.  Team                  Goals"]
    for index, entry in enumerate(scorers, start=1):
        jersey = "" if entry.jersey_number is None else str(entry.jersey_number)
        lines.append(
            f"{str(index).ljust(4)}{entry.player_name[:20].ljust(22)}{jersey.ljust(5)}"
            f"{entry.team_name[:20].ljust(22)}{entry.total_goals}"
        )
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("category_id", help="Category to report on")
    parser.add_argument("--scorers", action="store_true", help="Print top scorers instead of standings")
    parser.add_argument("--limit", type=int, default=None, help="Only show the first N scorers")
    parser.add_argument(
        "--format",
        choices=("text", "whatsapp", "html"),
        default="text",
        help="Output format for standings",
    )
    return parser


def main(argv: Optional[List[str]] = None, service: Optional[LeagueService] = None) -> int:
    args = build_parser().parse_args(argv)
    service = service or LeagueService(create_gateway())

    try:
        if args.scorers:
            output = _format_scorers(service.top_scorers(args.category_id, limit=args.limit))
        elif args.format == "whatsapp":
            output = service.standings_share_text(args.category_id)
        elif args.format == "html":
            output = service.standings_page(args.category_id)
        else:
            output = _format_standings(service.standings(args.category_id))
    except (RuntimeError, ValueError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
