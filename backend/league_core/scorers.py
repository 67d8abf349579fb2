from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from .models import GoalRecord, PlayerInfo, ScorerEntry

UNKNOWN_NAME = "Unknown"


def aggregate_scorers(
    goal_records: Iterable[GoalRecord],
    player_directory: Mapping[str, PlayerInfo],
    teams: Optional[Mapping[str, str]] = None,
    limit: Optional[int] = None,
) -> List[ScorerEntry]:
    """Total goals per player, highest first.

    Players absent from ``player_directory`` are listed as ``Unknown``.
    The team shown is the one of the player's first goal record, looked up
    in ``teams`` and then in the directory. ``limit`` only slices the
    finished ranking.
    """

    if limit is not None and limit < 0:
        raise ValueError("limit must be zero or positive")

    team_names = teams or {}
    scorers: Dict[str, ScorerEntry] = {}

    for record in goal_records:
        existing = scorers.get(record.player_id)
        if existing is not None:
            existing.total_goals += record.goals_count
            continue

        player = player_directory.get(record.player_id)
        team_id = record.team_id or (player.team_id if player else "")
        team_name = team_names.get(team_id) or (player.team_name if player else "") or UNKNOWN_NAME
        scorers[record.player_id] = ScorerEntry(
            player_id=record.player_id,
            player_name=(player.name if player and player.name else UNKNOWN_NAME),
            jersey_number=player.jersey_number if player else None,
            team_id=team_id,
            team_name=team_name,
            total_goals=record.goals_count,
        )

    ranked = sorted(scorers.values(), key=lambda entry: entry.total_goals, reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return ranked
