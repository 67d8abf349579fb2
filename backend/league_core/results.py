"""Checks that recorded scorers add up to a match score before it is finalized."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Tuple

from .models import GoalRecord, Match, PlayerInfo


class ResultMismatchError(ValueError):
    """Scorer goals do not reconcile with the submitted score."""

    def __init__(self, expected: Tuple[int, int], actual: Tuple[int, int]) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Scorer goals ({actual[0]}-{actual[1]}) do not match the score "
            f"({expected[0]}-{expected[1]})"
        )


def tally_scorer_goals(
    goal_records: Iterable[GoalRecord],
    home_team_id: str,
    away_team_id: str,
) -> Tuple[int, int]:
    home = 0
    away = 0
    for record in goal_records:
        if record.team_id == home_team_id:
            home += record.goals_count
        elif record.team_id == away_team_id:
            away += record.goals_count
    return home, away


def validate_result(
    match: Match,
    home_goals: int,
    away_goals: int,
    goal_records: Iterable[GoalRecord],
) -> None:
    if home_goals < 0 or away_goals < 0:
        raise ValueError("Scores must be zero or positive")

    records = list(goal_records)
    for record in records:
        if record.goals_count < 0:
            raise ValueError(f"Negative goal count for player {record.player_id}")
        if record.match_id != match.id:
            raise ValueError(f"Goal record for player {record.player_id} belongs to another match")

    actual = tally_scorer_goals(records, match.home_team_id, match.away_team_id)
    expected = (home_goals, away_goals)
    if actual != expected:
        raise ResultMismatchError(expected=expected, actual=actual)


def build_goal_records(
    match: Match,
    scorers: Mapping[str, int],
    player_directory: Mapping[str, PlayerInfo],
) -> List[GoalRecord]:
    """Turn a ``{player_id: goals}`` form into goal records, skipping zero entries."""

    records: List[GoalRecord] = []
    for player_id, goals in scorers.items():
        if not goals:
            continue
        player = player_directory.get(player_id)
        if player is None:
            raise ValueError(f"Unknown player '{player_id}'")
        if player.team_id not in (match.home_team_id, match.away_team_id):
            raise ValueError(f"Player '{player_id}' does not play for either team")
        records.append(
            GoalRecord(match_id=match.id, player_id=player_id, team_id=player.team_id, goals_count=int(goals))
        )
    return records
