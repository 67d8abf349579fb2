"""Single round-robin fixture generation using the circle method."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, TypeVar, Union

from .models import Fixture, Team

T = TypeVar("T")


def _team_id(team: Union[Team, str]) -> str:
    return team.id if isinstance(team, Team) else str(team)


def matchday_count(team_count: int) -> int:
    """Number of matchdays a single round-robin needs for ``team_count`` teams."""

    if team_count < 2:
        return 0
    padded = team_count + (team_count % 2)
    return padded - 1


def generate_round_robin(teams: Sequence[Union[Team, str]]) -> List[Fixture]:
    """Pair every team with every other team exactly once.

    ``teams[0]`` stays fixed while the rest rotate one slot to the right
    after each round. With an odd number of teams an empty slot is added;
    whoever is paired with it rests that matchday. The fixed team swaps
    home and away on alternate rounds, every other pairing keeps the
    upper half of the rotation at home.
    """

    ids = [_team_id(team) for team in teams]
    if len(ids) < 2:
        return []

    slots: List[Optional[str]] = list(ids)
    if len(slots) % 2:
        slots.append(None)

    total = len(slots)
    half = total // 2
    anchor = slots[0]
    rotating = slots[1:]

    fixtures: List[Fixture] = []
    for round_index in range(total - 1):
        matchday = round_index + 1

        opponent = rotating[0]
        if anchor is not None and opponent is not None:
            if round_index % 2 == 0:
                fixtures.append(Fixture(home_team_id=anchor, away_team_id=opponent, matchday=matchday))
            else:
                fixtures.append(Fixture(home_team_id=opponent, away_team_id=anchor, matchday=matchday))

        for i in range(1, half):
            home = rotating[i]
            away = rotating[total - 1 - i]
            if home is None or away is None:
                continue
            fixtures.append(Fixture(home_team_id=home, away_team_id=away, matchday=matchday))

        rotating.insert(0, rotating.pop())

    return fixtures


def group_by_matchday(items: Iterable[T]) -> Dict[int, List[T]]:
    """Group fixtures or matches by their ``matchday`` attribute, in matchday order."""

    grouped: Dict[int, List[T]] = {}
    for item in items:
        grouped.setdefault(int(getattr(item, "matchday")), []).append(item)
    return {matchday: grouped[matchday] for matchday in sorted(grouped)}
