from __future__ import annotations

from typing import Dict, Iterable, List

from .models import Match, Standing, Team

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1


def _record_result(standing: Standing, scored: int, conceded: int) -> None:
    standing.played += 1
    standing.goals_for += scored
    standing.goals_against += conceded
    if scored > conceded:
        standing.won += 1
        standing.points += POINTS_FOR_WIN
    elif scored == conceded:
        standing.drawn += 1
        standing.points += POINTS_FOR_DRAW
    else:
        standing.lost += 1


def compute_standings(teams: Iterable[Team], matches: Iterable[Match]) -> List[Standing]:
    """Build the league table from finished matches.

    Every team gets a row even without games. Scheduled matches are skipped
    regardless of any goals already filled in, and a side referencing a team
    outside ``teams`` is ignored. Rows are ordered by points, goal difference
    and goals scored; teams level on all three keep their input order.
    """

    table: Dict[str, Standing] = {}
    for team in teams:
        if team.id in table:
            continue
        table[team.id] = Standing(team_id=team.id, team_name=team.name, logo_url=team.logo_url)

    for match in matches:
        if not match.is_finished:
            continue
        home_goals = match.home_goals or 0
        away_goals = match.away_goals or 0

        home = table.get(match.home_team_id)
        if home is not None:
            _record_result(home, home_goals, away_goals)

        away = table.get(match.away_team_id)
        if away is not None:
            _record_result(away, away_goals, home_goals)

    for standing in table.values():
        standing.goal_difference = standing.goals_for - standing.goals_against

    # sorted() is stable, so full ties keep the order teams were given in
    ordered = sorted(
        table.values(),
        key=lambda s: (s.points, s.goal_difference, s.goals_for),
        reverse=True,
    )
    for position, standing in enumerate(ordered, start=1):
        standing.position = position
    return ordered
