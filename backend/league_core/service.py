from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from .exports import DEFAULT_LEAGUE_NAME, standings_html, standings_whatsapp_text
from .gateway import LeagueGateway
from .models import (
    Category,
    Fixture,
    GoalRecord,
    Match,
    MatchStatus,
    Player,
    PlayerInfo,
    ScorerEntry,
    Standing,
    Team,
)
from .results import build_goal_records, validate_result
from .schedule import generate_round_robin, group_by_matchday
from .scorers import aggregate_scorers
from .standings import compute_standings

logger = logging.getLogger(__name__)

# Columns an administrator may change on each entity.
MATCH_DETAIL_FIELDS = ("match_date", "match_time", "field_number")
CATEGORY_FIELDS = ("name", "description", "is_active")
TEAM_FIELDS = ("name", "logo_url", "is_active")
PLAYER_FIELDS = ("name", "jersey_number", "is_active")


def _required_name(value: Any, label: str) -> str:
    name = str(value or "").strip()
    if not name:
        raise ValueError(f"{label} name is required")
    return name


def _optional_text(value: Any) -> Optional[str]:
    text = str(value or "").strip()
    return text or None


def _jersey_number(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    number = int(value)
    if number < 0:
        raise ValueError("Jersey number must not be negative")
    return number


def _editable(changes: Mapping[str, Any], allowed: tuple, label: str) -> Dict[str, Any]:
    updates = {key: value for key, value in changes.items() if key in allowed}
    if "name" in updates:
        updates["name"] = _required_name(updates["name"], label)
    for key in ("description", "logo_url"):
        if key in updates:
            updates[key] = _optional_text(updates[key])
    if "jersey_number" in updates:
        updates["jersey_number"] = _jersey_number(updates["jersey_number"])
    if "is_active" in updates:
        updates["is_active"] = bool(updates["is_active"])
    return updates


class LeagueService:
    """Fetches rows through a gateway, runs the league computations and writes results back.

    The selected category is always passed in explicitly.
    """

    def __init__(self, gateway: LeagueGateway, league_name: str | None = None) -> None:
        self.gateway = gateway
        self.league_name = league_name or os.getenv("LEAGUE_NAME") or DEFAULT_LEAGUE_NAME

    # ---- reads -------------------------------------------------------------------

    def categories(self) -> List[Category]:
        return [Category.from_row(row) for row in self.gateway.fetch_categories()]

    def category(self, category_id: str) -> Category:
        for category in self.categories():
            if category.id == category_id:
                return category
        raise ValueError("Category not found")

    def teams(self, category_id: str, active_only: bool = True) -> List[Team]:
        return [Team.from_row(row) for row in self.gateway.fetch_teams(category_id, active_only=active_only)]

    def team(self, team_id: str) -> Team:
        row = self.gateway.fetch_team(team_id)
        if row is None:
            raise ValueError("Team not found")
        return Team.from_row(row)

    def players(self, team_id: str, active_only: bool = True) -> List[Player]:
        players = [
            Player.from_row(row) for row in self.gateway.fetch_players(team_ids=[team_id], active_only=active_only)
        ]
        players.sort(key=lambda p: (p.jersey_number is None, p.jersey_number or 0, p.name))
        return players

    def player(self, player_id: str) -> Player:
        row = self.gateway.fetch_player(player_id)
        if row is None:
            raise ValueError("Player not found")
        return Player.from_row(row)

    def standings(self, category_id: str) -> List[Standing]:
        teams = self.teams(category_id)
        if not teams:
            return []
        matches = [
            Match.from_row(row)
            for row in self.gateway.fetch_matches(category_id, status=MatchStatus.FINISHED)
        ]
        return compute_standings(teams, matches)

    def top_scorers(self, category_id: str, limit: Optional[int] = None) -> List[ScorerEntry]:
        teams = self.teams(category_id, active_only=False)
        if not teams:
            return []
        team_names = {team.id: team.name for team in teams}
        goals = [GoalRecord.from_row(row) for row in self.gateway.fetch_goals(team_ids=list(team_names))]
        directory = self._player_directory(list(team_names), team_names, active_only=False)
        return aggregate_scorers(goals, directory, teams=team_names, limit=limit)

    def calendar(self, category_id: str) -> Dict[int, List[Match]]:
        matches = [Match.from_row(row) for row in self.gateway.fetch_matches(category_id)]
        return group_by_matchday(matches)

    def upcoming_matches(self, category_id: str, limit: int = 3) -> List[Match]:
        matches = [
            Match.from_row(row)
            for row in self.gateway.fetch_matches(category_id, status=MatchStatus.SCHEDULED)
        ]
        matches.sort(
            key=lambda m: (
                m.match_date is None,
                m.match_date or "",
                m.match_time is None,
                m.match_time or "",
            )
        )
        return matches[:limit]

    def standings_share_text(self, category_id: str) -> str:
        category = self.category(category_id)
        return standings_whatsapp_text(self.standings(category_id), category.name, self.league_name)

    def standings_page(self, category_id: str) -> str:
        category = self.category(category_id)
        title = f"{self.league_name} - {category.name}"
        return standings_html(self.standings(category_id), title=title)

    # ---- writes ------------------------------------------------------------------

    def generate_schedule(self, category_id: str, replace: bool = False) -> List[Fixture]:
        teams = self.teams(category_id)
        if len(teams) < 2:
            raise ValueError("At least 2 active teams are required to generate a schedule")

        existing = self.gateway.fetch_matches(category_id)
        if existing:
            if not replace:
                raise ValueError("Matches already exist for this category")
            logger.info("Removing %d existing matches for category %s", len(existing), category_id)
            self.gateway.delete_matches(category_id)

        fixtures = generate_round_robin(teams)
        rows = [
            {
                "category_id": category_id,
                "matchday": fixture.matchday,
                "home_team_id": fixture.home_team_id,
                "away_team_id": fixture.away_team_id,
                "status": MatchStatus.SCHEDULED,
            }
            for fixture in fixtures
        ]
        self.gateway.insert_matches(rows)
        logger.info("Generated %d fixtures for category %s", len(fixtures), category_id)
        return fixtures

    def update_match_details(self, match_id: str, changes: Mapping[str, Any]) -> Match:
        """Apply only the date, time and field values present in ``changes``.

        Keys that are absent keep their stored value; an explicit ``None`` or
        empty string clears the column.
        """

        row = self.gateway.fetch_match(match_id)
        if row is None:
            raise ValueError("Match not found")
        updates = {
            key: (None if value == "" else value)
            for key, value in changes.items()
            if key in MATCH_DETAIL_FIELDS
        }
        if not updates:
            return Match.from_row(row)
        return Match.from_row(self.gateway.update_match(match_id, updates))

    def delete_match(self, match_id: str) -> None:
        if self.gateway.fetch_match(match_id) is None:
            raise ValueError("Match not found")
        self.gateway.delete_goals(match_id)
        self.gateway.delete_match(match_id)
        logger.info("Deleted match %s", match_id)

    def finalize_match(
        self,
        match_id: str,
        home_goals: int,
        away_goals: int,
        scorers: Mapping[str, int],
    ) -> Match:
        """Record a final score with its scorers, or change nothing at all.

        Scorer totals per side must equal the score. Goal records are replaced
        before the match is marked finished; if either write fails the previous
        goal records are put back.
        """

        row = self.gateway.fetch_match(match_id)
        if row is None:
            raise ValueError("Match not found")
        match = Match.from_row(row)

        directory = self._player_directory([match.home_team_id, match.away_team_id], {}, active_only=False)
        records = build_goal_records(match, scorers, directory)
        try:
            validate_result(match, home_goals, away_goals, records)
        except ValueError as exc:
            logger.warning("Rejected result for match %s: %s", match_id, exc)
            raise

        previous = self.gateway.fetch_goals(match_id=match_id)
        try:
            self.gateway.delete_goals(match_id)
            self.gateway.insert_goals([record.to_row() for record in records])
            updated = self.gateway.update_match(
                match_id,
                {"home_goals": home_goals, "away_goals": away_goals, "status": MatchStatus.FINISHED},
            )
        except Exception:
            self._restore_goals(match_id, previous)
            raise

        logger.info("Finalized match %s at %d-%d", match_id, home_goals, away_goals)
        return Match.from_row(updated)

    def create_category(self, name: str, description: Optional[str] = None) -> Category:
        row = self.gateway.insert_category(
            {"name": _required_name(name, "Category"), "description": _optional_text(description), "is_active": True}
        )
        logger.info("Created category %s", row.get("id"))
        return Category.from_row(row)

    def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category:
        current = self._find_category(category_id)
        updates = _editable(changes, CATEGORY_FIELDS, "Category")
        if not updates:
            return current
        return Category.from_row(self.gateway.update_category(category_id, updates))

    def delete_category(self, category_id: str) -> None:
        self._find_category(category_id)
        if self.gateway.fetch_teams(category_id, active_only=False):
            raise ValueError("Category still has teams; deactivate it instead")
        self.gateway.delete_category(category_id)
        logger.info("Deleted category %s", category_id)

    def create_team(self, category_id: str, name: str, logo_url: Optional[str] = None) -> Team:
        self._find_category(category_id)
        row = self.gateway.insert_team(
            {
                "category_id": category_id,
                "name": _required_name(name, "Team"),
                "logo_url": _optional_text(logo_url),
                "is_active": True,
            }
        )
        logger.info("Created team %s in category %s", row.get("id"), category_id)
        return Team.from_row(row)

    def update_team(self, team_id: str, changes: Mapping[str, Any]) -> Team:
        current = self.team(team_id)
        updates = _editable(changes, TEAM_FIELDS, "Team")
        if not updates:
            return current
        return Team.from_row(self.gateway.update_team(team_id, updates))

    def delete_team(self, team_id: str) -> None:
        team = self.team(team_id)
        if self.gateway.fetch_players(team_ids=[team_id], active_only=False):
            raise ValueError("Team still has players; deactivate it instead")
        for row in self.gateway.fetch_matches(team.category_id or ""):
            if team_id in (row.get("home_team_id"), row.get("away_team_id")):
                raise ValueError("Team has matches; deactivate it instead")
        self.gateway.delete_team(team_id)
        logger.info("Deleted team %s", team_id)

    def create_player(self, team_id: str, name: str, jersey_number: Optional[int] = None) -> Player:
        self.team(team_id)
        row = self.gateway.insert_player(
            {
                "team_id": team_id,
                "name": _required_name(name, "Player"),
                "jersey_number": _jersey_number(jersey_number),
                "is_active": True,
            }
        )
        logger.info("Created player %s in team %s", row.get("id"), team_id)
        return Player.from_row(row)

    def update_player(self, player_id: str, changes: Mapping[str, Any]) -> Player:
        current = self.player(player_id)
        updates = _editable(changes, PLAYER_FIELDS, "Player")
        if not updates:
            return current
        return Player.from_row(self.gateway.update_player(player_id, updates))

    def delete_player(self, player_id: str) -> None:
        player = self.player(player_id)
        for row in self.gateway.fetch_goals(team_ids=[player.team_id]):
            if row.get("player_id") == player_id:
                raise ValueError("Player has recorded goals; deactivate them instead")
        self.gateway.delete_player(player_id)
        logger.info("Deleted player %s", player_id)

    # ---- helpers -----------------------------------------------------------------

    def _find_category(self, category_id: str) -> Category:
        for row in self.gateway.fetch_categories(active_only=False):
            if row.get("id") == category_id:
                return Category.from_row(row)
        raise ValueError("Category not found")

    def _player_directory(
        self,
        team_ids: List[str],
        team_names: Mapping[str, str],
        active_only: bool,
    ) -> Dict[str, PlayerInfo]:
        directory: Dict[str, PlayerInfo] = {}
        for row in self.gateway.fetch_players(team_ids=team_ids, active_only=active_only):
            player_id = str(row.get("id") or "").strip()
            if not player_id:
                continue
            info = PlayerInfo.from_row(row)
            if info.team_id in team_names:
                info = PlayerInfo(
                    name=info.name,
                    team_id=info.team_id,
                    jersey_number=info.jersey_number,
                    team_name=team_names[info.team_id],
                )
            directory[player_id] = info
        return directory

    def _restore_goals(self, match_id: str, previous: List[Dict[str, Any]]) -> None:
        try:
            self.gateway.delete_goals(match_id)
            restored = [
                {key: value for key, value in row.items() if key in ("match_id", "player_id", "team_id", "goals_count")}
                for row in previous
            ]
            self.gateway.insert_goals(restored)
        except Exception:
            logger.exception("Failed to restore goal records for match %s", match_id)
