from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


class MatchStatus:
    SCHEDULED = "scheduled"
    FINISHED = "finished"

    ALL = (SCHEDULED, FINISHED)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Category":
        return cls(
            id=str(row.get("id") or ""),
            name=str(row.get("name") or ""),
            description=row.get("description"),
            is_active=bool(row.get("is_active", True)),
        )


@dataclass(frozen=True)
class Team:
    """A team within a category. Identity is the id; names may collide."""

    id: str
    name: str
    category_id: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Team":
        return cls(
            id=str(row.get("id") or ""),
            name=str(row.get("name") or ""),
            category_id=row.get("category_id"),
            logo_url=row.get("logo_url"),
            is_active=bool(row.get("is_active", True)),
        )


@dataclass(frozen=True)
class Match:
    """A fixture row. Goal counts stay ``None`` until a result is recorded."""

    id: str
    home_team_id: str
    away_team_id: str
    matchday: int
    status: str = MatchStatus.SCHEDULED
    home_goals: Optional[int] = None
    away_goals: Optional[int] = None
    category_id: Optional[str] = None
    match_date: Optional[str] = None  # ISO date
    match_time: Optional[str] = None  # HH:MM[:SS]
    field_number: Optional[int] = None

    @property
    def is_finished(self) -> bool:
        return self.status == MatchStatus.FINISHED

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Match":
        return cls(
            id=str(row.get("id") or ""),
            home_team_id=str(row.get("home_team_id") or ""),
            away_team_id=str(row.get("away_team_id") or ""),
            matchday=_optional_int(row.get("matchday")) or 0,
            status=str(row.get("status") or MatchStatus.SCHEDULED),
            home_goals=_optional_int(row.get("home_goals")),
            away_goals=_optional_int(row.get("away_goals")),
            category_id=row.get("category_id"),
            match_date=row.get("match_date"),
            match_time=row.get("match_time"),
            field_number=_optional_int(row.get("field_number")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "homeTeamId": self.home_team_id,
            "awayTeamId": self.away_team_id,
            "matchday": self.matchday,
            "status": self.status,
            "homeGoals": self.home_goals,
            "awayGoals": self.away_goals,
            "matchDate": self.match_date,
            "matchTime": self.match_time,
            "fieldNumber": self.field_number,
        }


@dataclass(frozen=True)
class GoalRecord:
    """Goals one player scored in one match for one team."""

    match_id: str
    player_id: str
    team_id: str
    goals_count: int = 0

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "GoalRecord":
        return cls(
            match_id=str(row.get("match_id") or ""),
            player_id=str(row.get("player_id") or ""),
            team_id=str(row.get("team_id") or ""),
            goals_count=_optional_int(row.get("goals_count")) or 0,
        )

    def to_row(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    team_id: str
    jersey_number: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Player":
        return cls(
            id=str(row.get("id") or ""),
            name=str(row.get("name") or ""),
            team_id=str(row.get("team_id") or ""),
            jersey_number=_optional_int(row.get("jersey_number")),
            is_active=bool(row.get("is_active", True)),
        )


@dataclass(frozen=True)
class PlayerInfo:
    """Directory entry used to label scorers."""

    name: str
    team_id: str
    jersey_number: Optional[int] = None
    team_name: str = ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "PlayerInfo":
        return cls(
            name=str(row.get("name") or ""),
            team_id=str(row.get("team_id") or ""),
            jersey_number=_optional_int(row.get("jersey_number")),
        )


@dataclass(frozen=True)
class Fixture:
    home_team_id: str
    away_team_id: str
    matchday: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "homeTeamId": self.home_team_id,
            "awayTeamId": self.away_team_id,
            "matchday": self.matchday,
        }


@dataclass
class Standing:
    team_id: str
    team_name: str
    logo_url: Optional[str] = None
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    points: int = 0
    position: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": self.position,
            "teamId": self.team_id,
            "teamName": self.team_name,
            "logoUrl": self.logo_url,
            "played": self.played,
            "won": self.won,
            "drawn": self.drawn,
            "lost": self.lost,
            "goalsFor": self.goals_for,
            "goalsAgainst": self.goals_against,
            "goalDifference": self.goal_difference,
            "points": self.points,
        }


@dataclass
class ScorerEntry:
    player_id: str
    player_name: str
    team_name: str
    total_goals: int = 0
    jersey_number: Optional[int] = None
    team_id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "playerId": self.player_id,
            "playerName": self.player_name,
            "jerseyNumber": self.jersey_number,
            "teamId": self.team_id,
            "teamName": self.team_name,
            "totalGoals": self.total_goals,
        }
