"""League scheduling, standings and scorer computations reused by the API."""

from .gateway import LeagueGateway, LocalGateway, create_gateway
from .models import Category, Fixture, GoalRecord, Match, MatchStatus, Player, PlayerInfo, ScorerEntry, Standing, Team
from .results import ResultMismatchError, validate_result
from .schedule import generate_round_robin
from .scorers import aggregate_scorers
from .service import LeagueService
from .standings import compute_standings

__all__ = [
    "Category",
    "Fixture",
    "GoalRecord",
    "LeagueGateway",
    "LeagueService",
    "LocalGateway",
    "Match",
    "MatchStatus",
    "Player",
    "PlayerInfo",
    "ResultMismatchError",
    "ScorerEntry",
    "Standing",
    "Team",
    "aggregate_scorers",
    "compute_standings",
    "create_gateway",
    "generate_round_robin",
    "validate_result",
]
