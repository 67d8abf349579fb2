from __future__ import annotations

import datetime as dt
import logging
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field

from league_core import LeagueService, ResultMismatchError, create_gateway
from league_core.models import Category, Match, Player, Team
from league_core.schedule import matchday_count

app = FastAPI(title="League Results API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ADMIN_ROLE = "admin"

logger = logging.getLogger(__name__)


class CategoryModel(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = Field(default=True, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class CategoryListResponse(BaseModel):
    categories: List[CategoryModel]


class CategoryPayload(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CategoryUpdatePayload(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class TeamModel(BaseModel):
    id: str
    name: str
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    is_active: bool = Field(default=True, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class TeamListResponse(BaseModel):
    teams: List[TeamModel]


class TeamPayload(BaseModel):
    name: str = Field(min_length=1)
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")

    model_config = ConfigDict(populate_by_name=True)


class TeamUpdatePayload(BaseModel):
    name: Optional[str] = None
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class PlayerModel(BaseModel):
    id: str
    name: str
    team_id: str = Field(alias="teamId")
    jersey_number: Optional[int] = Field(default=None, alias="jerseyNumber")
    is_active: bool = Field(default=True, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class PlayerListResponse(BaseModel):
    players: List[PlayerModel]


class PlayerPayload(BaseModel):
    name: str = Field(min_length=1)
    jersey_number: Optional[int] = Field(default=None, alias="jerseyNumber", ge=0)

    model_config = ConfigDict(populate_by_name=True)


class PlayerUpdatePayload(BaseModel):
    name: Optional[str] = None
    jersey_number: Optional[int] = Field(default=None, alias="jerseyNumber", ge=0)
    is_active: Optional[bool] = Field(default=None, alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class StandingModel(BaseModel):
    position: int
    team_id: str = Field(alias="teamId")
    team_name: str = Field(alias="teamName")
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    played: int
    won: int
    drawn: int
    lost: int
    goals_for: int = Field(alias="goalsFor")
    goals_against: int = Field(alias="goalsAgainst")
    goal_difference: int = Field(alias="goalDifference")
    points: int

    model_config = ConfigDict(populate_by_name=True)


class StandingsResponse(BaseModel):
    category_id: str = Field(alias="categoryId")
    standings: List[StandingModel]

    model_config = ConfigDict(populate_by_name=True)


class ScorerModel(BaseModel):
    player_id: str = Field(alias="playerId")
    player_name: str = Field(alias="playerName")
    jersey_number: Optional[int] = Field(default=None, alias="jerseyNumber")
    team_id: str = Field(default="", alias="teamId")
    team_name: str = Field(alias="teamName")
    total_goals: int = Field(alias="totalGoals")

    model_config = ConfigDict(populate_by_name=True)


class ScorersResponse(BaseModel):
    category_id: str = Field(alias="categoryId")
    scorers: List[ScorerModel]

    model_config = ConfigDict(populate_by_name=True)


class MatchModel(BaseModel):
    id: str
    home_team_id: str = Field(alias="homeTeamId")
    away_team_id: str = Field(alias="awayTeamId")
    matchday: int
    status: str
    home_goals: Optional[int] = Field(default=None, alias="homeGoals")
    away_goals: Optional[int] = Field(default=None, alias="awayGoals")
    match_date: Optional[str] = Field(default=None, alias="matchDate")
    match_time: Optional[str] = Field(default=None, alias="matchTime")
    field_number: Optional[int] = Field(default=None, alias="fieldNumber")

    model_config = ConfigDict(populate_by_name=True)


class MatchdayModel(BaseModel):
    matchday: int
    matches: List[MatchModel]


class CalendarResponse(BaseModel):
    category_id: str = Field(alias="categoryId")
    matchdays: List[MatchdayModel]

    model_config = ConfigDict(populate_by_name=True)


class UpcomingMatchesResponse(BaseModel):
    matches: List[MatchModel]


class FixtureModel(BaseModel):
    home_team_id: str = Field(alias="homeTeamId")
    away_team_id: str = Field(alias="awayTeamId")
    matchday: int

    model_config = ConfigDict(populate_by_name=True)


class ScheduleRequest(BaseModel):
    replace: bool = False


class ScheduleResponse(BaseModel):
    category_id: str = Field(alias="categoryId")
    matchday_count: int = Field(alias="matchdayCount")
    fixtures: List[FixtureModel]

    model_config = ConfigDict(populate_by_name=True)


class MatchDetailsPayload(BaseModel):
    match_date: Optional[dt.date] = Field(default=None, alias="matchDate")
    match_time: Optional[dt.time] = Field(default=None, alias="matchTime")
    field_number: Optional[int] = Field(default=None, alias="fieldNumber", ge=1)

    model_config = ConfigDict(populate_by_name=True)


class ScorerPayload(BaseModel):
    player_id: str = Field(alias="playerId")
    goals: int = Field(ge=0)

    model_config = ConfigDict(populate_by_name=True)


class ResultPayload(BaseModel):
    home_goals: int = Field(alias="homeGoals", ge=0)
    away_goals: int = Field(alias="awayGoals", ge=0)
    scorers: List[ScorerPayload] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)


class ShareTextResponse(BaseModel):
    text: str


def _match_model(match: Match) -> MatchModel:
    return MatchModel(**match.to_dict())


def _category_model(category: Category) -> CategoryModel:
    return CategoryModel(
        id=category.id,
        name=category.name,
        description=category.description,
        is_active=category.is_active,
    )


def _team_model(team: Team) -> TeamModel:
    return TeamModel(
        id=team.id,
        name=team.name,
        category_id=team.category_id,
        logo_url=team.logo_url,
        is_active=team.is_active,
    )


def _player_model(player: Player) -> PlayerModel:
    return PlayerModel(
        id=player.id,
        name=player.name,
        team_id=player.team_id,
        jersey_number=player.jersey_number,
        is_active=player.is_active,
    )


@lru_cache(maxsize=1)
def league() -> LeagueService:
    return LeagueService(create_gateway())


def get_service() -> LeagueService:
    return league()


def require_user(authorization: str = Header(default="")) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Authorization token is required")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Authorization token is required")

    supabase_url = os.getenv("SUPABASE_URL", "").rstrip("/")
    supabase_anon_key = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_SERVICE_KEY")
    if not supabase_url or not supabase_anon_key:
        raise HTTPException(status_code=500, detail="Supabase configuration is incomplete")

    endpoint = f"{supabase_url}/auth/v1/user"
    headers = {
        "Authorization": f"Bearer {token}",
        "apikey": supabase_anon_key,
    }

    try:
        with httpx.Client(timeout=10.0) as client:
            response = client.get(endpoint, headers=headers)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code if exc.response else 502
        if status in (401, 403):
            raise HTTPException(status_code=401, detail="Invalid authentication token") from exc
        raise HTTPException(status_code=502, detail="Failed to verify authentication token") from exc
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail="Failed to verify authentication token") from exc

    user_id = str(payload.get("id") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    payload["id"] = user_id
    return payload


def require_admin(
    user: Dict[str, Any] = Depends(require_user),
    service: LeagueService = Depends(get_service),
) -> Dict[str, Any]:
    try:
        allowed = service.gateway.has_role(user["id"], ADMIN_ROLE)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    if not allowed:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return user


def _not_found_or_bad_request(exc: ValueError) -> HTTPException:
    if str(exc).endswith("not found"):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/categories", response_model=CategoryListResponse)
def list_categories(service: LeagueService = Depends(get_service)):
    try:
        categories = service.categories()
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return CategoryListResponse(categories=[_category_model(category) for category in categories])


@app.post("/categories", response_model=CategoryModel, status_code=201)
def create_category(
    payload: CategoryPayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        category = service.create_category(payload.name, description=payload.description)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _category_model(category)


@app.patch("/categories/{category_id}", response_model=CategoryModel)
def update_category(
    category_id: str,
    payload: CategoryUpdatePayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        category = service.update_category(category_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _category_model(category)


@app.delete("/categories/{category_id}", status_code=204)
def delete_category(
    category_id: str,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        service.delete_category(category_id)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/categories/{category_id}/teams", response_model=TeamListResponse)
def category_teams(
    category_id: str,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    service: LeagueService = Depends(get_service),
):
    try:
        teams = service.teams(category_id, active_only=not include_inactive)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return TeamListResponse(teams=[_team_model(team) for team in teams])


@app.post("/categories/{category_id}/teams", response_model=TeamModel, status_code=201)
def create_team(
    category_id: str,
    payload: TeamPayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        team = service.create_team(category_id, payload.name, logo_url=payload.logo_url)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _team_model(team)


@app.patch("/teams/{team_id}", response_model=TeamModel)
def update_team(
    team_id: str,
    payload: TeamUpdatePayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        team = service.update_team(team_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _team_model(team)


@app.delete("/teams/{team_id}", status_code=204)
def delete_team(
    team_id: str,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        service.delete_team(team_id)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/teams/{team_id}/players", response_model=PlayerListResponse)
def team_players(
    team_id: str,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    service: LeagueService = Depends(get_service),
):
    try:
        players = service.players(team_id, active_only=not include_inactive)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return PlayerListResponse(players=[_player_model(player) for player in players])


@app.post("/teams/{team_id}/players", response_model=PlayerModel, status_code=201)
def create_player(
    team_id: str,
    payload: PlayerPayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        player = service.create_player(team_id, payload.name, jersey_number=payload.jersey_number)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _player_model(player)


@app.patch("/players/{player_id}", response_model=PlayerModel)
def update_player(
    player_id: str,
    payload: PlayerUpdatePayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        player = service.update_player(player_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _player_model(player)


@app.delete("/players/{player_id}", status_code=204)
def delete_player(
    player_id: str,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        service.delete_player(player_id)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(status_code=204)


@app.get("/categories/{category_id}/standings", response_model=StandingsResponse)
def category_standings(category_id: str, service: LeagueService = Depends(get_service)):
    try:
        standings = service.standings(category_id)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return StandingsResponse(
        categoryId=category_id,
        standings=[StandingModel(**row.to_dict()) for row in standings],
    )


@app.get("/categories/{category_id}/scorers", response_model=ScorersResponse)
def category_scorers(
    category_id: str,
    limit: Optional[int] = Query(default=None, ge=0),
    service: LeagueService = Depends(get_service),
):
    try:
        scorers = service.top_scorers(category_id, limit=limit)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return ScorersResponse(
        categoryId=category_id,
        scorers=[ScorerModel(**entry.to_dict()) for entry in scorers],
    )


@app.get("/categories/{category_id}/matches", response_model=CalendarResponse)
def category_calendar(category_id: str, service: LeagueService = Depends(get_service)):
    try:
        calendar = service.calendar(category_id)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return CalendarResponse(
        categoryId=category_id,
        matchdays=[
            MatchdayModel(matchday=matchday, matches=[_match_model(match) for match in matches])
            for matchday, matches in calendar.items()
        ],
    )


@app.get("/categories/{category_id}/matches/upcoming", response_model=UpcomingMatchesResponse)
def category_upcoming(
    category_id: str,
    limit: int = Query(default=3, ge=1),
    service: LeagueService = Depends(get_service),
):
    try:
        matches = service.upcoming_matches(category_id, limit=limit)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return UpcomingMatchesResponse(matches=[_match_model(match) for match in matches])


@app.get("/categories/{category_id}/exports/whatsapp", response_model=ShareTextResponse)
def export_whatsapp(category_id: str, service: LeagueService = Depends(get_service)):
    try:
        text = service.standings_share_text(category_id)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return ShareTextResponse(text=text)


@app.get("/categories/{category_id}/exports/html", response_class=HTMLResponse)
def export_html(category_id: str, service: LeagueService = Depends(get_service)):
    try:
        return HTMLResponse(service.standings_page(category_id))
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@app.post("/categories/{category_id}/schedule", response_model=ScheduleResponse, status_code=201)
def generate_schedule(
    category_id: str,
    payload: ScheduleRequest,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        fixtures = service.generate_schedule(category_id, replace=payload.replace)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return ScheduleResponse(
        categoryId=category_id,
        matchdayCount=matchday_count(
            len({f.home_team_id for f in fixtures} | {f.away_team_id for f in fixtures})
        ),
        fixtures=[FixtureModel(**fixture.to_dict()) for fixture in fixtures],
    )


@app.patch("/matches/{match_id}", response_model=MatchModel)
def update_match(
    match_id: str,
    payload: MatchDetailsPayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("match_date") is not None:
        changes["match_date"] = changes["match_date"].isoformat()
    if changes.get("match_time") is not None:
        changes["match_time"] = changes["match_time"].strftime("%H:%M")
    try:
        match = service.update_match_details(match_id, changes)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _match_model(match)


@app.delete("/matches/{match_id}", status_code=204)
def delete_match(
    match_id: str,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    try:
        service.delete_match(match_id)
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(status_code=204)


@app.post("/matches/{match_id}/result", response_model=MatchModel)
def finalize_result(
    match_id: str,
    payload: ResultPayload,
    user: Dict[str, Any] = Depends(require_admin),
    service: LeagueService = Depends(get_service),
):
    scorers: Dict[str, int] = {}
    for item in payload.scorers:
        scorers[item.player_id] = scorers.get(item.player_id, 0) + item.goals

    try:
        match = service.finalize_match(match_id, payload.home_goals, payload.away_goals, scorers)
    except ResultMismatchError as exc:
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(exc),
                "expected": {"home": exc.expected[0], "away": exc.expected[1]},
                "actual": {"home": exc.actual[0], "away": exc.actual[1]},
            },
        ) from exc
    except ValueError as exc:
        raise _not_found_or_bad_request(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _match_model(match)
