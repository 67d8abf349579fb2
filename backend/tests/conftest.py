from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import pytest

from league_core import LeagueService, LocalGateway

ENV_VARS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SCHEMA",
    "LEAGUE_DATA_DIR",
    "LEAGUE_NAME",
)


def write_table(data_dir: Path, table: str, rows: List[Dict[str, Any]]) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / f"{table}.json").write_text(json.dumps(rows))


def read_table(data_dir: Path, table: str) -> List[Dict[str, Any]]:
    path = data_dir / f"{table}.json"
    if not path.exists():
        return []
    return json.loads(path.read_text())


@pytest.fixture(autouse=True)
def reset_env(monkeypatch: pytest.MonkeyPatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def seeded_dir(tmp_path: Path) -> Path:
    write_table(
        tmp_path,
        "categories",
        [
            {"id": "cat-libre", "name": "Libre", "is_active": True},
            {"id": "cat-veteranos", "name": "Veteranos", "is_active": True},
            {"id": "cat-old", "name": "Archivada", "is_active": False},
        ],
    )
    write_table(
        tmp_path,
        "teams",
        [
            {"id": "t-aguilas", "name": "Aguilas", "category_id": "cat-libre", "is_active": True},
            {"id": "t-bravos", "name": "Bravos", "category_id": "cat-libre", "is_active": True},
            {"id": "t-cometas", "name": "Cometas", "category_id": "cat-libre", "is_active": True},
            {"id": "t-dragones", "name": "Dragones", "category_id": "cat-libre", "is_active": False},
            {"id": "t-halcones", "name": "Halcones", "category_id": "cat-veteranos", "is_active": True},
        ],
    )
    write_table(
        tmp_path,
        "players",
        [
            {"id": "p-ana", "name": "Ana", "jersey_number": 9, "team_id": "t-aguilas", "is_active": True},
            {"id": "p-beto", "name": "Beto", "jersey_number": 10, "team_id": "t-aguilas", "is_active": True},
            {"id": "p-carla", "name": "Carla", "jersey_number": 7, "team_id": "t-bravos", "is_active": True},
            {"id": "p-dario", "name": "Dario", "jersey_number": None, "team_id": "t-cometas", "is_active": True},
        ],
    )
    write_table(
        tmp_path,
        "matches",
        [
            {
                "id": "m-1",
                "category_id": "cat-libre",
                "matchday": 1,
                "home_team_id": "t-aguilas",
                "away_team_id": "t-bravos",
                "home_goals": 2,
                "away_goals": 1,
                "status": "finished",
            },
            {
                "id": "m-2",
                "category_id": "cat-libre",
                "matchday": 2,
                "home_team_id": "t-bravos",
                "away_team_id": "t-cometas",
                "home_goals": None,
                "away_goals": None,
                "status": "scheduled",
                "match_date": "2025-03-15",
                "match_time": "10:00",
            },
            {
                "id": "m-3",
                "category_id": "cat-libre",
                "matchday": 3,
                "home_team_id": "t-cometas",
                "away_team_id": "t-aguilas",
                "home_goals": None,
                "away_goals": None,
                "status": "scheduled",
                "match_date": "2025-03-08",
                "match_time": "12:00",
            },
        ],
    )
    write_table(
        tmp_path,
        "goals",
        [
            {"id": "g-1", "match_id": "m-1", "player_id": "p-ana", "team_id": "t-aguilas", "goals_count": 2},
            {"id": "g-2", "match_id": "m-1", "player_id": "p-carla", "team_id": "t-bravos", "goals_count": 1},
        ],
    )
    write_table(tmp_path, "user_roles", [{"user_id": "admin-1", "role": "admin"}])
    return tmp_path


@pytest.fixture
def gateway(seeded_dir: Path) -> LocalGateway:
    return LocalGateway(data_dir=seeded_dir)


@pytest.fixture
def service(gateway: LocalGateway) -> LeagueService:
    return LeagueService(gateway, league_name="Liga Elite Zacatecas")
