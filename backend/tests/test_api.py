from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from app import main as main_module
from app.main import app, get_service, require_user
from league_core import LeagueService

from conftest import read_table


@pytest.fixture
def client(service: LeagueService) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[require_user] = lambda: {"id": "admin-1"}
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_categories(client: TestClient) -> None:
    payload = client.get("/categories").json()

    assert [item["name"] for item in payload["categories"]] == ["Libre", "Veteranos"]


def test_standings_endpoint_uses_camel_case(client: TestClient) -> None:
    response = client.get("/categories/cat-libre/standings")

    assert response.status_code == 200
    rows = response.json()["standings"]
    assert rows[0]["teamName"] == "Aguilas"
    assert rows[0]["goalDifference"] == 1
    assert rows[0]["position"] == 1
    assert [row["teamId"] for row in rows] == ["t-aguilas", "t-cometas", "t-bravos"]


def test_scorers_endpoint_with_limit(client: TestClient) -> None:
    scorers = client.get("/categories/cat-libre/scorers", params={"limit": 1}).json()["scorers"]

    assert scorers == [
        {
            "playerId": "p-ana",
            "playerName": "Ana",
            "jerseyNumber": 9,
            "teamId": "t-aguilas",
            "teamName": "Aguilas",
            "totalGoals": 2,
        }
    ]
    assert client.get("/categories/cat-libre/scorers", params={"limit": -1}).status_code == 422


def test_calendar_and_upcoming_endpoints(client: TestClient) -> None:
    calendar = client.get("/categories/cat-libre/matches").json()
    assert [day["matchday"] for day in calendar["matchdays"]] == [1, 2, 3]
    assert calendar["matchdays"][0]["matches"][0]["homeGoals"] == 2

    upcoming = client.get("/categories/cat-libre/matches/upcoming").json()
    assert [match["id"] for match in upcoming["matches"]] == ["m-3", "m-2"]


def test_exports(client: TestClient) -> None:
    text = client.get("/categories/cat-libre/exports/whatsapp").json()["text"]
    assert "🥇 *Aguilas*" in text

    page = client.get("/categories/cat-libre/exports/html")
    assert page.headers["content-type"].startswith("text/html")
    assert "<table id='standings'>" in page.text

    assert client.get("/categories/missing/exports/whatsapp").status_code == 404


def test_generate_schedule_endpoint(client: TestClient, seeded_dir: Path) -> None:
    conflict = client.post("/categories/cat-libre/schedule", json={})
    assert conflict.status_code == 400

    response = client.post("/categories/cat-libre/schedule", json={"replace": True})
    assert response.status_code == 201
    body = response.json()
    assert body["matchdayCount"] == 3
    assert len(body["fixtures"]) == 3


def test_finalize_result_endpoint(client: TestClient, seeded_dir: Path) -> None:
    response = client.post(
        "/matches/m-2/result",
        json={
            "homeGoals": 2,
            "awayGoals": 0,
            "scorers": [{"playerId": "p-carla", "goals": 1}, {"playerId": "p-carla", "goals": 1}],
        },
    )

    assert response.status_code == 200
    assert response.json()["status"] == "finished"
    goals = [row for row in read_table(seeded_dir, "goals") if row["match_id"] == "m-2"]
    assert [(row["player_id"], row["goals_count"]) for row in goals] == [("p-carla", 2)]


def test_finalize_mismatch_returns_422(client: TestClient, seeded_dir: Path) -> None:
    response = client.post(
        "/matches/m-2/result",
        json={"homeGoals": 3, "awayGoals": 1, "scorers": [{"playerId": "p-carla", "goals": 2}, {"playerId": "p-dario", "goals": 1}]},
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["expected"] == {"home": 3, "away": 1}
    assert detail["actual"] == {"home": 2, "away": 1}
    match = [row for row in read_table(seeded_dir, "matches") if row["id"] == "m-2"][0]
    assert match["status"] == "scheduled"


def test_finalize_unknown_match_is_404(client: TestClient) -> None:
    response = client.post("/matches/nope/result", json={"homeGoals": 0, "awayGoals": 0})

    assert response.status_code == 404


def test_update_match_details_endpoint(client: TestClient) -> None:
    response = client.patch("/matches/m-2", json={"matchDate": "2025-04-05", "matchTime": "08:15", "fieldNumber": 3})

    assert response.status_code == 200
    body = response.json()
    assert (body["matchDate"], body["matchTime"], body["fieldNumber"]) == ("2025-04-05", "08:15", 3)


def test_partial_match_patch_keeps_other_fields(client: TestClient, seeded_dir: Path) -> None:
    client.patch("/matches/m-2", json={"matchDate": "2025-04-01", "matchTime": "09:30", "fieldNumber": 2})

    response = client.patch("/matches/m-2", json={"fieldNumber": 4})

    assert response.status_code == 200
    body = response.json()
    assert (body["matchDate"], body["matchTime"], body["fieldNumber"]) == ("2025-04-01", "09:30", 4)
    row = [row for row in read_table(seeded_dir, "matches") if row["id"] == "m-2"][0]
    assert (row["match_date"], row["match_time"]) == ("2025-04-01", "09:30")

    cleared = client.patch("/matches/m-2", json={"matchTime": None}).json()
    assert cleared["matchTime"] is None
    assert cleared["matchDate"] == "2025-04-01"


def test_schedule_for_odd_team_count_reports_matchdays(client: TestClient, service: LeagueService) -> None:
    service.create_team("cat-veteranos", "Lobos")
    service.create_team("cat-veteranos", "Pumas")

    body = client.post("/categories/cat-veteranos/schedule", json={}).json()

    assert body["matchdayCount"] == 3
    assert len(body["fixtures"]) == 3


def test_category_team_and_player_routes(client: TestClient) -> None:
    category = client.post("/categories", json={"name": "Femenil", "description": "Sabatina"})
    assert category.status_code == 201
    category_id = category.json()["id"]

    team = client.post(f"/categories/{category_id}/teams", json={"name": "Lobas", "logoUrl": "https://img.example/l.png"})
    assert team.status_code == 201
    team_id = team.json()["id"]
    assert team.json()["categoryId"] == category_id

    player = client.post(f"/teams/{team_id}/players", json={"name": "Eva", "jerseyNumber": 5})
    assert player.status_code == 201
    player_id = player.json()["id"]

    renamed = client.patch(f"/teams/{team_id}", json={"name": "Lobas FC"}).json()
    assert (renamed["name"], renamed["logoUrl"]) == ("Lobas FC", "https://img.example/l.png")

    deactivated = client.patch(f"/players/{player_id}", json={"isActive": False}).json()
    assert deactivated["isActive"] is False
    assert deactivated["jerseyNumber"] == 5
    assert client.get(f"/teams/{team_id}/players").json() == {"players": []}
    listed = client.get(f"/teams/{team_id}/players", params={"includeInactive": True}).json()["players"]
    assert [row["name"] for row in listed] == ["Eva"]

    assert client.delete(f"/categories/{category_id}").status_code == 400
    assert client.delete(f"/players/{player_id}").status_code == 204
    assert client.delete(f"/teams/{team_id}").status_code == 204
    assert client.delete(f"/categories/{category_id}").status_code == 204
    assert client.patch(f"/teams/{team_id}", json={"name": "X"}).status_code == 404


def test_entity_payload_validation(client: TestClient) -> None:
    assert client.post("/categories", json={"name": ""}).status_code == 422
    assert client.post("/categories", json={"name": "   "}).status_code == 400
    assert client.post("/teams/t-aguilas/players", json={"name": "Eva", "jerseyNumber": -1}).status_code == 422
    assert client.post("/categories/missing/teams", json={"name": "Lobos"}).status_code == 404


def test_team_listing(client: TestClient) -> None:
    active = client.get("/categories/cat-libre/teams").json()["teams"]
    assert [team["id"] for team in active] == ["t-aguilas", "t-bravos", "t-cometas"]

    everyone = client.get("/categories/cat-libre/teams", params={"includeInactive": True}).json()["teams"]
    assert "t-dragones" in [team["id"] for team in everyone]


def test_delete_match_endpoint(client: TestClient, seeded_dir: Path) -> None:
    assert client.delete("/matches/m-1").status_code == 204

    assert "m-1" not in {row["id"] for row in read_table(seeded_dir, "matches")}
    assert all(row["match_id"] != "m-1" for row in read_table(seeded_dir, "goals"))
    assert client.delete("/matches/m-1").status_code == 404


def test_admin_role_required(client: TestClient) -> None:
    app.dependency_overrides[require_user] = lambda: {"id": "someone-else"}

    response = client.post("/categories/cat-libre/schedule", json={"replace": True})

    assert response.status_code == 403


def test_missing_token_rejected(service: LeagueService) -> None:
    app.dependency_overrides[get_service] = lambda: service
    try:
        response = TestClient(app).post("/matches/m-2/result", json={"homeGoals": 0, "awayGoals": 0})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401


def test_default_service_is_cached(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LEAGUE_DATA_DIR", str(tmp_path))
    main_module.league.cache_clear()
    try:
        assert main_module.get_service() is main_module.get_service()
    finally:
        main_module.league.cache_clear()
