from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import pytest

from league_core import LeagueService, LocalGateway, ResultMismatchError
from league_core.gateway import create_gateway

from conftest import read_table


def _goal_summary(data_dir: Path, match_id: str) -> Dict[str, int]:
    return {
        row["player_id"]: row["goals_count"]
        for row in read_table(data_dir, "goals")
        if row["match_id"] == match_id
    }


def _match_row(data_dir: Path, match_id: str) -> Dict[str, Any]:
    return [row for row in read_table(data_dir, "matches") if row["id"] == match_id][0]


def test_categories_are_active_and_sorted(service: LeagueService) -> None:
    assert [category.name for category in service.categories()] == ["Libre", "Veteranos"]


def test_standings_use_active_teams_and_finished_matches(service: LeagueService) -> None:
    standings = service.standings("cat-libre")

    assert [row.team_name for row in standings] == ["Aguilas", "Cometas", "Bravos"]
    assert standings[0].points == 3
    assert standings[2].goal_difference == -1


def test_standings_for_category_without_teams(service: LeagueService) -> None:
    assert service.standings("cat-old") == []


def test_top_scorers_with_limit(service: LeagueService) -> None:
    scorers = service.top_scorers("cat-libre")

    assert [(entry.player_name, entry.total_goals, entry.team_name) for entry in scorers] == [
        ("Ana", 2, "Aguilas"),
        ("Carla", 1, "Bravos"),
    ]
    assert service.top_scorers("cat-libre", limit=1) == scorers[:1]
    assert service.top_scorers("cat-veteranos") == []


def test_calendar_and_upcoming(service: LeagueService) -> None:
    calendar = service.calendar("cat-libre")
    assert list(calendar) == [1, 2, 3]
    assert [match.id for match in calendar[2]] == ["m-2"]

    upcoming = service.upcoming_matches("cat-libre")
    assert [match.id for match in upcoming] == ["m-3", "m-2"]
    assert [match.id for match in service.upcoming_matches("cat-libre", limit=1)] == ["m-3"]


def test_generate_schedule_requires_replace_when_matches_exist(service: LeagueService, seeded_dir: Path) -> None:
    with pytest.raises(ValueError, match="already exist"):
        service.generate_schedule("cat-libre")

    assert len(read_table(seeded_dir, "matches")) == 3


def test_generate_schedule_replaces_matches(service: LeagueService, seeded_dir: Path) -> None:
    fixtures = service.generate_schedule("cat-libre", replace=True)

    assert len(fixtures) == 3
    rows = [row for row in read_table(seeded_dir, "matches") if row["category_id"] == "cat-libre"]
    assert len(rows) == 3
    assert {row["status"] for row in rows} == {"scheduled"}
    assert {row["matchday"] for row in rows} == {1, 2, 3}
    teams = {row["home_team_id"] for row in rows} | {row["away_team_id"] for row in rows}
    assert teams == {"t-aguilas", "t-bravos", "t-cometas"}
    assert read_table(seeded_dir, "goals") == []


def test_generate_schedule_needs_two_teams(service: LeagueService) -> None:
    with pytest.raises(ValueError, match="At least 2"):
        service.generate_schedule("cat-veteranos")


def test_finalize_match_records_result(service: LeagueService, seeded_dir: Path) -> None:
    match = service.finalize_match("m-2", 1, 1, {"p-carla": 1, "p-dario": 1})

    assert match.is_finished
    assert (match.home_goals, match.away_goals) == (1, 1)
    assert _match_row(seeded_dir, "m-2")["status"] == "finished"
    assert _goal_summary(seeded_dir, "m-2") == {"p-carla": 1, "p-dario": 1}


def test_finalize_mismatch_changes_nothing(service: LeagueService, seeded_dir: Path) -> None:
    goals_before = read_table(seeded_dir, "goals")

    with pytest.raises(ResultMismatchError) as excinfo:
        service.finalize_match("m-2", 3, 1, {"p-carla": 2, "p-dario": 1})

    assert excinfo.value.expected == (3, 1)
    assert excinfo.value.actual == (2, 1)
    row = _match_row(seeded_dir, "m-2")
    assert row["status"] == "scheduled"
    assert row["home_goals"] is None
    assert read_table(seeded_dir, "goals") == goals_before


def test_finalize_unknown_match(service: LeagueService) -> None:
    with pytest.raises(ValueError, match="Match not found"):
        service.finalize_match("missing", 0, 0, {})


class _FailingUpdateGateway(LocalGateway):
    def update_match(self, match_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        raise RuntimeError("backend unavailable")


def test_finalize_restores_goals_when_match_update_fails(seeded_dir: Path) -> None:
    service = LeagueService(_FailingUpdateGateway(data_dir=seeded_dir))

    with pytest.raises(RuntimeError, match="backend unavailable"):
        service.finalize_match("m-1", 3, 1, {"p-ana": 2, "p-beto": 1, "p-carla": 1})

    assert _goal_summary(seeded_dir, "m-1") == {"p-ana": 2, "p-carla": 1}
    row = _match_row(seeded_dir, "m-1")
    assert (row["home_goals"], row["away_goals"]) == (2, 1)


class _FailingInsertGateway(LocalGateway):
    """Rejects the first goal insert, then behaves normally."""

    def __init__(self, data_dir: Path, failures: int = 1) -> None:
        super().__init__(data_dir=data_dir)
        self.failures = failures

    def insert_goals(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("goal insert rejected")
        return super().insert_goals(rows)


def test_finalize_restores_goals_when_goal_insert_fails(seeded_dir: Path) -> None:
    service = LeagueService(_FailingInsertGateway(seeded_dir))

    with pytest.raises(RuntimeError, match="goal insert rejected"):
        service.finalize_match("m-1", 3, 1, {"p-ana": 2, "p-beto": 1, "p-carla": 1})

    assert _goal_summary(seeded_dir, "m-1") == {"p-ana": 2, "p-carla": 1}
    row = _match_row(seeded_dir, "m-1")
    assert row["status"] == "finished"
    assert (row["home_goals"], row["away_goals"]) == (2, 1)


def test_finalize_scheduled_match_stays_scheduled_when_goal_insert_fails(seeded_dir: Path) -> None:
    service = LeagueService(_FailingInsertGateway(seeded_dir))

    with pytest.raises(RuntimeError):
        service.finalize_match("m-2", 1, 0, {"p-carla": 1})

    row = _match_row(seeded_dir, "m-2")
    assert row["status"] == "scheduled"
    assert row["home_goals"] is None
    assert _goal_summary(seeded_dir, "m-2") == {}


def test_failed_restore_is_logged(seeded_dir: Path, caplog: pytest.LogCaptureFixture) -> None:
    service = LeagueService(_FailingInsertGateway(seeded_dir, failures=2))

    with caplog.at_level(logging.ERROR, logger="league_core.service"):
        with pytest.raises(RuntimeError, match="goal insert rejected"):
            service.finalize_match("m-1", 3, 1, {"p-ana": 2, "p-beto": 1, "p-carla": 1})

    assert "Failed to restore goal records for match m-1" in caplog.text
    assert _match_row(seeded_dir, "m-1")["status"] == "finished"


def test_update_match_details_only_touches_given_fields(service: LeagueService, seeded_dir: Path) -> None:
    match = service.update_match_details("m-2", {"field_number": 4})

    assert (match.match_date, match.match_time, match.field_number) == ("2025-03-15", "10:00", 4)
    row = _match_row(seeded_dir, "m-2")
    assert (row["match_date"], row["match_time"], row["field_number"]) == ("2025-03-15", "10:00", 4)

    cleared = service.update_match_details("m-2", {"match_time": "", "status": "finished"})
    assert cleared.match_time is None
    assert cleared.match_date == "2025-03-15"
    assert cleared.status == "scheduled"

    with pytest.raises(ValueError, match="Match not found"):
        service.update_match_details("missing", {})


def test_share_text_and_page(service: LeagueService) -> None:
    text = service.standings_share_text("cat-libre")
    assert "🏆 Categoría: Libre" in text
    assert "🥇 *Aguilas*" in text

    page = service.standings_page("cat-libre")
    assert "Liga Elite Zacatecas - Libre" in page

    with pytest.raises(ValueError, match="Category not found"):
        service.standings_share_text("cat-old")


def test_create_gateway_falls_back_to_local(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LEAGUE_DATA_DIR", str(tmp_path))

    gateway = create_gateway()

    assert isinstance(gateway, LocalGateway)
    assert gateway.data_dir == tmp_path
