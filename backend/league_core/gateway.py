from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class LeagueGateway(Protocol):
    """Data access the league workflows need from the hosted backend."""

    def fetch_categories(self, active_only: bool = True) -> List[Row]: ...

    def fetch_teams(self, category_id: str, active_only: bool = True) -> List[Row]: ...

    def fetch_team(self, team_id: str) -> Optional[Row]: ...

    def fetch_players(self, team_ids: Optional[Iterable[str]] = None, active_only: bool = True) -> List[Row]: ...

    def fetch_player(self, player_id: str) -> Optional[Row]: ...

    def fetch_matches(self, category_id: str, status: Optional[str] = None) -> List[Row]: ...

    def fetch_match(self, match_id: str) -> Optional[Row]: ...

    def fetch_goals(self, match_id: Optional[str] = None, team_ids: Optional[Iterable[str]] = None) -> List[Row]: ...

    def insert_category(self, row: Row) -> Row: ...

    def update_category(self, category_id: str, changes: Row) -> Row: ...

    def delete_category(self, category_id: str) -> None: ...

    def insert_team(self, row: Row) -> Row: ...

    def update_team(self, team_id: str, changes: Row) -> Row: ...

    def delete_team(self, team_id: str) -> None: ...

    def insert_player(self, row: Row) -> Row: ...

    def update_player(self, player_id: str, changes: Row) -> Row: ...

    def delete_player(self, player_id: str) -> None: ...

    def insert_matches(self, rows: List[Row]) -> List[Row]: ...

    def update_match(self, match_id: str, changes: Row) -> Row: ...

    def delete_matches(self, category_id: str) -> None: ...

    def delete_match(self, match_id: str) -> None: ...

    def delete_goals(self, match_id: str) -> None: ...

    def insert_goals(self, rows: List[Row]) -> List[Row]: ...

    def has_role(self, user_id: str, role: str) -> bool: ...


def _match_sort_key(row: Row) -> tuple:
    return (
        int(row.get("matchday") or 0),
        row.get("match_date") is None,
        row.get("match_date") or "",
        row.get("match_time") is None,
        row.get("match_time") or "",
    )


class LocalGateway:
    """JSON-file store with one ``<table>.json`` list per table.

    Used when Supabase credentials are missing, and by the test-suite.
    """

    def __init__(self, data_dir: Path | None = None) -> None:
        default_dir = os.getenv("LEAGUE_DATA_DIR") or (Path(__file__).parent.parent / "data")
        self.data_dir = Path(data_dir or default_dir)

    # ---- reads -------------------------------------------------------------------

    def fetch_categories(self, active_only: bool = True) -> List[Row]:
        rows = self._load("categories")
        if active_only:
            rows = [row for row in rows if row.get("is_active", True)]
        return sorted(rows, key=lambda row: str(row.get("name") or ""))

    def fetch_teams(self, category_id: str, active_only: bool = True) -> List[Row]:
        rows = [row for row in self._load("teams") if row.get("category_id") == category_id]
        if active_only:
            rows = [row for row in rows if row.get("is_active", True)]
        return sorted(rows, key=lambda row: str(row.get("name") or ""))

    def fetch_team(self, team_id: str) -> Optional[Row]:
        return self._find("teams", team_id)

    def fetch_players(self, team_ids: Optional[Iterable[str]] = None, active_only: bool = True) -> List[Row]:
        rows = self._load("players")
        if team_ids is not None:
            wanted = set(team_ids)
            rows = [row for row in rows if row.get("team_id") in wanted]
        if active_only:
            rows = [row for row in rows if row.get("is_active", True)]
        return rows

    def fetch_player(self, player_id: str) -> Optional[Row]:
        return self._find("players", player_id)

    def fetch_matches(self, category_id: str, status: Optional[str] = None) -> List[Row]:
        rows = [row for row in self._load("matches") if row.get("category_id") == category_id]
        if status:
            rows = [row for row in rows if row.get("status") == status]
        return sorted(rows, key=_match_sort_key)

    def fetch_match(self, match_id: str) -> Optional[Row]:
        return self._find("matches", match_id)

    def fetch_goals(self, match_id: Optional[str] = None, team_ids: Optional[Iterable[str]] = None) -> List[Row]:
        rows = self._load("goals")
        if match_id is not None:
            rows = [row for row in rows if row.get("match_id") == match_id]
        if team_ids is not None:
            wanted = set(team_ids)
            rows = [row for row in rows if row.get("team_id") in wanted]
        return rows

    def has_role(self, user_id: str, role: str) -> bool:
        return any(
            row.get("user_id") == user_id and row.get("role") == role for row in self._load("user_roles")
        )

    # ---- writes ------------------------------------------------------------------

    def insert_category(self, row: Row) -> Row:
        return self._insert("categories", [row])[0]

    def update_category(self, category_id: str, changes: Row) -> Row:
        return self._update("categories", category_id, changes, "Category not found")

    def delete_category(self, category_id: str) -> None:
        self._delete_by_id("categories", category_id)

    def insert_team(self, row: Row) -> Row:
        return self._insert("teams", [row])[0]

    def update_team(self, team_id: str, changes: Row) -> Row:
        return self._update("teams", team_id, changes, "Team not found")

    def delete_team(self, team_id: str) -> None:
        self._delete_by_id("teams", team_id)

    def insert_player(self, row: Row) -> Row:
        return self._insert("players", [row])[0]

    def update_player(self, player_id: str, changes: Row) -> Row:
        return self._update("players", player_id, changes, "Player not found")

    def delete_player(self, player_id: str) -> None:
        self._delete_by_id("players", player_id)

    def insert_matches(self, rows: List[Row]) -> List[Row]:
        return self._insert("matches", rows)

    def update_match(self, match_id: str, changes: Row) -> Row:
        return self._update("matches", match_id, changes, "Match not found")

    def delete_matches(self, category_id: str) -> None:
        rows = self._load("matches")
        removed = {row.get("id") for row in rows if row.get("category_id") == category_id}
        self._save("matches", [row for row in rows if row.get("id") not in removed])
        if removed:
            goals = self._load("goals")
            self._save("goals", [row for row in goals if row.get("match_id") not in removed])

    def delete_match(self, match_id: str) -> None:
        self._delete_by_id("matches", match_id)
        self.delete_goals(match_id)

    def delete_goals(self, match_id: str) -> None:
        rows = self._load("goals")
        self._save("goals", [row for row in rows if row.get("match_id") != match_id])

    def insert_goals(self, rows: List[Row]) -> List[Row]:
        return self._insert("goals", rows)

    # ---- file helpers ------------------------------------------------------------

    def _path(self, table: str) -> Path:
        return self.data_dir / f"{table}.json"

    def _load(self, table: str) -> List[Row]:
        path = self._path(table)
        try:
            if not path.exists():
                return []
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Falling back to empty table for %s due to read error: %s", path, exc)
            return []
        if not isinstance(data, list):
            return []
        return [row for row in data if isinstance(row, dict)]

    def _save(self, table: str, rows: List[Row]) -> None:
        path = self._path(table)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2, sort_keys=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to write local data store {path}") from exc

    def _insert(self, table: str, rows: List[Row]) -> List[Row]:
        if not rows:
            return []
        existing = self._load(table)
        created: List[Row] = []
        for row in rows:
            record = dict(row)
            record.setdefault("id", str(uuid.uuid4()))
            created.append(record)
        self._save(table, existing + created)
        return created

    def _find(self, table: str, row_id: str) -> Optional[Row]:
        for row in self._load(table):
            if row.get("id") == row_id:
                return row
        return None

    def _update(self, table: str, row_id: str, changes: Row, missing: str) -> Row:
        rows = self._load(table)
        for row in rows:
            if row.get("id") == row_id:
                row.update(changes)
                self._save(table, rows)
                return dict(row)
        raise ValueError(missing)

    def _delete_by_id(self, table: str, row_id: str) -> None:
        rows = self._load(table)
        self._save(table, [row for row in rows if row.get("id") != row_id])


def create_gateway() -> LeagueGateway:
    """Supabase when credentials are configured, local JSON files otherwise."""

    from .supabase import SupabaseGateway

    gateway = SupabaseGateway()
    if gateway.configured:
        return gateway
    logger.warning("Supabase is not configured; using local JSON data store")
    return LocalGateway()
