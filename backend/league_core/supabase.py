from __future__ import annotations

import logging
import os
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .gateway import Row

logger = logging.getLogger(__name__)


class SupabaseGateway:
    """League tables served by the Supabase PostgREST API."""

    def __init__(self) -> None:
        self.supabase_url = os.getenv("SUPABASE_URL", "")
        self.supabase_key = (
            os.getenv("SUPABASE_SERVICE_ROLE_KEY")
            or os.getenv("SUPABASE_SERVICE_KEY")
            or os.getenv("SUPABASE_ANON_KEY")
            or ""
        )
        self.supabase_schema = os.getenv("SUPABASE_SCHEMA", "public")
        self.categories_table = os.getenv("SUPABASE_CATEGORIES_TABLE", "categories")
        self.teams_table = os.getenv("SUPABASE_TEAMS_TABLE", "teams")
        self.players_table = os.getenv("SUPABASE_PLAYERS_TABLE", "players")
        self.matches_table = os.getenv("SUPABASE_MATCHES_TABLE", "matches")
        self.goals_table = os.getenv("SUPABASE_GOALS_TABLE", "goals")

    @property
    def configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    # ---- reads -------------------------------------------------------------------

    def fetch_categories(self, active_only: bool = True) -> List[Row]:
        params: Dict[str, Any] = {"select": "*", "order": "name.asc"}
        if active_only:
            params["is_active"] = "eq.true"
        return self._get(self.categories_table, params)

    def fetch_teams(self, category_id: str, active_only: bool = True) -> List[Row]:
        params: Dict[str, Any] = {
            "select": "id,name,category_id,logo_url,is_active",
            "category_id": f"eq.{category_id}",
            "order": "name.asc",
        }
        if active_only:
            params["is_active"] = "eq.true"
        return self._get(self.teams_table, params)

    def fetch_team(self, team_id: str) -> Optional[Row]:
        return self._get_one(self.teams_table, team_id)

    def fetch_players(self, team_ids: Optional[Iterable[str]] = None, active_only: bool = True) -> List[Row]:
        params: Dict[str, Any] = {"select": "id,name,jersey_number,team_id,is_active"}
        if team_ids is not None:
            ids = list(team_ids)
            if not ids:
                return []
            params["team_id"] = self._in_filter(ids)
        if active_only:
            params["is_active"] = "eq.true"
        return self._get(self.players_table, params)

    def fetch_player(self, player_id: str) -> Optional[Row]:
        return self._get_one(self.players_table, player_id)

    def fetch_matches(self, category_id: str, status: Optional[str] = None) -> List[Row]:
        params: Dict[str, Any] = {
            "select": "*",
            "category_id": f"eq.{category_id}",
            "order": "matchday.asc,match_date.asc.nullslast,match_time.asc.nullslast",
        }
        if status:
            params["status"] = f"eq.{status}"
        return self._get(self.matches_table, params)

    def fetch_match(self, match_id: str) -> Optional[Row]:
        return self._get_one(self.matches_table, match_id)

    def fetch_goals(self, match_id: Optional[str] = None, team_ids: Optional[Iterable[str]] = None) -> List[Row]:
        params: Dict[str, Any] = {"select": "id,match_id,player_id,team_id,goals_count"}
        if match_id is not None:
            params["match_id"] = f"eq.{match_id}"
        if team_ids is not None:
            ids = list(team_ids)
            if not ids:
                return []
            params["team_id"] = self._in_filter(ids)
        return self._get(self.goals_table, params)

    def has_role(self, user_id: str, role: str) -> bool:
        endpoint = f"{self.supabase_url.rstrip('/')}/rest/v1/rpc/has_role"
        headers = self._supabase_headers()
        headers["Content-Type"] = "application/json"
        payload = {"_user_id": user_id, "_role": role}
        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.post(endpoint, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as exc:
            raise RuntimeError(self._failure_message("has_role", exc.response, exc)) from exc
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Supabase has_role failed: {exc}") from exc
        return result is True

    # ---- writes ------------------------------------------------------------------

    def insert_category(self, row: Row) -> Row:
        return self._post_one(self.categories_table, row)

    def update_category(self, category_id: str, changes: Row) -> Row:
        return self._patch(self.categories_table, category_id, changes, "Category not found")

    def delete_category(self, category_id: str) -> None:
        self._delete(self.categories_table, {"id": f"eq.{category_id}"})

    def insert_team(self, row: Row) -> Row:
        return self._post_one(self.teams_table, row)

    def update_team(self, team_id: str, changes: Row) -> Row:
        return self._patch(self.teams_table, team_id, changes, "Team not found")

    def delete_team(self, team_id: str) -> None:
        self._delete(self.teams_table, {"id": f"eq.{team_id}"})

    def insert_player(self, row: Row) -> Row:
        return self._post_one(self.players_table, row)

    def update_player(self, player_id: str, changes: Row) -> Row:
        return self._patch(self.players_table, player_id, changes, "Player not found")

    def delete_player(self, player_id: str) -> None:
        self._delete(self.players_table, {"id": f"eq.{player_id}"})

    def insert_matches(self, rows: List[Row]) -> List[Row]:
        return self._post(self.matches_table, rows)

    def update_match(self, match_id: str, changes: Row) -> Row:
        return self._patch(self.matches_table, match_id, changes, "Match not found")

    def delete_matches(self, category_id: str) -> None:
        self._delete(self.matches_table, {"category_id": f"eq.{category_id}"})

    def delete_match(self, match_id: str) -> None:
        self._delete(self.matches_table, {"id": f"eq.{match_id}"})

    def delete_goals(self, match_id: str) -> None:
        self._delete(self.goals_table, {"match_id": f"eq.{match_id}"})

    def insert_goals(self, rows: List[Row]) -> List[Row]:
        return self._post(self.goals_table, rows)

    # ---- internal Supabase helpers -------------------------------------------------

    def _supabase_endpoint(self, table: str) -> str:
        return f"{self.supabase_url.rstrip('/')}/rest/v1/{table}"

    def _supabase_headers(self, prefer: str | None = None, include_content_profile: bool = True) -> Dict[str, str]:
        headers = {
            "apikey": self.supabase_key,
            "Authorization": f"Bearer {self.supabase_key}",
            "Accept": "application/json",
        }
        if include_content_profile and self.supabase_schema and self.supabase_schema != "public":
            headers["Content-Profile"] = self.supabase_schema
        if self.supabase_schema and self.supabase_schema != "public":
            headers["Accept-Profile"] = self.supabase_schema
        if prefer:
            headers["Prefer"] = prefer
        return headers

    @staticmethod
    def _in_filter(values: Iterable[str]) -> str:
        return "in.(" + ",".join(str(value) for value in values) + ")"

    def _get(self, table: str, params: Dict[str, Any]) -> List[Row]:
        endpoint = self._supabase_endpoint(table)
        headers = self._supabase_headers(include_content_profile=False)
        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.get(endpoint, params=params, headers=headers)
                response.raise_for_status()
                rows = response.json()
        except httpx.HTTPStatusError as exc:
            raise RuntimeError(self._failure_message(f"fetch {table}", exc.response, exc)) from exc
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Failed to fetch {table} from Supabase: {exc}") from exc

        if isinstance(rows, list):
            return [row for row in rows if isinstance(row, dict)]
        if isinstance(rows, dict):
            return [rows]
        logger.warning("Supabase %s query returned unexpected payload: %s", table, type(rows))
        return []

    def _post(self, table: str, rows: List[Row]) -> List[Row]:
        if not rows:
            return []
        endpoint = self._supabase_endpoint(table)
        headers = self._supabase_headers("return=representation")
        headers["Content-Type"] = "application/json"
        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.post(endpoint, params={"select": "*"}, json=rows, headers=headers)
                response.raise_for_status()
                created = response.json()
        except httpx.HTTPStatusError as exc:
            raise RuntimeError(self._failure_message(f"insert into {table}", exc.response, exc)) from exc
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Failed to insert into {table}: {exc}") from exc

        if isinstance(created, list):
            return [row for row in created if isinstance(row, dict)]
        if isinstance(created, dict):
            return [created]
        raise RuntimeError(f"Unexpected response when inserting into {table}")

    def _get_one(self, table: str, row_id: str) -> Optional[Row]:
        rows = self._get(table, {"select": "*", "id": f"eq.{row_id}", "limit": 1})
        return rows[0] if rows else None

    def _post_one(self, table: str, row: Row) -> Row:
        created = self._post(table, [row])
        if not created:
            raise RuntimeError(f"Supabase returned no row when inserting into {table}")
        return created[0]

    def _patch(self, table: str, row_id: str, changes: Row, missing: str) -> Row:
        endpoint = self._supabase_endpoint(table)
        headers = self._supabase_headers("return=representation")
        headers["Content-Type"] = "application/json"
        params = {"id": f"eq.{row_id}", "select": "*"}
        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.patch(endpoint, params=params, json=changes, headers=headers)
                response.raise_for_status()
                rows = response.json()
        except httpx.HTTPStatusError as exc:
            raise RuntimeError(self._failure_message(f"update {table}", exc.response, exc)) from exc
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Supabase update {table} failed: {exc}") from exc

        if isinstance(rows, list) and rows:
            return rows[0]
        if isinstance(rows, dict):
            return rows
        raise ValueError(missing)

    def _delete(self, table: str, params: Dict[str, Any]) -> None:
        endpoint = self._supabase_endpoint(table)
        headers = self._supabase_headers()
        try:
            with httpx.Client(timeout=10.0) as client:
                response = client.delete(endpoint, params=params, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RuntimeError(self._failure_message(f"delete from {table}", exc.response, exc)) from exc
        except httpx.HTTPError as exc:
            raise RuntimeError(f"Failed to delete from {table}: {exc}") from exc

    def _failure_message(self, action: str, response: httpx.Response | None, exc: Exception) -> str:
        detail = self._extract_supabase_detail(response)
        if detail:
            return f"Supabase {action} failed: {detail}"
        return f"Supabase {action} failed: {exc}"

    def _extract_supabase_detail(self, response: httpx.Response | None) -> str | None:
        if response is None:
            return None
        try:
            payload = response.json()
        except ValueError:
            text = (response.text or "").strip()
            return text or None

        if isinstance(payload, dict):
            for key in ("message", "detail", "error", "hint", "code"):
                value = payload.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip()
        if isinstance(payload, list) and payload:
            first = payload[0]
            if isinstance(first, dict):
                for key in ("message", "detail", "error", "hint", "code"):
                    value = first.get(key)
                    if isinstance(value, str) and value.strip():
                        return value.strip()
        return None
