from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from allme.domain.entities.plan import Plan
from allme.domain.entities.profile import ProfileEntity
from allme.domain.entities.theme import CustomTheme, NamedTheme, theme_from_row, theme_to_row
from allme.infrastructure.database.postgres_client import get_postgres_client

# module-level in-memory store for disabled mode, keyed by user id
_MEM_PROFILES: dict[str, dict[str, Any]] = {}

_PROFILE_COLUMNS = frozenset(
    {
        "username", "display_name", "bio", "avatar_url", "theme",
        "custom_colors", "plan", "page_views", "email",
    }
)


def profile_fields_to_row(fields: dict[str, Any]) -> dict[str, Any]:
    """Translate entity-level profile fields into table columns."""
    row: dict[str, Any] = {}
    for name, value in fields.items():
        if name == "theme":
            if isinstance(value, (NamedTheme, CustomTheme)):
                row.update(theme_to_row(value))
            else:
                row["theme"] = value
        elif isinstance(value, Plan):
            row[name] = value.value
        elif isinstance(value, datetime):
            row[name] = value.isoformat()
        else:
            row[name] = value
    unknown = set(row) - _PROFILE_COLUMNS - {"id"}
    if unknown:
        raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
    return row


class ProfileRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client = get_postgres_client() if self.use_local_db else None

    @property
    def _in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _row_to_entity(self, row: dict) -> ProfileEntity:
        created_at = row.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return ProfileEntity(
            id=row["id"],
            username=row.get("username") or "",
            display_name=row.get("display_name"),
            bio=row.get("bio"),
            avatar_url=row.get("avatar_url"),
            theme=theme_from_row(row.get("theme"), row.get("custom_colors")),
            plan=Plan.parse(row.get("plan")),
            page_views=row.get("page_views") or 0,
            email=row.get("email"),
            created_at=created_at,
        )

    def get(self, user_id: str) -> ProfileEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                row = self.pg_client.fetch_one("SELECT * FROM profiles WHERE id = %s", (user_id,))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL get profile failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self._in_memory:
            row = _MEM_PROFILES.get(user_id)
            return self._row_to_entity(row) if row else None

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("profiles").select("*").eq("id", user_id).maybe_single().execute()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB get profile failed: {exc}") from exc
        return self._row_to_entity(res.data) if res and res.data else None  # pragma: no cover

    def get_by_username(self, username: str) -> ProfileEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                row = self.pg_client.fetch_one("SELECT * FROM profiles WHERE username = %s", (username,))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL get profile by username failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self._in_memory:
            for row in _MEM_PROFILES.values():
                if row.get("username") == username:
                    return self._row_to_entity(row)
            return None

        # Supabase mode
        try:  # pragma: no cover - network
            res = (
                self.client.table("profiles")
                .select("*")
                .eq("username", username)
                .maybe_single()
                .execute()
            )
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB get profile by username failed: {exc}") from exc
        return self._row_to_entity(res.data) if res and res.data else None  # pragma: no cover

    def upsert(self, user_id: str, fields: dict[str, Any]) -> None:
        """Create the profile row for ``user_id`` unless one already exists.

        A row created concurrently elsewhere is left untouched.
        """
        row = profile_fields_to_row(fields)
        row["id"] = user_id

        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            columns = list(row)
            query = (
                f"INSERT INTO profiles ({', '.join(columns)}, created_at) "
                f"VALUES ({', '.join(['%s'] * len(columns))}, CURRENT_TIMESTAMP) "
                "ON CONFLICT (id) DO NOTHING"
            )
            try:
                self.pg_client.execute(query, row.values())
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL upsert profile failed: {exc}") from exc
            return

        # In-memory mode
        if self._in_memory:
            if user_id in _MEM_PROFILES:
                return
            self._ensure_unique_username(user_id, row.get("username"))
            _MEM_PROFILES[user_id] = {
                "plan": Plan.FREE.value,
                "page_views": 0,
                "theme": "light",
                "custom_colors": None,
                **row,
                "created_at": datetime.now(UTC).isoformat(),
            }
            return

        # Supabase mode
        try:  # pragma: no cover - network
            self.client.table("profiles").upsert(row, on_conflict="id", ignore_duplicates=True).execute()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB upsert profile failed: {exc}") from exc

    def update(self, user_id: str, fields: dict[str, Any]) -> None:
        row = profile_fields_to_row(fields)
        row.pop("id", None)
        if not row:
            return

        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                affected = self.pg_client.update_by_key("profiles", "id", user_id, row)
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL update profile failed: {exc}") from exc
            if affected == 0:
                raise RuntimeError(f"Profile {user_id} not found")
            return

        # In-memory mode
        if self._in_memory:
            current = _MEM_PROFILES.get(user_id)
            if current is None:
                raise RuntimeError(f"Profile {user_id} not found")
            if "username" in row:
                self._ensure_unique_username(user_id, row["username"])
            current.update(row)
            return

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("profiles").update(row).eq("id", user_id).execute()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB update profile failed: {exc}") from exc
        if not res.data:  # pragma: no cover
            raise RuntimeError(f"Profile {user_id} not found or update rejected")

    def delete(self, user_id: str) -> bool:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                return self.pg_client.execute("DELETE FROM profiles WHERE id = %s", (user_id,)) > 0
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL delete profile failed: {exc}") from exc

        # In-memory mode
        if self._in_memory:
            return _MEM_PROFILES.pop(user_id, None) is not None

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("profiles").delete().eq("id", user_id).execute()
            return bool(res.data)
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB delete profile failed: {exc}") from exc

    # page view counter, keyed by username

    def read_counter(self, username: str) -> int | None:
        profile = self.get_by_username(username)
        return profile.page_views if profile else None

    def write_counter(self, username: str, value: int) -> None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            affected = self.pg_client.update_by_key(
                "profiles", "username", username, {"page_views": value}
            )
            if affected == 0:
                raise RuntimeError(f"Profile {username} not found")
            return

        # In-memory mode
        if self._in_memory:
            for row in _MEM_PROFILES.values():
                if row.get("username") == username:
                    row["page_views"] = value
                    return
            raise RuntimeError(f"Profile {username} not found")

        # Supabase mode
        res = (  # pragma: no cover - network
            self.client.table("profiles")
            .update({"page_views": value})
            .eq("username", username)
            .execute()
        )
        if not res.data:  # pragma: no cover
            raise RuntimeError(f"Page view update for {username} was rejected")

    def _ensure_unique_username(self, user_id: str, username: str | None) -> None:
        if not username:
            return
        for other_id, row in _MEM_PROFILES.items():
            if other_id != user_id and row.get("username") == username:
                raise RuntimeError(f"Username {username} already taken")
