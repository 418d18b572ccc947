from __future__ import annotations

import os
import uuid
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from allme.domain.entities.link import LinkEntity, Persisted, as_utc
from allme.infrastructure.database.postgres_client import get_postgres_client

# module-level in-memory store for disabled mode, keyed by link id
_MEM_LINKS: dict[str, dict[str, Any]] = {}

_LINK_COLUMNS = frozenset(
    {"title", "url", "icon", "position", "is_active", "click_count", "scheduled_at"}
)


def _parse_ts(value: Any) -> datetime | None:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    return as_utc(value)


def link_fields_to_row(fields: dict[str, Any]) -> dict[str, Any]:
    """Keep only updatable link columns, serializing timestamps."""
    unknown = set(fields) - _LINK_COLUMNS
    if unknown:
        raise ValueError(f"Unknown link fields: {', '.join(sorted(unknown))}")
    return {
        name: value.isoformat() if isinstance(value, datetime) else value
        for name, value in fields.items()
    }


class LinkRepository:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client = get_postgres_client() if self.use_local_db else None

    @property
    def _in_memory(self) -> bool:
        return self.disabled or self.client is None

    def _row_to_entity(self, row: dict) -> LinkEntity:
        return LinkEntity(
            key=Persisted(str(row["id"])),
            profile_id=row["profile_id"],
            title=row["title"],
            url=row["url"],
            position=row.get("position") or 0,
            is_active=row.get("is_active", True),
            click_count=row.get("click_count") or 0,
            scheduled_at=_parse_ts(row.get("scheduled_at")),
            created_at=_parse_ts(row.get("created_at")),
            icon=row.get("icon"),
        )

    def list_by_profile(self, profile_id: str, active_only: bool = False) -> list[LinkEntity]:
        """Links of a profile ordered by position ascending."""
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = "SELECT * FROM links WHERE profile_id = %s"
            if active_only:
                query += " AND is_active = TRUE"
            query += " ORDER BY position ASC, created_at ASC"
            try:
                rows = self.pg_client.fetch_all(query, (profile_id,))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL list links failed: {exc}") from exc
            return [self._row_to_entity(row) for row in rows]

        # In-memory mode
        if self._in_memory:
            rows = [
                row
                for row in _MEM_LINKS.values()
                if row["profile_id"] == profile_id and (row["is_active"] or not active_only)
            ]
            rows.sort(key=lambda r: (r["position"], r["created_at"]))
            return [self._row_to_entity(row) for row in rows]

        # Supabase mode
        try:  # pragma: no cover - network
            query = self.client.table("links").select("*").eq("profile_id", profile_id)
            if active_only:
                query = query.eq("is_active", True)
            res = query.order("position", desc=False).execute()
            return [self._row_to_entity(row) for row in res.data or []]
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB list links failed: {exc}") from exc

    def get(self, link_id: str) -> LinkEntity | None:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                row = self.pg_client.fetch_one("SELECT * FROM links WHERE id = %s", (link_id,))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL get link failed: {exc}") from exc
            return self._row_to_entity(row) if row else None

        # In-memory mode
        if self._in_memory:
            row = _MEM_LINKS.get(link_id)
            return self._row_to_entity(row) if row else None

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("links").select("*").eq("id", link_id).maybe_single().execute()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB get link failed: {exc}") from exc
        return self._row_to_entity(res.data) if res and res.data else None  # pragma: no cover

    def insert(
        self,
        profile_id: str,
        title: str,
        url: str,
        position: int,
        *,
        is_active: bool = True,
        scheduled_at: datetime | None = None,
    ) -> LinkEntity:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            query = """
                INSERT INTO links (profile_id, title, url, position, is_active, scheduled_at, created_at)
                VALUES (%s, %s, %s, %s, %s, %s, CURRENT_TIMESTAMP)
                RETURNING *
            """
            try:
                row = self.pg_client.fetch_one(
                    query, (profile_id, title, url, position, is_active, scheduled_at)
                )
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL insert link failed: {exc}") from exc
            if not row:
                raise RuntimeError("Insert link did not return a row")
            return self._row_to_entity(row)

        # In-memory mode
        if self._in_memory:
            row = {
                "id": str(uuid.uuid4()),
                "profile_id": profile_id,
                "title": title,
                "url": url,
                "icon": None,
                "position": position,
                "is_active": is_active,
                "click_count": 0,
                "scheduled_at": scheduled_at.isoformat() if scheduled_at else None,
                "created_at": datetime.now(UTC).isoformat(),
            }
            _MEM_LINKS[row["id"]] = row
            return self._row_to_entity(row)

        # Supabase mode
        data: dict[str, Any] = {  # pragma: no cover - network
            "profile_id": profile_id,
            "title": title,
            "url": url,
            "position": position,
            "is_active": is_active,
        }
        if scheduled_at:  # pragma: no cover
            data["scheduled_at"] = scheduled_at.isoformat()
        try:  # pragma: no cover
            res = self.client.table("links").insert(data).execute()
            return self._row_to_entity(res.data[0])
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB insert link failed: {exc}") from exc

    def update(self, link_id: str, fields: dict[str, Any]) -> None:
        row = link_fields_to_row(fields)
        if not row:
            return

        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                affected = self.pg_client.update_by_key("links", "id", link_id, row)
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL update link failed: {exc}") from exc
            if affected == 0:
                raise RuntimeError(f"Link {link_id} not found")
            return

        # In-memory mode
        if self._in_memory:
            current = _MEM_LINKS.get(link_id)
            if current is None:
                raise RuntimeError(f"Link {link_id} not found")
            current.update(row)
            return

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("links").update(row).eq("id", link_id).execute()
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB update link failed: {exc}") from exc
        if not res.data:  # pragma: no cover
            raise RuntimeError(f"Link {link_id} not found or update rejected")

    def delete(self, link_id: str) -> bool:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                return self.pg_client.execute("DELETE FROM links WHERE id = %s", (link_id,)) > 0
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL delete link failed: {exc}") from exc

        # In-memory mode
        if self._in_memory:
            return _MEM_LINKS.pop(link_id, None) is not None

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("links").delete().eq("id", link_id).execute()
            return bool(res.data)
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB delete link failed: {exc}") from exc

    def delete_by_profile(self, profile_id: str) -> int:
        # PostgreSQL mode
        if self.use_local_db and self.pg_client:
            try:
                return self.pg_client.execute("DELETE FROM links WHERE profile_id = %s", (profile_id,))
            except Exception as exc:
                raise RuntimeError(f"PostgreSQL delete links failed: {exc}") from exc

        # In-memory mode
        if self._in_memory:
            ids = [k for k, v in _MEM_LINKS.items() if v["profile_id"] == profile_id]
            for k in ids:
                _MEM_LINKS.pop(k, None)
            return len(ids)

        # Supabase mode
        try:  # pragma: no cover - network
            res = self.client.table("links").delete().eq("profile_id", profile_id).execute()
            return len(res.data or [])
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"DB delete links failed: {exc}") from exc

    # click counter, keyed by link id

    def read_counter(self, link_id: str) -> int | None:
        link = self.get(link_id)
        return link.click_count if link else None

    def write_counter(self, link_id: str, value: int) -> None:
        self.update(link_id, {"click_count": value})
