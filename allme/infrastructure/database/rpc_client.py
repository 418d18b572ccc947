"""Remote procedures exposed by the database.

``increment_click_count``/``increment_page_views`` bump a counter in a single
statement. ``redeem_promo_code`` applies a promo code and answers with
``{"success": bool, "error"?: str, "plan"?: str}``. None of these exist in
in-memory mode.
"""
from __future__ import annotations

import os
from typing import Any

from supabase import Client

from allme.infrastructure.database.postgres_client import get_postgres_client


class SupabaseRpc:
    def __init__(self, client: Client | None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        self.use_local_db = os.getenv("USE_LOCAL_DB", "0") == "1"
        self.pg_client = get_postgres_client() if self.use_local_db else None

    @property
    def available(self) -> bool:
        if self.use_local_db and self.pg_client:
            return True
        return not self.disabled and self.client is not None

    def increment_click_count(self, link_id: str) -> None:
        if self.use_local_db and self.pg_client:
            affected = self.pg_client.execute(
                "UPDATE links SET click_count = click_count + 1 WHERE id = %s", (link_id,)
            )
            if affected == 0:
                raise RuntimeError(f"Link {link_id} not found")
            return
        self._call("increment_click_count", {"link_id": link_id})

    def increment_page_views(self, username: str) -> None:
        if self.use_local_db and self.pg_client:
            affected = self.pg_client.execute(
                "UPDATE profiles SET page_views = COALESCE(page_views, 0) + 1 WHERE username = %s",
                (username,),
            )
            if affected == 0:
                raise RuntimeError(f"Profile {username} not found")
            return
        self._call("increment_page_views", {"profile_username": username})

    def redeem_promo_code(self, code: str, user_id: str) -> dict[str, Any]:
        if self.use_local_db and self.pg_client:
            row = self.pg_client.fetch_one(
                "SELECT redeem_promo_code(%s, %s) AS result", (code, user_id)
            )
            return (row or {}).get("result") or {"success": False}
        data = self._call("redeem_promo_code", {"promo_code": code, "user_id": user_id})
        return data if isinstance(data, dict) else {"success": False}

    def _call(self, fn: str, params: dict[str, Any]) -> Any:
        if not self.available:
            raise RuntimeError(f"RPC {fn} is not available")
        try:  # pragma: no cover - network
            return self.client.rpc(fn, params).execute().data
        except Exception as exc:  # pragma: no cover
            raise RuntimeError(f"RPC {fn} failed: {exc}") from exc
