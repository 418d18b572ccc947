"""Hand-rolled store doubles for the async session tests."""
from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import UTC, datetime

from allme.domain.entities.link import LinkEntity, Persisted
from allme.domain.entities.profile import ProfileEntity


class FakeLinkRepo:
    def __init__(self) -> None:
        self.rows: dict[str, LinkEntity] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()  # method names that raise
        self.insert_gate: threading.Event | None = None
        self.update_gate: threading.Event | None = None

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def seed(self, profile_id: str, *titles: str) -> list[LinkEntity]:
        out = []
        for i, title in enumerate(titles):
            link = LinkEntity(
                key=Persisted(f"id-{title}"),
                profile_id=profile_id,
                title=title,
                url=f"https://{title.lower()}.example",
                position=i,
                created_at=datetime.now(UTC),
            )
            self.rows[link.id] = link
            out.append(link)
        return out

    def list_by_profile(self, profile_id, active_only=False):
        self.calls.append(("list", profile_id))
        self._maybe_fail("list_by_profile")
        links = [l for l in self.rows.values() if l.profile_id == profile_id]
        return sorted(links, key=lambda l: l.position)

    def insert(self, profile_id, title, url, position, *, is_active=True, scheduled_at=None):
        if self.insert_gate is not None:
            self.insert_gate.wait(timeout=5)
        self.calls.append(("insert", title))
        self._maybe_fail("insert")
        link = LinkEntity(
            key=Persisted(str(uuid.uuid4())),
            profile_id=profile_id,
            title=title,
            url=url,
            position=position,
            is_active=is_active,
            scheduled_at=scheduled_at,
            created_at=datetime.now(UTC),
        )
        self.rows[link.id] = link
        return link

    def update(self, link_id, fields):
        if self.update_gate is not None:
            self.update_gate.wait(timeout=5)
        self.calls.append(("update", link_id, dict(fields)))
        self._maybe_fail("update")
        if link_id in self.rows:
            self.rows[link_id] = replace(self.rows[link_id], **fields)

    def delete(self, link_id):
        self.calls.append(("delete", link_id))
        self._maybe_fail("delete")
        return self.rows.pop(link_id, None) is not None


class FakeProfileRepo:
    def __init__(self) -> None:
        self.rows: dict[str, ProfileEntity] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.get_gate: threading.Event | None = None

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def get(self, user_id):
        if self.get_gate is not None:
            self.get_gate.wait(timeout=5)
        self.calls.append(("get", user_id))
        self._maybe_fail("get")
        return self.rows.get(user_id)

    def get_by_username(self, username):
        self.calls.append(("get_by_username", username))
        self._maybe_fail("get_by_username")
        return next((p for p in self.rows.values() if p.username == username), None)

    def upsert(self, user_id, fields):
        self.calls.append(("upsert", user_id, dict(fields)))
        self._maybe_fail("upsert")
        if user_id not in self.rows:
            self.rows[user_id] = ProfileEntity(id=user_id, **fields)

    def update(self, user_id, fields):
        self.calls.append(("update", user_id, dict(fields)))
        self._maybe_fail("update")
        self.rows[user_id] = replace(self.rows[user_id], **fields)
