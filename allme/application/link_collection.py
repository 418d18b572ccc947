"""Ordered link list of the signed-in user with optimistic mutations.

Every operation changes the local list first and persists afterwards. Local
state is authoritative for the session: remote failures are logged, and only
a failed insert is compensated (the draft is dropped again). An insert that
times out may still commit, so its draft is kept until the next load from the
store replaces the list.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Callable, Iterable, Sequence

from allme.application.remote import best_effort, call_remote
from allme.domain.entities.link import IMMUTABLE_LINK_FIELDS, Draft, LinkEntity, Persisted, as_utc
from allme.domain.errors import PlanLimitError, ValidationError
from allme.domain.services.plan_policy import (
    PlanLimits,
    get_required_plan,
    required_plan_for_links,
)
from allme.infrastructure.database.repositories.link_repository import LinkRepository

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({"title", "url", "icon", "position", "is_active", "scheduled_at"})


def new_draft_key() -> Draft:
    return Draft(f"draft-{uuid.uuid4().hex[:12]}")


class LinkCollection:
    def __init__(
        self,
        repo: LinkRepository,
        *,
        owner: Callable[[], str | None],
        limits: Callable[[], PlanLimits],
        timeout: float | None = None,
    ) -> None:
        """
        Args:
            repo: Remote link store.
            owner: Returns the profile id links belong to, or ``None`` when
                signed out (mutations then stay local).
            limits: Returns the plan limits currently in force.
            timeout: Per remote call timeout in seconds.
        """
        self.repo = repo
        self._owner = owner
        self._limits = limits
        self._timeout = timeout
        self._items: list[LinkEntity] = []
        # drafts removed while their insert was still in flight
        self._abandoned: set[Draft] = set()

    @property
    def items(self) -> list[LinkEntity]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, link_id: str) -> LinkEntity | None:
        for link in self._items:
            if link.id == link_id:
                return link
        return None

    def replace_all(self, links: Iterable[LinkEntity]) -> None:
        """Overwrite the local list, e.g. after loading from the store."""
        self._items = list(links)
        self._abandoned.clear()

    def clear(self) -> None:
        self.replace_all([])

    def _index_of_key(self, key: Draft | Persisted) -> int | None:
        for i, link in enumerate(self._items):
            if link.key == key:
                return i
        return None

    async def add(
        self, title: str, url: str, scheduled_at: datetime | None = None
    ) -> LinkEntity | None:
        """Append a draft link and persist it.

        Returns the confirmed link, the local draft when signed out or when
        the insert timed out, or ``None`` when the draft was removed or the
        insert failed.

        Raises:
            ValidationError: Empty title or url.
            PlanLimitError: Link ceiling reached, or scheduling not included
                in the plan.
        """
        title = (title or "").strip()
        url = (url or "").strip()
        scheduled_at = as_utc(scheduled_at)
        if not title or not url:
            raise ValidationError("Title and URL are required")
        limits = self._limits()
        if len(self._items) >= limits.max_links:
            raise PlanLimitError(
                f"Your plan allows up to {limits.max_links} links",
                required_plan=required_plan_for_links(len(self._items) + 1).value,
            )
        if scheduled_at is not None and not limits.has_scheduled_links:
            raise PlanLimitError(
                "Scheduled links need a paid plan",
                required_plan=get_required_plan("has_scheduled_links").value,
            )

        owner = self._owner()
        draft = LinkEntity(
            key=new_draft_key(),
            profile_id=owner or "",
            title=title,
            url=url,
            position=len(self._items),
            is_active=True,
            click_count=0,
            scheduled_at=scheduled_at,
            created_at=datetime.now(UTC),
        )
        self._items.append(draft)
        if owner is None:
            return draft

        try:
            confirmed = await call_remote(
                self.repo.insert,
                owner,
                title,
                url,
                draft.position,
                scheduled_at=scheduled_at,
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Adding link %r timed out; keeping it as a draft", title)
            self._abandoned.discard(draft.key)
            index = self._index_of_key(draft.key)
            return self._items[index] if index is not None else None
        except Exception as exc:
            logger.warning("Failed to add link: %s", exc)
            confirmed = None

        if draft.key in self._abandoned:
            self._abandoned.discard(draft.key)
            if confirmed is not None:
                await best_effort(
                    "delete abandoned link", self.repo.delete, confirmed.id, timeout=self._timeout
                )
            return None

        index = self._index_of_key(draft.key)
        if confirmed is None:
            if index is not None:
                del self._items[index]
            return None
        if index is None:
            return None

        local = self._items[index]
        merged = replace(
            confirmed,
            title=local.title,
            url=local.url,
            is_active=local.is_active,
            position=local.position,
            scheduled_at=local.scheduled_at,
            icon=local.icon,
        )
        self._items[index] = merged
        drift = {
            name: getattr(local, name)
            for name in ("title", "url", "is_active", "position", "scheduled_at", "icon")
            if getattr(local, name) != getattr(confirmed, name)
        }
        if drift:
            # the draft was edited or reordered while the insert was in flight
            await best_effort("update link", self.repo.update, confirmed.id, drift, timeout=self._timeout)
        return merged

    async def remove(self, link_id: str) -> bool:
        """Drop a link locally, then delete it remotely if it was persisted."""
        link = self.get(link_id)
        if link is None:
            return False
        self._items = [item for item in self._items if item.key != link.key]
        if isinstance(link.key, Draft):
            if self._owner() is not None:
                self._abandoned.add(link.key)
            return True
        if self._owner() is not None:
            await best_effort("delete link", self.repo.delete, link.id, timeout=self._timeout)
        return True

    async def update(self, link_id: str, changes: dict[str, Any]) -> LinkEntity | None:
        """Merge ``changes`` into the local link and persist only those fields."""
        changes = {k: v for k, v in changes.items() if k not in IMMUTABLE_LINK_FIELDS}
        unknown = set(changes) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown link fields: {', '.join(sorted(unknown))}")
        for name in ("title", "url"):
            if name in changes:
                value = (changes[name] or "").strip()
                if not value:
                    raise ValidationError(f"{name.capitalize()} cannot be empty")
                changes[name] = value
        if "scheduled_at" in changes:
            changes["scheduled_at"] = as_utc(changes["scheduled_at"])
        if changes.get("scheduled_at") is not None and not self._limits().has_scheduled_links:
            raise PlanLimitError(
                "Scheduled links need a paid plan",
                required_plan=get_required_plan("has_scheduled_links").value,
            )

        link = self.get(link_id)
        if link is None:
            return None
        updated = replace(link, **changes)
        index = self._index_of_key(link.key)
        self._items[index] = updated

        if changes and isinstance(link.key, Persisted) and self._owner() is not None:
            await best_effort("update link", self.repo.update, link.id, changes, timeout=self._timeout)
        return updated

    async def reorder(self, ordered: Sequence[LinkEntity]) -> list[LinkEntity]:
        """Replace the local order and push every position concurrently.

        Positions are rewritten to 0..N-1 following ``ordered``.
        """
        self._items = [replace(link, position=i) for i, link in enumerate(ordered)]
        if self._owner() is None:
            return self.items

        updates = [
            best_effort(
                "update link position",
                self.repo.update,
                link.id,
                {"position": link.position},
                timeout=self._timeout,
            )
            for link in self._items
            if isinstance(link.key, Persisted)
        ]
        await asyncio.gather(*updates)
        return self.items

    async def reorder_ids(self, link_ids: Sequence[str]) -> list[LinkEntity]:
        """Reorder by id; every current link must appear exactly once.

        Raises:
            ValidationError: ``link_ids`` is not a permutation of the current ids.
        """
        if sorted(link_ids) != sorted(link.id for link in self._items):
            raise ValidationError("Order must list every link exactly once")
        by_id = {link.id: link for link in self._items}
        return await self.reorder([by_id[i] for i in link_ids])
