from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum


def as_utc(value: datetime | None) -> datetime | None:
    """Naive timestamps are taken to be UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True)
class Draft:
    """Key of a link added locally whose insert has not been confirmed yet."""

    local_key: str


@dataclass(frozen=True)
class Persisted:
    id: str


LinkKey = Draft | Persisted


class LinkStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class LinkEntity:
    key: LinkKey
    profile_id: str
    title: str
    url: str
    position: int
    is_active: bool = True
    click_count: int = 0
    scheduled_at: datetime | None = None
    created_at: datetime | None = None
    icon: str | None = None

    @property
    def id(self) -> str:
        if isinstance(self.key, Persisted):
            return self.key.id
        return self.key.local_key

    @property
    def is_draft(self) -> bool:
        return isinstance(self.key, Draft)

    @property
    def status(self) -> LinkStatus:
        if self.is_draft:
            return LinkStatus.DRAFT
        return LinkStatus.ACTIVE if self.is_active else LinkStatus.INACTIVE

    def is_visible(self, now: datetime | None = None) -> bool:
        """Whether a visitor of the public page should see this link."""
        if not self.is_active:
            return False
        if self.scheduled_at is None:
            return True
        now = now or datetime.now(UTC)
        return as_utc(self.scheduled_at) <= as_utc(now)


# fields never sent back to the store on update
IMMUTABLE_LINK_FIELDS = frozenset({"id", "key", "profile_id", "created_at"})
