from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from allme.domain.entities.plan import Plan
from allme.domain.entities.theme import DEFAULT_THEME, Theme


@dataclass(frozen=True)
class ProfileEntity:
    id: str  # user id from Supabase auth
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    theme: Theme = field(default=DEFAULT_THEME)
    plan: Plan = Plan.FREE
    page_views: int = 0
    email: str | None = None
    created_at: datetime | None = None

    @property
    def is_placeholder(self) -> bool:
        return not self.id


# fields a caller may never overwrite through a profile update
IMMUTABLE_PROFILE_FIELDS = frozenset({"id", "created_at"})


def empty_profile() -> ProfileEntity:
    """Placeholder shown while signed out or when the profile could not be loaded."""
    return ProfileEntity(id="", username="")
