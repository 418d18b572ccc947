from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from allme.domain.entities.link import LinkEntity
from allme.domain.entities.profile import ProfileEntity
from allme.domain.services.plan_policy import get_plan_limits
from allme.domain.services.username_policy import RESERVED_USERNAMES, normalize_username
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository


@dataclass(frozen=True)
class PublicPage:
    profile: ProfileEntity
    links: list[LinkEntity]
    show_branding: bool


@dataclass
class GetPublicPageUseCase:
    profile_repo: ProfileRepository
    link_repo: LinkRepository

    def execute(self, username: str, now: datetime | None = None) -> PublicPage | None:
        """Public view of a profile: active links whose schedule has started.

        Returns ``None`` for reserved names and unknown users.
        """
        username = normalize_username(username)
        if username in RESERVED_USERNAMES:
            return None
        profile = self.profile_repo.get_by_username(username)
        if profile is None:
            return None
        now = now or datetime.now(UTC)
        links = [
            link
            for link in self.link_repo.list_by_profile(profile.id, active_only=True)
            if link.is_visible(now)
        ]
        return PublicPage(
            profile=profile,
            links=links,
            show_branding=not get_plan_limits(profile.plan).has_remove_branding,
        )
