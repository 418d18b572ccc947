"""In-memory source of truth for the signed-in user's profile and links.

A :class:`ProfileSession` is created explicitly by whoever owns the user's
context (a request, a CLI run, a test) and passed to the code that needs it.
It follows identity events from the provider and keeps profile, links and
avatar preview consistent with them:

    UNAUTHENTICATED --sign in--> LOADING --loaded--> READY --sign out--> UNAUTHENTICATED

Once READY, later sign-in/refresh events update the data in place instead of
going back through LOADING. Remote failures never escape the session: a
profile that cannot be loaded shows as an empty placeholder.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import fields as dataclass_fields
from dataclasses import replace
from enum import Enum
from typing import Any, Callable

from allme.application.identity import IdentityProvider
from allme.application.link_collection import LinkCollection
from allme.application.remote import DEFAULT_REMOTE_TIMEOUT, best_effort
from allme.domain.entities.identity import Identity, IdentityEvent, SignedIn, SignedOut, TokenRefreshed
from allme.domain.entities.plan import Plan
from allme.domain.entities.profile import IMMUTABLE_PROFILE_FIELDS, ProfileEntity, empty_profile
from allme.domain.entities.theme import DEFAULT_THEME, CustomTheme, NamedTheme
from allme.domain.errors import PlanLimitError, ValidationError
from allme.domain.services.plan_policy import (
    PlanLimits,
    get_plan_limits,
    is_theme_allowed,
    required_plan_for_theme,
)
from allme.domain.services.username_policy import derive_username, fallback_username, validate_username
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = frozenset(f.name for f in dataclass_fields(ProfileEntity))


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    LOADING = "loading"
    READY = "ready"


class ProfileSession:
    def __init__(
        self,
        identity: IdentityProvider,
        profiles: ProfileRepository,
        links: LinkRepository,
        *,
        timeout: float | None = None,
    ) -> None:
        self.identity = identity
        self.profiles = profiles
        self.timeout = DEFAULT_REMOTE_TIMEOUT if timeout is None else timeout
        self.state = SessionState.UNAUTHENTICATED
        self.user_id: str | None = None
        self.profile: ProfileEntity = empty_profile()
        self.avatar_preview: str | None = None
        self.links = LinkCollection(
            links,
            owner=lambda: self.user_id,
            limits=lambda: self.plan_limits,
            timeout=self.timeout,
        )
        self._unsubscribe: Callable[[], None] | None = None
        # bumped by every load and reset; a load that sees another value is stale
        self._generation = 0

    @property
    def plan_limits(self) -> PlanLimits:
        return get_plan_limits(self.profile.plan)

    @property
    def is_loading(self) -> bool:
        return self.state is SessionState.LOADING

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.READY

    async def __aenter__(self) -> ProfileSession:
        return await self.start()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def start(self) -> ProfileSession:
        """Subscribe to identity changes and load the current user, if any."""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.on_identity_change(self._on_identity_event)
        generation = self._generation
        try:
            current = await asyncio.wait_for(self.identity.get_current_identity(), self.timeout)
        except Exception as exc:
            logger.info("No usable session: %s", exc)
            current = None
        if generation != self._generation:
            # an identity event arrived meanwhile and already took over
            return self
        if current is None:
            self._reset()
        else:
            await self._load(current)
        return self

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_identity_event(self, event: IdentityEvent) -> None:
        if isinstance(event, SignedOut):
            self._reset()
        elif isinstance(event, (SignedIn, TokenRefreshed)):
            if self.is_ready and self.user_id == event.identity.id:
                await self.refresh_data()
            else:
                await self._load(event.identity)

    def _reset(self) -> None:
        self._generation += 1
        self.state = SessionState.UNAUTHENTICATED
        self.user_id = None
        self.profile = empty_profile()
        self.links.clear()
        self.avatar_preview = None

    async def _load(self, identity: Identity) -> None:
        self._generation += 1
        generation = self._generation
        self.state = SessionState.LOADING
        self.user_id = identity.id

        _, profile = await best_effort("load profile", self.profiles.get, identity.id, timeout=self.timeout)
        if generation != self._generation:
            return
        if profile is None:
            profile = await self._provision(identity, generation)
            if generation != self._generation:
                return
        self.profile = profile or replace(empty_profile(), id=identity.id)
        if self.profile.avatar_url:
            self.avatar_preview = self.profile.avatar_url

        _, links = await best_effort(
            "load links", self.links.repo.list_by_profile, identity.id, timeout=self.timeout
        )
        if generation != self._generation:
            return
        self.links.replace_all(links or [])
        self.state = SessionState.READY

    async def _provision(self, identity: Identity, generation: int) -> ProfileEntity | None:
        """Create the missing profile row for a first-time identity.

        Gives up without writing when the load became stale meanwhile.
        """
        meta = identity.metadata or {}
        username = derive_username(identity.id, meta, identity.email)
        ok, holder = await best_effort(
            "check username", self.profiles.get_by_username, username, timeout=self.timeout
        )
        if generation != self._generation:
            return None
        if ok and holder is not None and holder.id != identity.id:
            username = fallback_username(identity.id)

        new_profile = {
            "username": username,
            "display_name": meta.get("full_name") or meta.get("name") or username,
            "email": meta.get("email") or identity.email,
            "bio": None,
            "avatar_url": meta.get("avatar_url"),
            "theme": DEFAULT_THEME,
        }
        logger.info("Provisioning profile %s for %s", username, identity.id)
        await best_effort("create profile", self.profiles.upsert, identity.id, new_profile, timeout=self.timeout)
        if generation != self._generation:
            return None
        _, profile = await best_effort("load profile", self.profiles.get, identity.id, timeout=self.timeout)
        return profile

    def _prepare_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        changes = {k: v for k, v in changes.items() if k not in IMMUTABLE_PROFILE_FIELDS}
        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        if "theme" in changes and not isinstance(changes["theme"], (NamedTheme, CustomTheme)):
            raise ValidationError("Theme must be a named theme or a custom palette")
        if "plan" in changes:
            changes["plan"] = Plan.parse(changes["plan"])
        for name in ("display_name", "bio"):
            if name in changes and isinstance(changes[name], str):
                changes[name] = changes[name].strip() or None
        return changes

    def update_profile_local(self, changes: dict[str, Any]) -> ProfileEntity:
        """Merge ``changes`` locally without persisting (live preview)."""
        changes = self._prepare_changes(changes)
        if "username" in changes:
            changes["username"] = validate_username(changes["username"])
        self.profile = replace(self.profile, **changes)
        return self.profile

    async def update_profile(self, changes: dict[str, Any]) -> ProfileEntity:
        """Merge ``changes`` locally, then persist them best-effort.

        Raises:
            ValidationError: Unknown field or malformed username.
            PlanLimitError: Theme or short username not included in the plan.
        """
        changes = self._prepare_changes(changes)
        if "username" in changes and changes["username"] != self.profile.username:
            changes["username"] = validate_username(changes["username"], self.plan_limits)
        theme = changes.get("theme")
        if theme is not None and not is_theme_allowed(self.profile.plan, theme):
            raise PlanLimitError(
                "This theme is not included in your plan",
                required_plan=required_plan_for_theme(theme).value,
            )

        self.profile = replace(self.profile, **changes)
        if self.user_id and changes:
            await best_effort("update profile", self.profiles.update, self.user_id, changes, timeout=self.timeout)
        return self.profile

    def set_avatar_preview(self, url: str | None) -> None:
        self.avatar_preview = url

    async def refresh_data(self) -> None:
        """Reload profile and links from the store, replacing local state."""
        if not self.user_id:
            return
        generation, user_id = self._generation, self.user_id
        ok, profile = await best_effort("refresh profile", self.profiles.get, user_id, timeout=self.timeout)
        if generation != self._generation:
            return
        if ok and profile is not None:
            self.profile = profile
        ok, links = await best_effort(
            "refresh links", self.links.repo.list_by_profile, user_id, timeout=self.timeout
        )
        if generation != self._generation:
            return
        if ok and links is not None:
            self.links.replace_all(links)

    async def sign_out(self) -> None:
        """Sign out with the provider; local state is reset even if that fails."""
        try:
            await asyncio.wait_for(self.identity.sign_out(), self.timeout)
        except Exception as exc:
            logger.warning("Failed to sign out remotely: %s", exc)
        self._reset()
