from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from allme.application.dtos.link_dto import LinkItem, PublicLinkItem
from allme.domain.entities.profile import ProfileEntity
from allme.domain.entities.theme import (
    CUSTOM_THEME,
    CustomColors,
    CustomTheme,
    NamedTheme,
    Theme,
    ThemeName,
)
from allme.domain.errors import ValidationError

_COLOR = r"^#[0-9a-fA-F]{3,8}$"


class CustomColorsModel(BaseModel):
    bg: str = Field(..., pattern=_COLOR, examples=["#0f172a"])
    text: str = Field(..., pattern=_COLOR, examples=["#f8fafc"])
    button_bg: str = Field(..., pattern=_COLOR, examples=["#38bdf8"])
    button_text: str = Field(..., pattern=_COLOR, examples=["#0f172a"])


class ProfileResponse(BaseModel):
    """Profile of the signed-in user."""
    id: str = Field(..., description="User id from the auth provider")
    username: str = Field(..., description="Public page slug", examples=["alex"])
    display_name: str | None = Field(None, examples=["Alex Doe"])
    bio: str | None = None
    avatar_url: str | None = None
    theme: str = Field(..., description="Theme name or 'custom'", examples=["light"])
    custom_colors: CustomColorsModel | None = None
    plan: str = Field(..., examples=["free"])
    page_views: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_entity(cls, profile: ProfileEntity) -> ProfileResponse:
        colors = None
        if isinstance(profile.theme, CustomTheme):
            palette = profile.theme.palette
            colors = CustomColorsModel(
                bg=palette.bg, text=palette.text, button_bg=palette.button_bg, button_text=palette.button_text
            )
            theme = CUSTOM_THEME
        else:
            theme = profile.theme.name.value
        return cls(
            id=profile.id,
            username=profile.username,
            display_name=profile.display_name,
            bio=profile.bio,
            avatar_url=profile.avatar_url,
            theme=theme,
            custom_colors=colors,
            plan=profile.plan.value,
            page_views=profile.page_views,
            created_at=profile.created_at,
        )


class UpdateProfileBody(BaseModel):
    """Partial profile update; omitted fields are left untouched."""
    username: str | None = Field(None, min_length=3, max_length=30, examples=["alex"])
    display_name: str | None = Field(None, max_length=100, examples=["Alex Doe"])
    bio: str | None = Field(None, max_length=500)
    theme: str | None = Field(None, description="Theme name or 'custom'", examples=["dark"])
    custom_colors: CustomColorsModel | None = None

    def to_changes(self) -> dict[str, Any]:
        """Entity-level changes.

        Raises:
            ValidationError: Unknown theme, or ``custom`` without colors.
        """
        data = self.model_dump(exclude_unset=True)
        data.pop("custom_colors", None)
        if "theme" in data:
            data["theme"] = self._theme()
        return data

    def _theme(self) -> Theme:
        if self.theme == CUSTOM_THEME:
            if self.custom_colors is None:
                raise ValidationError("A custom theme needs custom_colors")
            return CustomTheme(CustomColors(**self.custom_colors.model_dump()))
        try:
            return NamedTheme(ThemeName(self.theme))
        except ValueError as exc:
            raise ValidationError(f"Unknown theme: {self.theme}") from exc


class PlanLimitsResponse(BaseModel):
    plan: str = Field(..., examples=["free"])
    name: str = Field(..., examples=["Free"])
    limits: dict[str, Any] = Field(..., description="Numeric limits and capability flags")
    prices: dict[str, float] = Field(..., description="Monthly and yearly price in USD")
    unlimited_links: bool


class UsernameCheckResponse(BaseModel):
    available: bool
    reason: str | None = Field(None, description="invalid, reserved or taken")


class SessionResponse(BaseModel):
    """Everything the dashboard renders from."""
    state: str = Field(..., examples=["ready"])
    user_id: str | None = None
    profile: ProfileResponse
    links: list[LinkItem]
    avatar_preview: str | None = None
    plan_limits: dict[str, Any]


class PublicProfileResponse(BaseModel):
    """Data for rendering a public page."""
    username: str
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    theme: str
    custom_colors: CustomColorsModel | None = None
    show_branding: bool = Field(..., description="False when the plan removes allme branding")
    links: list[PublicLinkItem]
