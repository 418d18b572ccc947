from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ThemeName(str, Enum):
    # ordered by unlock tier: free gets the first three, pro the first ten
    LIGHT = "light"
    DARK = "dark"
    GRADIENT = "gradient"
    OCEAN = "ocean"
    SUNSET = "sunset"
    FOREST = "forest"
    MIDNIGHT = "midnight"
    ROSE = "rose"
    CYBER = "cyber"
    MINIMAL = "minimal"


CUSTOM_THEME = "custom"


@dataclass(frozen=True)
class CustomColors:
    bg: str
    text: str
    button_bg: str
    button_text: str

    def to_row(self) -> dict[str, str]:
        return {
            "bg": self.bg,
            "text": self.text,
            "buttonBg": self.button_bg,
            "buttonText": self.button_text,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> CustomColors:
        return cls(
            bg=row["bg"],
            text=row["text"],
            button_bg=row.get("buttonBg", row.get("button_bg")),
            button_text=row.get("buttonText", row.get("button_text")),
        )


@dataclass(frozen=True)
class NamedTheme:
    name: ThemeName = ThemeName.LIGHT


@dataclass(frozen=True)
class CustomTheme:
    palette: CustomColors


Theme = NamedTheme | CustomTheme

DEFAULT_THEME = NamedTheme(ThemeName.LIGHT)


def theme_from_row(theme: str | None, custom_colors: dict[str, Any] | None) -> Theme:
    """Build a theme from the ``theme``/``custom_colors`` column pair.

    A ``custom`` theme without a usable palette, or an unknown theme name,
    falls back to the default light theme.
    """
    if theme == CUSTOM_THEME:
        if custom_colors:
            try:
                return CustomTheme(CustomColors.from_row(custom_colors))
            except KeyError:
                return DEFAULT_THEME
        return DEFAULT_THEME
    try:
        return NamedTheme(ThemeName(theme))
    except ValueError:
        return DEFAULT_THEME


def theme_to_row(theme: Theme) -> dict[str, Any]:
    if isinstance(theme, CustomTheme):
        return {"theme": CUSTOM_THEME, "custom_colors": theme.palette.to_row()}
    return {"theme": theme.name.value, "custom_colors": None}
