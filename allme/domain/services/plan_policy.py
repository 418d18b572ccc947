"""Plan limits and feature gating.

Every limit is a pure function of the plan. Unbounded numeric limits use the
``UNLIMITED`` sentinel rather than ``math.inf`` so they stay plain integers in
comparisons, arithmetic and JSON.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, fields

from allme.domain.entities.plan import PLAN_ORDER, Plan
from allme.domain.entities.theme import CustomTheme, Theme, ThemeName

UNLIMITED = 1_000_000


@dataclass(frozen=True)
class PlanLimits:
    max_links: int
    max_themes: int
    has_full_analytics: bool
    has_csv_export: bool
    has_qr_code: bool
    has_custom_og: bool
    has_scheduled_links: bool
    has_remove_branding: bool
    has_short_username: bool  # 3-character usernames

    @property
    def unlimited_links(self) -> bool:
        return self.max_links >= UNLIMITED

    def to_dict(self) -> dict:
        return asdict(self)


PLAN_LIMITS: dict[Plan, PlanLimits] = {
    Plan.FREE: PlanLimits(
        max_links=5,
        max_themes=3,
        has_full_analytics=False,
        has_csv_export=False,
        has_qr_code=False,
        has_custom_og=False,
        has_scheduled_links=False,
        has_remove_branding=False,
        has_short_username=False,
    ),
    Plan.PRO: PlanLimits(
        max_links=15,
        max_themes=10,
        has_full_analytics=True,
        has_csv_export=False,
        has_qr_code=True,
        has_custom_og=True,
        has_scheduled_links=True,
        has_remove_branding=False,
        has_short_username=True,
    ),
    Plan.BUSINESS: PlanLimits(
        max_links=UNLIMITED,
        max_themes=UNLIMITED,
        has_full_analytics=True,
        has_csv_export=True,
        has_qr_code=True,
        has_custom_og=True,
        has_scheduled_links=True,
        has_remove_branding=True,
        has_short_username=True,
    ),
}

PLAN_NAMES: dict[Plan, str] = {
    Plan.FREE: "Free",
    Plan.PRO: "Pro",
    Plan.BUSINESS: "Business",
}

PLAN_PRICES: dict[Plan, dict[str, float]] = {
    Plan.FREE: {"monthly": 0, "yearly": 0},
    Plan.PRO: {"monthly": 3.99, "yearly": 39.99},
    Plan.BUSINESS: {"monthly": 9.99, "yearly": 99.99},
}

CAPABILITIES: tuple[str, ...] = tuple(
    f.name for f in fields(PlanLimits) if f.name.startswith("has_")
)


def get_plan_limits(plan: Plan | str | None) -> PlanLimits:
    return PLAN_LIMITS[Plan.parse(plan)]


def get_plan_name(plan: Plan | str | None) -> str:
    return PLAN_NAMES[Plan.parse(plan)]


def get_required_plan(capability: str) -> Plan:
    """Lowest plan on which ``capability`` is enabled.

    Raises:
        ValueError: If ``capability`` is not one of the boolean plan flags.
    """
    if capability not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {capability}")
    for plan in PLAN_ORDER:
        if getattr(PLAN_LIMITS[plan], capability):
            return plan
    return PLAN_ORDER[-1]


def is_theme_allowed(plan: Plan | str | None, theme: Theme) -> bool:
    limits = get_plan_limits(plan)
    if isinstance(theme, CustomTheme):
        return limits.max_themes >= UNLIMITED
    rank = list(ThemeName).index(theme.name)
    return rank < limits.max_themes


def required_plan_for_theme(theme: Theme) -> Plan:
    for plan in PLAN_ORDER:
        if is_theme_allowed(plan, theme):
            return plan
    return PLAN_ORDER[-1]


def required_plan_for_links(count: int) -> Plan:
    """Lowest plan whose link ceiling admits ``count`` links."""
    for plan in PLAN_ORDER:
        if PLAN_LIMITS[plan].max_links >= count:
            return plan
    return PLAN_ORDER[-1]
