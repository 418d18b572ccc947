import pytest

from allme.domain.entities.plan import PLAN_ORDER, Plan
from allme.domain.entities.theme import CustomColors, CustomTheme, NamedTheme, ThemeName
from allme.domain.services.plan_policy import (
    CAPABILITIES,
    UNLIMITED,
    get_plan_limits,
    get_plan_name,
    get_required_plan,
    is_theme_allowed,
    required_plan_for_links,
)


def test_link_ceiling_per_plan():
    assert get_plan_limits("free").max_links == 5
    assert get_plan_limits("pro").max_links == 15
    assert get_plan_limits("business").max_links == UNLIMITED
    assert get_plan_limits(Plan.BUSINESS).unlimited_links


def test_max_links_non_decreasing_across_tiers():
    ceilings = [get_plan_limits(plan).max_links for plan in PLAN_ORDER]
    assert ceilings == sorted(ceilings)


def test_unlimited_is_a_plain_integer():
    limit = get_plan_limits("business").max_links
    assert isinstance(limit, int)
    assert limit + 1 > limit


@pytest.mark.parametrize("value", [None, "", "enterprise", "PRO"])
def test_unknown_plan_defaults_to_free(value):
    assert get_plan_limits(value) == get_plan_limits(Plan.FREE)
    assert get_plan_name(value) == "Free"


def test_required_plan_scans_from_lowest_tier():
    assert get_required_plan("has_full_analytics") == Plan.PRO
    assert get_required_plan("has_scheduled_links") == Plan.PRO
    assert get_required_plan("has_csv_export") == Plan.BUSINESS
    assert get_required_plan("has_remove_branding") == Plan.BUSINESS


def test_required_plan_matches_flag_table():
    for capability in CAPABILITIES:
        required = get_required_plan(capability)
        assert getattr(get_plan_limits(required), capability)
        lower = PLAN_ORDER[: PLAN_ORDER.index(required)]
        assert not any(getattr(get_plan_limits(plan), capability) for plan in lower)


def test_required_plan_rejects_unknown_capability():
    with pytest.raises(ValueError, match="Unknown capability"):
        get_required_plan("max_links")


def test_theme_tiers():
    assert is_theme_allowed("free", NamedTheme(ThemeName.GRADIENT))
    assert not is_theme_allowed("free", NamedTheme(ThemeName.OCEAN))
    assert is_theme_allowed("pro", NamedTheme(ThemeName.MINIMAL))
    custom = CustomTheme(CustomColors("#000", "#fff", "#111", "#eee"))
    assert not is_theme_allowed("pro", custom)
    assert is_theme_allowed("business", custom)


def test_required_plan_for_links():
    assert required_plan_for_links(5) == Plan.FREE
    assert required_plan_for_links(6) == Plan.PRO
    assert required_plan_for_links(16) == Plan.BUSINESS
