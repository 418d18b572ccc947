import pytest

from allme.domain.errors import PlanLimitError, ValidationError
from allme.domain.services.plan_policy import get_plan_limits
from allme.domain.services.username_policy import (
    derive_username,
    username_problem,
    validate_username,
)


def test_username_from_claim_first():
    meta = {"username": "Alex_Doe", "email": "someone@example.com"}
    assert derive_username("abc", meta) == "alex_doe"


def test_username_from_email_local_part():
    assert derive_username("abc", {"email": "alex@example.com"}) == "alex"
    assert derive_username("abc", {}, email="a.l.e.x+tag@example.com") == "alextag"


def test_username_fallback_uses_truncated_id():
    uid = "3f2b9c1e-aaaa-bbbb-cccc-000000000000"
    assert derive_username(uid, {}) == "user_3f2b9c1e"
    # too short once sanitized
    assert derive_username(uid, {"email": "a@example.com"}) == "user_3f2b9c1e"
    # reserved
    assert derive_username(uid, {"email": "admin@example.com"}) == "user_3f2b9c1e"


@pytest.mark.parametrize(
    "name, problem",
    [
        ("ab", "invalid"),
        ("a" * 31, "invalid"),
        ("has space", "invalid"),
        ("UPPER", "invalid"),
        ("dashboard", "reserved"),
        ("alex-doe_1", None),
    ],
)
def test_username_problem(name, problem):
    assert username_problem(name) == problem


def test_validate_username_normalizes():
    assert validate_username("  Alex ") == "alex"


def test_validate_username_rejects_reserved():
    with pytest.raises(ValidationError, match="reserved"):
        validate_username("admin")


def test_short_username_needs_paid_plan():
    with pytest.raises(PlanLimitError) as info:
        validate_username("bob", get_plan_limits("free"))
    assert info.value.required_plan == "pro"
    assert validate_username("bob", get_plan_limits("pro")) == "bob"
