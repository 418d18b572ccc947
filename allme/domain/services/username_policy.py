from __future__ import annotations

import re

from allme.domain.errors import PlanLimitError, ValidationError
from allme.domain.services.plan_policy import PlanLimits, get_required_plan

USERNAME_MIN = 3
USERNAME_MAX = 30
SHORT_USERNAME_LENGTH = 3
USERNAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
_DISALLOWED_CHARS = re.compile(r"[^a-z0-9_-]")

RESERVED_USERNAMES = frozenset(
    {
        "admin", "demo", "allme", "test", "user", "help",
        "support", "about", "blog", "api", "app", "www", "mail", "ftp",
        "dashboard", "auth", "pricing", "privacy", "terms", "_next",
    }
)


def normalize_username(username: str) -> str:
    return username.strip().lower()


def username_problem(username: str) -> str | None:
    """Return ``"invalid"`` or ``"reserved"`` when the name cannot be used."""
    if not (USERNAME_MIN <= len(username) <= USERNAME_MAX):
        return "invalid"
    if not USERNAME_PATTERN.match(username):
        return "invalid"
    if username in RESERVED_USERNAMES:
        return "reserved"
    return None


def validate_username(username: str, limits: PlanLimits | None = None) -> str:
    """Normalize and validate a username chosen by a user.

    When ``limits`` is given, 3-character names additionally require the
    short-username capability.
    """
    normalized = normalize_username(username)
    problem = username_problem(normalized)
    if problem == "reserved":
        raise ValidationError(f"Username '{normalized}' is reserved")
    if problem:
        raise ValidationError(
            f"Username must be {USERNAME_MIN}-{USERNAME_MAX} characters of a-z, 0-9, '_' or '-'"
        )
    if (
        limits is not None
        and len(normalized) <= SHORT_USERNAME_LENGTH
        and not limits.has_short_username
    ):
        raise PlanLimitError(
            "Three-character usernames need a paid plan",
            required_plan=get_required_plan("has_short_username").value,
        )
    return normalized


def sanitize_username(raw: str) -> str:
    """Strip everything outside the username alphabet and clamp the length."""
    return _DISALLOWED_CHARS.sub("", raw.lower())[:USERNAME_MAX]


def fallback_username(user_id: str) -> str:
    return f"user_{sanitize_username(user_id)[:8]}"


def derive_username(user_id: str, metadata: dict | None, email: str | None = None) -> str:
    """Candidate username for a freshly provisioned profile.

    Priority: explicit ``username`` claim, then the sanitized local part of the
    email, then ``user_`` plus the first eight characters of the user id.
    Candidates that are too short or reserved are skipped.
    """
    metadata = metadata or {}
    candidates: list[str] = []
    claim = metadata.get("username")
    if isinstance(claim, str) and claim:
        candidates.append(sanitize_username(claim))
    mail = metadata.get("email") or email
    if isinstance(mail, str) and "@" in mail:
        candidates.append(sanitize_username(mail.split("@")[0]))
    for candidate in candidates:
        if username_problem(candidate) is None:
            return candidate
    return fallback_username(user_id)
