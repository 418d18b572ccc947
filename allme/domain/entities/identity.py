from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class Identity:
    id: str
    email: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SignedIn:
    identity: Identity


@dataclass(frozen=True)
class TokenRefreshed:
    identity: Identity


@dataclass(frozen=True)
class SignedOut:
    pass


IdentityEvent = SignedIn | TokenRefreshed | SignedOut
