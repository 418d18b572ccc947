from __future__ import annotations

import os

from supabase import Client, create_client

from allme.domain.entities.identity import Identity


def _supabase_disabled() -> bool:
    return os.getenv("SUPABASE_DISABLED", "0") == "1"


class SupabaseAuthAdapter:
    """Small wrapper around Supabase Auth.

    When SUPABASE_DISABLED=1, any token maps to a deterministic fake identity.
    """

    def __init__(self) -> None:
        self.disabled = _supabase_disabled()
        self.url = os.getenv("SUPABASE_URL")
        self.key = os.getenv("SUPABASE_ANON_KEY")
        self._client: Client | None = None
        if not self.disabled and self.url and self.key:
            self._client = create_client(self.url, self.key)

    def validate_token(self, token: str) -> Identity:
        if not token:
            raise ValueError("Missing access token")
        if self.disabled or not self._client:
            fake_id = f"fake-{abs(hash(token)) % (10**10)}"
            return Identity(id=fake_id, email=None, metadata={})
        try:  # pragma: no cover - network path
            res = self._client.auth.get_user(token)
            user = res.user if res else None
            if not user:
                raise ValueError("Invalid access token")
            metadata = dict(user.user_metadata or {})
            if user.email and "email" not in metadata:
                metadata["email"] = user.email
            return Identity(id=user.id, email=user.email, metadata=metadata)
        except Exception as exc:  # pragma: no cover - network path
            raise ValueError(f"Invalid access token: {exc}") from exc

    def sign_out(self, token: str) -> None:
        """Revoke the session behind ``token``; a no-op when auth is disabled."""
        if self.disabled or not self._client:
            return
        self._client.auth.admin.sign_out(token)  # pragma: no cover - network


_CLIENT_SINGLETON: Client | None = None
_ADMIN_CLIENT_SINGLETON: Client | None = None


def get_supabase_client() -> Client | None:
    """Shared anon-key client, or ``None`` in disabled/unconfigured mode."""
    global _CLIENT_SINGLETON
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if _supabase_disabled() or not url or not key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(url, key)
    return _CLIENT_SINGLETON


def get_supabase_admin_client() -> Client | None:
    """Service-role client that bypasses row level security.

    Only present when SUPABASE_SERVICE_ROLE_KEY is configured.
    """
    global _ADMIN_CLIENT_SINGLETON
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if _supabase_disabled() or not url or not key:
        return None
    if _ADMIN_CLIENT_SINGLETON is None:
        _ADMIN_CLIENT_SINGLETON = create_client(url, key)
    return _ADMIN_CLIENT_SINGLETON


def create_user_client(token: str | None) -> Client | None:
    """Anon-key client acting as the user behind ``token`` for row level security."""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if _supabase_disabled() or not url or not key:
        return None
    if not token:
        return get_supabase_client()
    client = create_client(url, key)  # pragma: no cover - network
    client.postgrest.auth(token)  # pragma: no cover
    return client  # pragma: no cover
