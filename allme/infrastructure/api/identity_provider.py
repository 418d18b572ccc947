from __future__ import annotations

import asyncio
import logging

from allme.application.identity import ListenerRegistry
from allme.domain.entities.identity import Identity, SignedOut
from allme.infrastructure.database.supabase_client import SupabaseAuthAdapter

logger = logging.getLogger(__name__)


class BearerIdentityProvider(ListenerRegistry):
    """Identity provider for one request, backed by its bearer token."""

    def __init__(self, auth: SupabaseAuthAdapter, token: str | None) -> None:
        super().__init__()
        self.auth = auth
        self.token = token

    async def get_current_identity(self) -> Identity | None:
        if not self.token:
            return None
        try:
            return await asyncio.to_thread(self.auth.validate_token, self.token)
        except ValueError as exc:
            logger.info("Rejected access token: %s", exc)
            return None

    async def sign_out(self) -> None:
        token, self.token = self.token, None
        try:
            if token:
                await asyncio.to_thread(self.auth.sign_out, token)
        finally:
            await self.emit(SignedOut())
