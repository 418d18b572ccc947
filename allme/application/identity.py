from __future__ import annotations

import logging
from typing import Awaitable, Callable, Protocol

from allme.domain.entities.identity import Identity, IdentityEvent, SignedOut

logger = logging.getLogger(__name__)

IdentityListener = Callable[[IdentityEvent], Awaitable[None]]


class IdentityProvider(Protocol):
    async def get_current_identity(self) -> Identity | None: ...

    def on_identity_change(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        ...

    async def sign_out(self) -> None: ...


class ListenerRegistry:
    """Fan-out of identity events to registered listeners, in registration order."""

    def __init__(self) -> None:
        self._listeners: list[IdentityListener] = []

    def on_identity_change(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def emit(self, event: IdentityEvent) -> None:
        for listener in list(self._listeners):
            await listener(event)


class StaticIdentityProvider(ListenerRegistry):
    """Identity provider over an already-known identity (or none)."""

    def __init__(self, identity: Identity | None = None) -> None:
        super().__init__()
        self.identity = identity

    async def get_current_identity(self) -> Identity | None:
        return self.identity

    async def sign_out(self) -> None:
        self.identity = None
        await self.emit(SignedOut())
