from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from allme.application.profile_session import ProfileSession
from allme.application.use_cases.increment_counter import CounterKind, IncrementCounterUseCase
from allme.domain.entities.identity import Identity
from allme.infrastructure.api.identity_provider import BearerIdentityProvider
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository
from allme.infrastructure.database.rpc_client import SupabaseRpc
from allme.infrastructure.database.supabase_client import (
    SupabaseAuthAdapter,
    create_user_client,
    get_supabase_admin_client,
    get_supabase_client,
)
from allme.infrastructure.storage.avatar_storage import AvatarStorage

_bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_adapter() -> SupabaseAuthAdapter:
    return SupabaseAuthAdapter()


def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(_bearer_scheme)] = None,
) -> str | None:
    if not credentials or not credentials.scheme or credentials.scheme.lower() != "bearer":
        return None
    return credentials.credentials or None


def get_current_user(
    token: Annotated[str | None, Depends(get_bearer_token)],
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)],
) -> Identity:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    try:
        return auth.validate_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))


def get_profile_repo(token: Annotated[str | None, Depends(get_bearer_token)]) -> ProfileRepository:
    return ProfileRepository(create_user_client(token))


def get_link_repo(token: Annotated[str | None, Depends(get_bearer_token)]) -> LinkRepository:
    return LinkRepository(create_user_client(token))


def get_storage(token: Annotated[str | None, Depends(get_bearer_token)]) -> AvatarStorage:
    return AvatarStorage(create_user_client(token))


def get_rpc() -> SupabaseRpc:
    return SupabaseRpc(get_supabase_client())


async def get_profile_session(
    token: Annotated[str | None, Depends(get_bearer_token)],
    auth: Annotated[SupabaseAuthAdapter, Depends(get_auth_adapter)],
    profiles: Annotated[ProfileRepository, Depends(get_profile_repo)],
    links: Annotated[LinkRepository, Depends(get_link_repo)],
) -> AsyncIterator[ProfileSession]:
    """Session for the caller, torn down when the request ends."""
    async with ProfileSession(BearerIdentityProvider(auth, token), profiles, links) as session:
        yield session


def get_ready_session(
    session: Annotated[ProfileSession, Depends(get_profile_session)],
) -> ProfileSession:
    if not session.is_ready:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return session


def _counter(kind: CounterKind, repo_cls: type[LinkRepository] | type[ProfileRepository]) -> IncrementCounterUseCase:
    admin = get_supabase_admin_client()
    rpc = get_rpc()
    return IncrementCounterUseCase(
        kind,
        repo_cls(get_supabase_client()),
        privileged_store=repo_cls(admin) if admin is not None else None,
        rpc=rpc if rpc.available else None,
    )


def get_click_counter() -> IncrementCounterUseCase:
    return _counter(CounterKind.CLICK, LinkRepository)


def get_view_counter() -> IncrementCounterUseCase:
    return _counter(CounterKind.VIEW, ProfileRepository)
