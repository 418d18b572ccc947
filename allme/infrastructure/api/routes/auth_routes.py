from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from allme.application.dtos.common_dto import SuccessResponse
from allme.application.dtos.profile_dto import SessionResponse
from allme.application.profile_session import ProfileSession
from allme.infrastructure.api.dependencies import get_profile_session, get_ready_session
from allme.infrastructure.api.routes.session_views import session_response

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
    },
)


class ValidateTokenResponse(BaseModel):
    """Response model for token validation."""
    user_id: str = Field(..., description="Unique identifier of the authenticated user")
    username: str = Field(..., description="Username of the (possibly just created) profile", examples=["alex"])


@router.post(
    "/validate",
    response_model=ValidateTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate Authentication Token",
    description="""
    Validate the bearer token and make sure the user has a profile.

    A first sign-in creates the profile, deriving the username from the
    username claim, the email address, or the user id.

    **Authentication required**: Yes (Bearer token)
    """,
)
async def validate_token(session: ProfileSession = Depends(get_ready_session)):
    """Validate JWT token and ensure the profile exists."""
    return {"user_id": session.user_id, "username": session.profile.username}


@router.get(
    "/me",
    response_model=SessionResponse,
    summary="Get Current Session",
    description="""
    Profile, links, avatar preview and plan limits of the signed-in user.

    **Authentication required**: Yes (Bearer token)
    """,
)
async def get_me(session: ProfileSession = Depends(get_ready_session)):
    return session_response(session)


@router.post(
    "/signout",
    response_model=SuccessResponse,
    summary="Sign Out",
    description="Revoke the session. Always succeeds locally, even if the auth provider cannot be reached.",
)
async def sign_out(session: ProfileSession = Depends(get_profile_session)):
    await session.sign_out()
    return {"ok": True}
