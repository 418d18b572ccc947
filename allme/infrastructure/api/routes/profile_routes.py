from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool

from allme.application.dtos.common_dto import ErrorResponse, PlanRequiredResponse
from allme.application.dtos.profile_dto import (
    PlanLimitsResponse,
    ProfileResponse,
    SessionResponse,
    UpdateProfileBody,
)
from allme.application.profile_session import ProfileSession
from allme.application.use_cases.check_username import CheckUsernameUseCase
from allme.domain.errors import ValidationError
from allme.domain.services.plan_policy import PLAN_PRICES, get_plan_name
from allme.infrastructure.api.dependencies import get_ready_session
from allme.infrastructure.api.errors import to_http_error
from allme.infrastructure.api.routes.session_views import session_response

router = APIRouter(
    prefix="/profile",
    tags=["Profile"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


@router.get("", response_model=ProfileResponse, summary="Get Profile")
async def get_profile(session: ProfileSession = Depends(get_ready_session)):
    return ProfileResponse.from_entity(session.profile)


@router.patch(
    "",
    response_model=ProfileResponse,
    summary="Update Profile",
    description="""
    Update username, display name, bio or theme.

    Changes apply immediately; persistence is best effort.

    **Errors:**
    - 400 for a malformed or reserved username, or an unknown theme
    - 403 when the theme or a 3-character username needs a higher plan
    - 409 when the username belongs to someone else
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Invalid field value"},
        403: {"model": PlanRequiredResponse, "description": "Forbidden - Plan does not include this option"},
        409: {"model": ErrorResponse, "description": "Conflict - Username already taken"},
    },
)
async def update_profile(body: UpdateProfileBody, session: ProfileSession = Depends(get_ready_session)):
    try:
        changes = body.to_changes()
    except ValidationError as exc:
        raise to_http_error(exc) from exc

    if changes.get("username") and changes["username"].strip().lower() != session.profile.username:
        _, reason = await run_in_threadpool(
            CheckUsernameUseCase(session.profiles).execute, changes["username"], session.user_id
        )
        if reason == "taken":
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already taken")

    try:
        profile = await session.update_profile(changes)
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return ProfileResponse.from_entity(profile)


@router.post(
    "/refresh",
    response_model=SessionResponse,
    summary="Refresh Profile Data",
    description="Reload profile and links from the database, e.g. to pick up new view counts.",
)
async def refresh(session: ProfileSession = Depends(get_ready_session)):
    await session.refresh_data()
    return session_response(session)


@router.get("/plan", response_model=PlanLimitsResponse, summary="Get Plan Limits")
async def get_plan(session: ProfileSession = Depends(get_ready_session)):
    limits = session.plan_limits
    return PlanLimitsResponse(
        plan=session.profile.plan.value,
        name=get_plan_name(session.profile.plan),
        limits=limits.to_dict(),
        prices=PLAN_PRICES[session.profile.plan],
        unlimited_links=limits.unlimited_links,
    )
