from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from allme.application.dtos.account_dto import (
    AvatarResponse,
    DeleteAccountResponse,
    PromoBody,
    PromoResponse,
)
from allme.application.profile_session import ProfileSession
from allme.application.use_cases.delete_account import DeleteAccountUseCase, DeletionStatus
from allme.application.use_cases.redeem_promo import RedeemPromoUseCase
from allme.domain.entities.identity import Identity
from allme.domain.errors import ValidationError
from allme.infrastructure.api.dependencies import (
    get_auth_adapter,
    get_bearer_token,
    get_current_user,
    get_link_repo,
    get_profile_repo,
    get_ready_session,
    get_rpc,
    get_storage,
)
from allme.infrastructure.api.errors import to_http_error
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository
from allme.infrastructure.database.rpc_client import SupabaseRpc
from allme.infrastructure.database.supabase_client import SupabaseAuthAdapter
from allme.infrastructure.storage.avatar_storage import AvatarStorage

router = APIRouter(
    prefix="/account",
    tags=["Account"],
    responses={401: {"description": "Unauthorized - Invalid or missing authentication token"}},
)

_DELETION_STATUS_CODES = {
    DeletionStatus.COMPLETE: status.HTTP_200_OK,
    DeletionStatus.PARTIAL: status.HTTP_207_MULTI_STATUS,
    DeletionStatus.FAILED: status.HTTP_502_BAD_GATEWAY,
}


@router.delete(
    "",
    response_model=DeleteAccountResponse,
    summary="Delete Account",
    description="""
    Delete avatar, links and profile, then end the session.

    - **200** `complete`: everything was removed
    - **207** `partial`: some parts remain; `failed` names them
    - **502** `failed`: nothing could be removed
    """,
)
def delete_account(
    user: Identity = Depends(get_current_user),
    token: str | None = Depends(get_bearer_token),
    auth: SupabaseAuthAdapter = Depends(get_auth_adapter),
    storage: AvatarStorage = Depends(get_storage),
    links: LinkRepository = Depends(get_link_repo),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    use_case = DeleteAccountUseCase(storage, links, profiles, sign_out=lambda: auth.sign_out(token))
    outcome = use_case.execute(user.id)
    message = None
    if outcome.status is not DeletionStatus.COMPLETE:
        message = "Your account could not be fully deleted. Please contact support."
    body = DeleteAccountResponse(status=outcome.status.value, failed=outcome.failed, message=message)
    return JSONResponse(status_code=_DELETION_STATUS_CODES[outcome.status], content=body.model_dump())


@router.post(
    "/promo",
    response_model=PromoResponse,
    summary="Redeem Promo Code",
    description="Apply a promo code. Invalid codes and backend errors answer 200 with `success=false`.",
    responses={400: {"description": "Bad Request - Empty code"}},
)
def redeem_promo(
    body: PromoBody,
    user: Identity = Depends(get_current_user),
    rpc: SupabaseRpc = Depends(get_rpc),
):
    try:
        result = RedeemPromoUseCase(rpc).execute(user.id, body.code)
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return PromoResponse(
        success=result.success,
        plan=result.plan.value if result.plan else None,
        error=result.error,
    )


@router.post(
    "/avatar",
    response_model=AvatarResponse,
    summary="Upload Avatar",
    description="""
    Upload a profile photo (max 5 MB). The image is cropped to a square and
    replaces any previous avatar.
    """,
    responses={
        400: {"description": "Bad Request - Not an image or too large"},
        502: {"description": "Bad Gateway - Storage unavailable"},
    },
)
async def upload_avatar(
    file: UploadFile = File(..., description="Image file"),
    session: ProfileSession = Depends(get_ready_session),
    storage: AvatarStorage = Depends(get_storage),
):
    data = await file.read()
    try:
        stored = await run_in_threadpool(storage.upload_avatar, session.user_id, data)
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    session.set_avatar_preview(stored.url)
    await session.update_profile({"avatar_url": stored.url})
    return AvatarResponse(avatar_url=stored.url)


@router.delete("/avatar", response_model=AvatarResponse, summary="Remove Avatar")
async def delete_avatar(
    session: ProfileSession = Depends(get_ready_session),
    storage: AvatarStorage = Depends(get_storage),
):
    try:
        await run_in_threadpool(storage.delete_avatar, session.user_id)
    except RuntimeError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    session.set_avatar_preview(None)
    await session.update_profile({"avatar_url": None})
    return AvatarResponse(avatar_url=None)
