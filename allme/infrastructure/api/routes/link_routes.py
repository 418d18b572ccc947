from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from allme.application.dtos.common_dto import ErrorResponse, PlanRequiredResponse, SuccessResponse
from allme.application.dtos.link_dto import (
    CreateLinkBody,
    LinkItem,
    ListLinksResponse,
    ReorderLinksBody,
    UpdateLinkBody,
)
from allme.application.profile_session import ProfileSession
from allme.domain.errors import ValidationError
from allme.infrastructure.api.dependencies import get_ready_session
from allme.infrastructure.api.errors import to_http_error

router = APIRouter(
    prefix="/links",
    tags=["Links"],
    responses={
        401: {"description": "Unauthorized - Invalid or missing authentication token"},
        404: {"description": "Not Found - Link does not exist or belongs to another user"},
        422: {"description": "Validation Error - Invalid request format"},
    },
)


def _list(session: ProfileSession) -> ListLinksResponse:
    return ListLinksResponse(links=[LinkItem.from_entity(link) for link in session.links.items])


@router.get("", response_model=ListLinksResponse, summary="List Links")
async def list_links(session: ProfileSession = Depends(get_ready_session)):
    return _list(session)


@router.post(
    "",
    response_model=ListLinksResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Link",
    description="""
    Append a link at the end of the list.

    Returns the resulting list. If the link could not be stored it is not
    part of the list.

    **Plan limits:** 5 links on Free, 15 on Pro; scheduling needs Pro.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Bad Request - Empty title or URL"},
        403: {"model": PlanRequiredResponse, "description": "Forbidden - Link limit reached or scheduling not in plan"},
    },
)
async def add_link(body: CreateLinkBody, session: ProfileSession = Depends(get_ready_session)):
    try:
        await session.links.add(body.title, body.url, body.scheduled_at)
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return _list(session)


@router.patch("/{link_id}", response_model=LinkItem, summary="Update Link")
async def update_link(
    link_id: str, body: UpdateLinkBody, session: ProfileSession = Depends(get_ready_session)
):
    try:
        link = await session.links.update(link_id, body.to_changes())
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    if link is None:
        raise HTTPException(status_code=404, detail="Link not found")
    return LinkItem.from_entity(link)


@router.delete("/{link_id}", response_model=SuccessResponse, summary="Delete Link")
async def delete_link(link_id: str, session: ProfileSession = Depends(get_ready_session)):
    if not await session.links.remove(link_id):
        raise HTTPException(status_code=404, detail="Link not found")
    return {"ok": True}


@router.put(
    "/order",
    response_model=ListLinksResponse,
    summary="Reorder Links",
    description="Set the display order. The body must list every link id exactly once.",
    responses={400: {"description": "Bad Request - Order does not match the current links"}},
)
async def reorder_links(body: ReorderLinksBody, session: ProfileSession = Depends(get_ready_session)):
    try:
        await session.links.reorder_ids(body.order)
    except ValidationError as exc:
        raise to_http_error(exc) from exc
    return _list(session)
