from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from allme.application.dtos.tracking_dto import TrackResponse
from allme.application.use_cases.increment_counter import (
    IncrementCounterUseCase,
    decode_tracking_payload,
)
from allme.infrastructure.api.dependencies import get_click_counter, get_view_counter

router = APIRouter(
    prefix="/track",
    tags=["Tracking"],
    responses={400: {"description": "Bad Request - Missing target identifier"}},
)


async def _target(request: Request, field: str) -> str:
    payload = decode_tracking_payload(await request.body())
    value = payload.get(field) if payload else None
    if not value or not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{field} required")
    return value


@router.post(
    "/click",
    response_model=TrackResponse,
    summary="Record Link Click",
    description="""
    Count a click on a link. Accepts a JSON body or a text/plain beacon
    carrying `{"linkId": "..."}`.

    Counting is best effort: once the link id is readable this answers 200,
    with `success=false` when the count could not be stored.
    """,
)
async def track_click(request: Request, counter: IncrementCounterUseCase = Depends(get_click_counter)):
    link_id = await _target(request, "linkId")
    outcome = await run_in_threadpool(counter.execute, link_id)
    return TrackResponse(success=outcome.success)


@router.post(
    "/view",
    response_model=TrackResponse,
    summary="Record Page View",
    description="""
    Count a view of a public page. Accepts a JSON body or a text/plain beacon
    carrying `{"username": "..."}`. Same best-effort contract as `/track/click`.
    """,
)
async def track_view(request: Request, counter: IncrementCounterUseCase = Depends(get_view_counter)):
    username = await _target(request, "username")
    outcome = await run_in_threadpool(counter.execute, username.strip().lower())
    return TrackResponse(success=outcome.success)
