from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from allme.application.dtos.analytics_dto import AnalyticsResponse
from allme.application.dtos.common_dto import PlanRequiredResponse
from allme.application.profile_session import ProfileSession
from allme.application.use_cases.analytics import export_csv, summarize
from allme.domain.errors import PlanLimitError
from allme.infrastructure.api.dependencies import get_ready_session
from allme.infrastructure.api.errors import to_http_error

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"],
    responses={401: {"description": "Unauthorized - Invalid or missing authentication token"}},
)


@router.get(
    "",
    response_model=AnalyticsResponse,
    summary="Get Analytics",
    description="Page views and clicks. Per-link shares and click-through rate need full analytics (Pro).",
)
async def get_analytics(session: ProfileSession = Depends(get_ready_session)):
    return AnalyticsResponse.from_summary(summarize(session.profile, session.links.items))


@router.get(
    "/export",
    summary="Export Analytics as CSV",
    description="Per-link statistics as a CSV download (Business).",
    responses={
        200: {"content": {"text/csv": {}}},
        403: {"model": PlanRequiredResponse, "description": "Forbidden - CSV export not included in plan"},
    },
)
async def export_analytics(session: ProfileSession = Depends(get_ready_session)):
    try:
        body = export_csv(session.profile, session.links.items)
    except PlanLimitError as exc:
        raise to_http_error(exc) from exc
    filename = f"{session.profile.username or 'allme'}-analytics.csv"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
