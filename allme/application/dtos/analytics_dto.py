from __future__ import annotations

from pydantic import BaseModel, Field

from allme.application.use_cases.analytics import AnalyticsSummary


class LinkStatsItem(BaseModel):
    link_id: str
    title: str
    url: str
    clicks: int
    share: float | None = Field(None, description="Fraction of all clicks (full analytics)")


class AnalyticsResponse(BaseModel):
    page_views: int
    total_clicks: int
    click_through_rate: float | None = Field(None, description="Clicks per page view (full analytics)")
    full: bool = Field(..., description="Whether full analytics are included in the plan")
    links: list[LinkStatsItem]

    @classmethod
    def from_summary(cls, summary: AnalyticsSummary) -> AnalyticsResponse:
        return cls(
            page_views=summary.page_views,
            total_clicks=summary.total_clicks,
            click_through_rate=summary.click_through_rate,
            full=summary.full,
            links=[
                LinkStatsItem(
                    link_id=s.link_id, title=s.title, url=s.url, clicks=s.clicks, share=s.share
                )
                for s in summary.links
            ],
        )

