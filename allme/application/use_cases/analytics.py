from __future__ import annotations

import csv
import io
from dataclasses import dataclass

from allme.domain.entities.link import LinkEntity
from allme.domain.entities.profile import ProfileEntity
from allme.domain.errors import PlanLimitError
from allme.domain.services.plan_policy import get_plan_limits, get_required_plan


@dataclass(frozen=True)
class LinkStats:
    link_id: str
    title: str
    url: str
    clicks: int
    share: float | None  # fraction of all clicks; full analytics only


@dataclass(frozen=True)
class AnalyticsSummary:
    page_views: int
    total_clicks: int
    click_through_rate: float | None
    links: list[LinkStats]
    full: bool


def summarize(profile: ProfileEntity, links: list[LinkEntity]) -> AnalyticsSummary:
    """Click/view totals, links sorted by clicks (most clicked first).

    Per-link share and click-through rate are only computed when the plan
    includes full analytics.
    """
    full = get_plan_limits(profile.plan).has_full_analytics
    total = sum(link.click_count for link in links)
    ranked = sorted(links, key=lambda link: link.click_count, reverse=True)
    stats = [
        LinkStats(
            link_id=link.id,
            title=link.title,
            url=link.url,
            clicks=link.click_count,
            share=(link.click_count / max(total, 1)) if full else None,
        )
        for link in ranked
    ]
    ctr = None
    if full:
        ctr = total / profile.page_views if profile.page_views else 0.0
    return AnalyticsSummary(
        page_views=profile.page_views,
        total_clicks=total,
        click_through_rate=ctr,
        links=stats,
        full=full,
    )


def export_csv(profile: ProfileEntity, links: list[LinkEntity]) -> str:
    """Per-link statistics as CSV.

    Raises:
        PlanLimitError: If the plan does not include CSV export.
    """
    if not get_plan_limits(profile.plan).has_csv_export:
        raise PlanLimitError(
            "CSV export is not included in your plan",
            required_plan=get_required_plan("has_csv_export").value,
        )
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(["title", "url", "clicks", "active", "position", "created_at"])
    for link in sorted(links, key=lambda link: link.position):
        writer.writerow(
            [
                link.title,
                link.url,
                link.click_count,
                "yes" if link.is_active else "no",
                link.position,
                link.created_at.isoformat() if link.created_at else "",
            ]
        )
    return buf.getvalue()
