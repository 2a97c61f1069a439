"""Team Analytics — dashboard aggregates over a team's document views.

Invariants:
    - Only non-archived DOCUMENT_VIEWs count
    - Windows come from view_analytics.interval_bounds; start after end is a 400
    - Free plans cannot query custom ranges starting more than 30 days back (403)
    - Durations come from PageView rows, summed per view; videos use watch events
    - A version without num_pages falls back to the document's page count
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.domain_types import (
    AnalyticsInterval, AnalyticsType, DocumentType, TeamPlan, ViewType, ensure_utc,
)
from papermark.core.errors import AccessDeniedError, ErrorContext, ValidationFailedError
from papermark.core.view_analytics import (
    PageDurationEvent, VersionInfo, VideoWatchEvent, bucket_views, duration_format,
    interval_bounds, summarize_view, video_watch_stats,
)
from papermark.models.document import Document, DocumentVersion
from papermark.models.link import Link
from papermark.models.user import Team
from papermark.models.view import PageView, VideoEvent, View

logger = logging.getLogger(__name__)

FREE_PLAN_LOOKBACK = timedelta(days=30)


async def page_events_by_view(
    db: AsyncSession, view_ids: list[UUID],
) -> dict[UUID, list[PageDurationEvent]]:
    events: dict[UUID, list[PageDurationEvent]] = defaultdict(list)
    if not view_ids:
        return events
    result = await db.execute(
        select(PageView.view_id, PageView.page_number, PageView.duration_ms)
        .where(PageView.view_id.in_(view_ids)),
    )
    for view_id, page_number, duration_ms in result.all():
        events[view_id].append(PageDurationEvent(page_number, duration_ms))
    return events


async def versions_by_document(
    db: AsyncSession, document_ids: set[UUID],
) -> dict[UUID, list[VersionInfo]]:
    versions: dict[UUID, list[VersionInfo]] = defaultdict(list)
    if not document_ids:
        return versions
    result = await db.execute(
        select(DocumentVersion).where(DocumentVersion.document_id.in_(document_ids)),
    )
    for v in result.scalars().all():
        versions[v.document_id].append(
            VersionInfo(v.version_number, v.created_at, v.num_pages, v.length),
        )
    return versions


async def video_events_by_view(
    db: AsyncSession, view_ids: list[UUID],
) -> dict[UUID, list[VideoWatchEvent]]:
    events: dict[UUID, list[VideoWatchEvent]] = defaultdict(list)
    if not view_ids:
        return events
    result = await db.execute(select(VideoEvent).where(VideoEvent.view_id.in_(view_ids)))
    for e in result.scalars().all():
        events[e.view_id].append(VideoWatchEvent(e.event_type, e.start_time, e.end_time))
    return events


def summarize_document_view(
    view: View,
    document: Document,
    versions: list[VersionInfo],
    page_events: list[PageDurationEvent],
    video_events: list[VideoWatchEvent],
) -> dict:
    """summarize_view, with watch time and completion swapped in for videos."""
    summary = summarize_view(page_events, versions, view.viewed_at, document.num_pages)
    if document.type == DocumentType.VIDEO:
        length = next(
            (v.length for v in versions if v.version_number == summary["version_number"]),
            None,
        )
        stats = video_watch_stats(video_events, length)
        summary["total_duration"] = stats["total_duration"]
        summary["completion_rate"] = stats["completion_rate"]
    return summary


class TeamAnalytics:

    def __init__(self, db: AsyncSession, team: Team, now: datetime | None = None):
        self.db = db
        self.team = team
        self.now = now or datetime.now(timezone.utc)

    def window(
        self, interval: str, start: datetime | None, end: datetime | None,
    ) -> tuple[datetime, datetime]:
        context = ErrorContext(team_id=str(self.team.id))
        try:
            begin, finish = interval_bounds(interval, self.now, start, end)
        except ValueError as e:
            raise ValidationFailedError(str(e), "start", context)
        if (
            interval == AnalyticsInterval.CUSTOM
            and self.team.plan == TeamPlan.FREE
            and begin < self.now - FREE_PLAN_LOOKBACK
        ):
            raise AccessDeniedError(
                "Upgrade your plan to view analytics older than 30 days.", context,
            )
        return begin, finish

    async def query(
        self,
        type_: str,
        interval: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> dict:
        begin, finish = self.window(interval, start, end)
        rows = (await self.db.execute(
            select(View, Link.name, Document)
            .join(Link, Link.id == View.link_id)
            .join(Document, Document.id == View.document_id)
            .where(View.team_id == self.team.id)
            .where(View.view_type == ViewType.DOCUMENT_VIEW.value)
            .where(View.is_archived.is_(False))
            .where(View.viewed_at >= begin)
            .where(View.viewed_at <= finish)
            .order_by(View.viewed_at.desc()),
        )).all()
        events = await page_events_by_view(self.db, [v.id for v, _, _ in rows])
        durations = {
            v.id: sum(e.duration_ms for e in events.get(v.id, [])) for v, _, _ in rows
        }
        window = {"start": begin.isoformat(), "end": finish.isoformat()}

        if type_ == AnalyticsType.OVERVIEW:
            data = self._overview(rows, interval)
        elif type_ == AnalyticsType.LINKS:
            data = self._grouped(rows, durations, key="link")
        elif type_ == AnalyticsType.DOCUMENTS:
            data = self._grouped(rows, durations, key="document")
        elif type_ == AnalyticsType.VISITORS:
            data = self._visitors(rows, durations)
        else:
            data = await self._views(rows, events)
        return {"type": type_, "interval": interval, "window": window, "data": data}

    def _overview(self, rows, interval: str) -> dict:
        views = [v for v, _, _ in rows]
        return {
            "counts": {
                "links": len({v.link_id for v in views}),
                "documents": len({v.document_id for v in views}),
                "visitors": len({v.viewer_email for v in views if v.viewer_email}),
                "views": len(views),
            },
            "graph": bucket_views(
                (v.viewed_at for v in views),
                by_hour=interval == AnalyticsInterval.LAST_24H,
            ),
        }

    def _grouped(self, rows, durations: dict, key: str) -> list[dict]:
        groups: dict[UUID, dict] = {}
        for view, link_name, document in rows:
            group_id = view.link_id if key == "link" else view.document_id
            entry = groups.setdefault(group_id, {
                "id": str(group_id),
                "name": link_name if key == "link" else document.name,
                "document_name": document.name,
                "views": 0,
                "total_duration": 0,
                "last_viewed": None,
            })
            entry["views"] += 1
            entry["total_duration"] += durations[view.id]
            viewed = ensure_utc(view.viewed_at)
            if entry["last_viewed"] is None or viewed > entry["last_viewed"]:
                entry["last_viewed"] = viewed
        return [self._finish_group(e) for e in groups.values()]

    @staticmethod
    def _finish_group(entry: dict) -> dict:
        avg = round(entry.pop("total_duration") / entry["views"]) if entry["views"] else 0
        entry["avg_duration"] = avg
        entry["avg_duration_formatted"] = duration_format(avg)
        entry["last_viewed"] = entry["last_viewed"].isoformat()
        return entry

    def _visitors(self, rows, durations: dict) -> list[dict]:
        visitors: dict[str, dict] = {}
        for view, _, _ in rows:
            if not view.viewer_email:
                continue
            entry = visitors.setdefault(view.viewer_email, {
                "email": view.viewer_email,
                "total_views": 0,
                "documents": set(),
                "verified": False,
                "total_duration": 0,
                "last_viewed": None,
            })
            entry["total_views"] += 1
            entry["documents"].add(view.document_id)
            entry["verified"] = entry["verified"] or view.verified
            entry["total_duration"] += durations[view.id]
            viewed = ensure_utc(view.viewed_at)
            if entry["last_viewed"] is None or viewed > entry["last_viewed"]:
                entry["last_viewed"] = viewed
        return [
            {
                **{k: v for k, v in e.items() if k != "documents"},
                "unique_documents": len(e["documents"]),
                "last_viewed": e["last_viewed"].isoformat(),
            }
            for e in visitors.values()
        ]

    async def _views(self, rows, events: dict) -> list[dict]:
        versions = await versions_by_document(self.db, {v.document_id for v, _, _ in rows})
        video_events = await video_events_by_view(
            self.db, [v.id for v, _, d in rows if d.type == DocumentType.VIDEO],
        )
        result = []
        for view, link_name, document in rows:
            summary = summarize_document_view(
                view, document, versions.get(view.document_id, []),
                events.get(view.id, []), video_events.get(view.id, []),
            )
            result.append({
                "id": str(view.id),
                "link_id": str(view.link_id),
                "link_name": link_name,
                "document_id": str(view.document_id),
                "document_name": document.name,
                "viewer_email": view.viewer_email,
                "viewed_at": ensure_utc(view.viewed_at).isoformat(),
                "total_duration": summary["total_duration"],
                "completion_rate": summary["completion_rate"],
            })
        return result
