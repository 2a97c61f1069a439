"""View Analytics — pure aggregation of page-duration and video events into view statistics.

Invariants:
    - Page durations are summed per page number; total = sum over pages
    - Completion rate = distinct pages with recorded time / page count × 100
    - The version a view saw is the newest version created at or before viewed_at
    - Video watch time counts whole seconds: total includes replays, unique does not
    - Interval bounds are computed from an explicit `now`
"""

import math
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable

from papermark.core.domain_types import (
    AnalyticsInterval, WATCH_EVENT_TYPES, ensure_utc,
)


@dataclass
class PageDurationEvent:
    page_number: int
    duration_ms: int


@dataclass
class VideoWatchEvent:
    event_type: str
    start_time: float
    end_time: float


@dataclass
class VersionInfo:
    version_number: int
    created_at: datetime
    num_pages: int | None = None
    length: int | None = None


# ─── Page durations ──────────────────────────────────────────────

def page_durations(events: Iterable[PageDurationEvent]) -> list[dict]:
    """Group by page number -> [{"page_number", "sum_duration"}] ordered by page."""
    totals: dict[int, int] = {}
    for event in events:
        totals[event.page_number] = totals.get(event.page_number, 0) + max(event.duration_ms, 0)
    return [
        {"page_number": page, "sum_duration": totals[page]}
        for page in sorted(totals)
    ]


def total_duration(pages: list[dict]) -> int:
    return sum(p["sum_duration"] for p in pages)


def completion_rate(pages_viewed: int, num_pages: int | None) -> float:
    if not num_pages:
        return 0.0
    return min(100.0, pages_viewed / num_pages * 100)


def relevant_version(
    versions: list[VersionInfo], viewed_at: datetime,
) -> VersionInfo | None:
    """Newest version that already existed when the view happened."""
    viewed = ensure_utc(viewed_at)
    candidates = [
        v for v in versions if ensure_utc(v.created_at) <= viewed
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda v: ensure_utc(v.created_at))


def summarize_view(
    events: Iterable[PageDurationEvent],
    versions: list[VersionInfo],
    viewed_at: datetime,
    document_num_pages: int | None = None,
) -> dict:
    """Per-view duration summary used by the document views table."""
    pages = page_durations(events)
    version = relevant_version(versions, viewed_at)
    num_pages = (version.num_pages if version else None) or document_num_pages or 0
    return {
        "duration": {"data": pages},
        "total_duration": total_duration(pages),
        "completion_rate": round(completion_rate(len(pages), num_pages)),
        "version_number": version.version_number if version else 1,
        "version_num_pages": num_pages,
    }


# ─── Video ───────────────────────────────────────────────────────

def video_watch_stats(
    events: Iterable[VideoWatchEvent], video_length: int | None,
) -> dict:
    """Watch time in seconds and completion for one view of a video."""
    counts: Counter[int] = Counter()
    for event in events:
        if event.event_type not in WATCH_EVENT_TYPES:
            continue
        if event.end_time - event.start_time < 1:
            continue
        t = event.start_time
        while t < event.end_time:
            counts[math.floor(t)] += 1
            t += 1
    total_watch = sum(counts.values())
    unique_watch = len(counts)
    length = video_length or 0
    rate = min(100.0, unique_watch / length * 100) if length > 0 else 0.0
    return {
        "total_watch_time": total_watch,
        "unique_watch_time": unique_watch,
        "video_length": length,
        "total_duration": total_watch * 1000,
        "completion_rate": round(rate),
    }


# ─── Formatting & intervals ─────────────────────────────────────

def duration_format(ms: float | None) -> str:
    """Human-readable duration: "0s", "42s", "3m 5s", "1h 2m"."""
    if not ms or ms < 1000:
        return "0s"
    seconds = int(ms // 1000)
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


def interval_bounds(
    interval: str,
    now: datetime,
    start: datetime | None = None,
    end: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Window for an analytics query.

    24h starts at the top of the hour 23 hours ago; 7d/30d at midnight
    6/29 days ago; custom at midnight of `start` (default 6 days ago) and
    ends at `end` (default now). Raises ValueError when start is after end.
    """
    now = ensure_utc(now)
    if interval == AnalyticsInterval.LAST_24H:
        begin = (now - timedelta(hours=23)).replace(minute=0, second=0, microsecond=0)
        return begin, now
    if interval == AnalyticsInterval.LAST_7D:
        return _midnight(now - timedelta(days=6)), now
    if interval == AnalyticsInterval.LAST_30D:
        return _midnight(now - timedelta(days=29)), now
    if interval == AnalyticsInterval.CUSTOM:
        begin = _midnight(ensure_utc(start) if start else now - timedelta(days=6))
        finish = ensure_utc(end) if end else now
        if begin > finish:
            raise ValueError("The 'From' date must be before the 'To' date.")
        return begin, finish
    raise ValueError(f"Unknown interval: {interval}")


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def bucket_views(timestamps: Iterable[datetime], by_hour: bool) -> list[dict]:
    """Count views per hour or per day, ordered by bucket start."""
    counts: Counter[datetime] = Counter()
    for ts in timestamps:
        ts = ensure_utc(ts)
        if by_hour:
            key = ts.replace(minute=0, second=0, microsecond=0)
        else:
            key = _midnight(ts)
        counts[key] += 1
    return [
        {"date": key.astimezone(timezone.utc).isoformat(), "views": counts[key]}
        for key in sorted(counts)
    ]
