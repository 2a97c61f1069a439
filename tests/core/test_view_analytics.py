"""View Analytics — tests for duration aggregation, video stats and intervals.

Tests cover:
    - page durations summed per page, completion rate capped at 100
    - relevant_version picks the newest version created before the view
    - video watch time counts seconds, unique vs total
    - duration_format output
    - interval_bounds for each interval and the custom range error
    - bucket_views by hour and by day
"""

from datetime import datetime, timedelta, timezone

import pytest

from papermark.core.view_analytics import (
    PageDurationEvent,
    VersionInfo,
    VideoWatchEvent,
    bucket_views,
    completion_rate,
    duration_format,
    interval_bounds,
    page_durations,
    relevant_version,
    summarize_view,
    video_watch_stats,
)

NOW = datetime(2026, 3, 10, 15, 42, 7, tzinfo=timezone.utc)


# ─── page durations ─────────────────────────────────────────────

def test_page_durations_grouped_and_sorted():
    events = [
        PageDurationEvent(2, 1000), PageDurationEvent(1, 500), PageDurationEvent(2, 250),
    ]
    assert page_durations(events) == [
        {"page_number": 1, "sum_duration": 500},
        {"page_number": 2, "sum_duration": 1250},
    ]


def test_negative_durations_count_as_zero():
    assert page_durations([PageDurationEvent(1, -5)]) == [{"page_number": 1, "sum_duration": 0}]


def test_completion_rate_capped():
    assert completion_rate(5, 4) == 100.0
    assert completion_rate(1, 4) == 25.0
    assert completion_rate(3, None) == 0.0


# ─── versions ───────────────────────────────────────────────────

def test_relevant_version_is_newest_before_view():
    v1 = VersionInfo(1, NOW - timedelta(days=3), num_pages=4)
    v2 = VersionInfo(2, NOW - timedelta(days=1), num_pages=8)
    v3 = VersionInfo(3, NOW + timedelta(days=1), num_pages=10)
    assert relevant_version([v1, v2, v3], NOW).version_number == 2


def test_relevant_version_none_when_view_predates_all():
    assert relevant_version([VersionInfo(1, NOW)], NOW - timedelta(seconds=1)) is None


def test_summarize_view_uses_version_page_count():
    versions = [VersionInfo(1, NOW - timedelta(days=1), num_pages=4)]
    events = [PageDurationEvent(1, 2000), PageDurationEvent(2, 1000)]
    summary = summarize_view(events, versions, NOW, document_num_pages=99)
    assert summary["total_duration"] == 3000
    assert summary["completion_rate"] == 50
    assert summary["version_number"] == 1
    assert summary["version_num_pages"] == 4


def test_summarize_view_falls_back_to_document_pages():
    summary = summarize_view([PageDurationEvent(1, 10)], [], NOW, document_num_pages=2)
    assert summary["version_number"] == 1
    assert summary["completion_rate"] == 50


# ─── video ──────────────────────────────────────────────────────

def test_video_stats_count_replays_in_total_only():
    events = [
        VideoWatchEvent("played", 0, 10),
        VideoWatchEvent("played", 5, 10),
    ]
    stats = video_watch_stats(events, 20)
    assert stats["unique_watch_time"] == 10
    assert stats["total_watch_time"] == 15
    assert stats["total_duration"] == 15000
    assert stats["completion_rate"] == 50


def test_video_stats_ignore_non_watch_events_and_short_segments():
    events = [
        VideoWatchEvent("paused", 0, 30),
        VideoWatchEvent("played", 3, 3.5),
    ]
    stats = video_watch_stats(events, 30)
    assert stats["total_watch_time"] == 0
    assert stats["completion_rate"] == 0


def test_video_stats_without_length():
    assert video_watch_stats([VideoWatchEvent("played", 0, 5)], None)["completion_rate"] == 0


# ─── formatting ─────────────────────────────────────────────────

@pytest.mark.parametrize("ms, expected", [
    (None, "0s"), (999, "0s"), (42_000, "42s"), (185_000, "3m 5s"), (3_720_000, "1h 2m"),
])
def test_duration_format(ms, expected):
    assert duration_format(ms) == expected


# ─── intervals ──────────────────────────────────────────────────

def test_24h_starts_at_top_of_hour():
    begin, end = interval_bounds("24h", NOW)
    assert begin == datetime(2026, 3, 9, 16, 0, tzinfo=timezone.utc)
    assert end == NOW


def test_7d_and_30d_start_at_midnight():
    assert interval_bounds("7d", NOW)[0] == datetime(2026, 3, 4, tzinfo=timezone.utc)
    assert interval_bounds("30d", NOW)[0] == datetime(2026, 2, 9, tzinfo=timezone.utc)


def test_custom_range_defaults():
    begin, end = interval_bounds("custom", NOW)
    assert begin == datetime(2026, 3, 4, tzinfo=timezone.utc)
    assert end == NOW


def test_custom_range_start_after_end_raises():
    with pytest.raises(ValueError):
        interval_bounds("custom", NOW, start=NOW, end=NOW - timedelta(days=2))


def test_unknown_interval_raises():
    with pytest.raises(ValueError):
        interval_bounds("90d", NOW)


# ─── buckets ────────────────────────────────────────────────────

def test_bucket_views_by_hour():
    stamps = [NOW, NOW.replace(minute=1), NOW - timedelta(hours=1)]
    buckets = bucket_views(stamps, by_hour=True)
    assert [b["views"] for b in buckets] == [1, 2]


def test_bucket_views_by_day_accepts_naive():
    stamps = [NOW.replace(tzinfo=None), NOW - timedelta(days=1)]
    buckets = bucket_views(stamps, by_hour=False)
    assert buckets[-1]["date"] == "2026-03-10T00:00:00+00:00"
    assert len(buckets) == 2
