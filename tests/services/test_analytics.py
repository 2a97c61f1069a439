"""Team Analytics — dashboard aggregates over non-archived document views.

Invariants:
    - Archived views are excluded from every aggregate
    - Durations come from recorded page events
    - Free plans cannot look further back than 30 days with a custom range
"""

from datetime import datetime, timedelta, timezone

from papermark.models.view import PageView, VideoEvent
from tests.services.factories import add_document, add_link, add_view


def _analytics_url(team) -> str:
    return f"/api/v1/teams/{team.id}/analytics"


async def _page_event(db, view, page_number: int, duration_ms: int) -> None:
    db.add(PageView(
        view_id=view.id, link_id=view.link_id, document_id=view.document_id,
        page_number=page_number, duration_ms=duration_ms,
    ))
    await db.commit()


# ─── Overview ────────────────────────────────────────────────────

async def test_overview_counts(client, test_db, seed_team, seed_link, seed_document, auth_headers):
    other_link = await add_link(test_db, seed_team, document_id=seed_document.id)
    await add_view(test_db, seed_link, seed_document, viewer_email="a@fund.vc")
    await add_view(test_db, seed_link, seed_document, viewer_email="a@fund.vc")
    await add_view(test_db, other_link, seed_document)

    res = await client.get(_analytics_url(seed_team), headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["type"] == "overview"
    assert body["interval"] == "7d"
    assert body["data"]["counts"] == {"links": 2, "documents": 1, "visitors": 1, "views": 3}
    assert sum(b["views"] for b in body["data"]["graph"]) == 3


async def test_archived_views_excluded(client, test_db, seed_team, seed_link, seed_document, auth_headers):
    kept = await add_view(test_db, seed_link, seed_document)
    hidden = await add_view(test_db, seed_link, seed_document)

    res = await client.patch(
        f"/api/v1/teams/{seed_team.id}/views/{hidden.id}",
        json={"is_archived": True}, headers=auth_headers,
    )
    assert res.json() == {"id": str(hidden.id), "is_archived": True}

    views = await client.get(
        _analytics_url(seed_team), params={"type": "views"}, headers=auth_headers,
    )
    assert [v["id"] for v in views.json()["data"]] == [str(kept.id)]


async def test_views_outside_window_ignored(client, test_db, seed_team, seed_link, seed_document, auth_headers):
    await add_view(
        test_db, seed_link, seed_document,
        viewed_at=datetime.now(timezone.utc) - timedelta(days=10),
    )
    res = await client.get(_analytics_url(seed_team), headers=auth_headers)
    assert res.json()["data"]["counts"]["views"] == 0

    wider = await client.get(
        _analytics_url(seed_team), params={"interval": "30d"}, headers=auth_headers,
    )
    assert wider.json()["data"]["counts"]["views"] == 1


# ─── Grouped ─────────────────────────────────────────────────────

async def test_links_average_duration(client, test_db, seed_team, seed_link, seed_document, auth_headers):
    first = await add_view(test_db, seed_link, seed_document)
    second = await add_view(test_db, seed_link, seed_document)
    await _page_event(test_db, first, 1, 2000)
    await _page_event(test_db, first, 2, 2000)
    await _page_event(test_db, second, 1, 1000)

    res = await client.get(
        _analytics_url(seed_team), params={"type": "links"}, headers=auth_headers,
    )
    [entry] = res.json()["data"]
    assert entry["id"] == str(seed_link.id)
    assert entry["views"] == 2
    assert entry["avg_duration"] == 2500
    assert entry["document_name"] == "Pitch Deck"


async def test_visitors_grouped_by_email(client, test_db, seed_team, seed_link, seed_document, auth_headers):
    await add_view(test_db, seed_link, seed_document, viewer_email="a@fund.vc", verified=True)
    await add_view(test_db, seed_link, seed_document, viewer_email="a@fund.vc")
    await add_view(test_db, seed_link, seed_document)

    res = await client.get(
        _analytics_url(seed_team), params={"type": "visitors"}, headers=auth_headers,
    )
    [visitor] = res.json()["data"]
    assert visitor["email"] == "a@fund.vc"
    assert visitor["total_views"] == 2
    assert visitor["unique_documents"] == 1
    assert visitor["verified"] is True


# ─── Views ──────────────────────────────────────────────────────

async def test_views_completion_falls_back_to_document_pages(
    client, test_db, seed_team, auth_headers,
):
    document, version = await add_document(test_db, seed_team)
    version.num_pages = None
    await test_db.commit()
    link = await add_link(test_db, seed_team, document_id=document.id)
    view = await add_view(test_db, link, document)
    await _page_event(test_db, view, 1, 1500)

    res = await client.get(
        _analytics_url(seed_team), params={"type": "views"}, headers=auth_headers,
    )
    [row] = res.json()["data"]
    assert row["completion_rate"] == 33

    table = await client.get(
        f"/api/v1/teams/{seed_team.id}/documents/{document.id}/views", headers=auth_headers,
    )
    assert table.json()["views"][0]["completion_rate"] == row["completion_rate"]


async def test_views_use_watch_time_for_videos(client, test_db, seed_team, auth_headers):
    document, version = await add_document(
        test_db, seed_team, name="Demo", type_="video", num_pages=1, pages=False,
    )
    version.length = 20
    await test_db.commit()
    link = await add_link(test_db, seed_team, document_id=document.id)
    view = await add_view(test_db, link, document)
    test_db.add(VideoEvent(
        view_id=view.id, document_id=document.id, event_type="played",
        start_time=0, end_time=10,
    ))
    await test_db.commit()

    res = await client.get(
        _analytics_url(seed_team), params={"type": "views"}, headers=auth_headers,
    )
    [row] = res.json()["data"]
    assert row["completion_rate"] == 50
    assert row["total_duration"] == 10000


# ─── Windows ─────────────────────────────────────────────────────

async def test_custom_range_start_after_end(client, seed_team, auth_headers):
    now = datetime.now(timezone.utc)
    res = await client.get(_analytics_url(seed_team), params={
        "interval": "custom",
        "start": now.isoformat(),
        "end": (now - timedelta(days=1)).isoformat(),
    }, headers=auth_headers)
    assert res.status_code == 400


async def test_free_plan_lookback_limited(client, test_db, seed_team, auth_headers):
    seed_team.plan = "free"
    await test_db.commit()
    now = datetime.now(timezone.utc)
    params = {
        "interval": "custom",
        "start": (now - timedelta(days=60)).isoformat(),
        "end": now.isoformat(),
    }
    res = await client.get(_analytics_url(seed_team), params=params, headers=auth_headers)
    assert res.status_code == 403

    seed_team.plan = "pro"
    await test_db.commit()
    res = await client.get(_analytics_url(seed_team), params=params, headers=auth_headers)
    assert res.status_code == 200


async def test_unknown_type_rejected(client, seed_team, auth_headers):
    res = await client.get(
        _analytics_url(seed_team), params={"type": "heatmap"}, headers=auth_headers,
    )
    assert res.status_code == 400
