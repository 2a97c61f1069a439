"""Tracking & Downloads — page/video events and download authorization.

Invariants:
    - Events only attach to a view of the same link and document
    - Downloads require a recent view of a link that allows them
    - Every download denial shares the visitor-facing message
    - Granted downloads stamp downloaded_at and notify the team
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from sqlalchemy import select

from papermark.models.view import PageView, VideoEvent, View
from tests.services.factories import add_document, add_link, add_view


def _error(res) -> dict:
    return res.json()["error"]


# ─── Page views ──────────────────────────────────────────────────

async def test_page_view_recorded(client, test_db, seed_link, seed_document):
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/record-view-page", json={
        "view_id": str(view.id), "link_id": str(seed_link.id),
        "document_id": str(seed_document.id), "page_number": 2, "duration_ms": 4200,
    })
    assert res.status_code == 200

    rows = (await test_db.execute(select(PageView))).scalars().all()
    assert len(rows) == 1
    assert rows[0].page_number == 2
    assert rows[0].duration_ms == 4200
    assert rows[0].version_number == 1


async def test_page_view_unknown_view(client, seed_link, seed_document):
    res = await client.post("/api/v1/record-view-page", json={
        "view_id": str(uuid4()), "link_id": str(seed_link.id),
        "document_id": str(seed_document.id), "page_number": 1, "duration_ms": 10,
    })
    assert res.status_code == 404


async def test_page_view_mismatched_document(client, test_db, seed_team, seed_link, seed_document):
    other, _ = await add_document(test_db, seed_team, name="Other")
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/record-view-page", json={
        "view_id": str(view.id), "link_id": str(seed_link.id),
        "document_id": str(other.id), "page_number": 1, "duration_ms": 10,
    })
    assert res.status_code == 400


async def test_page_view_mismatched_link(client, test_db, seed_team, seed_link, seed_document):
    other_link = await add_link(test_db, seed_team, document_id=seed_document.id)
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/record-view-page", json={
        "view_id": str(view.id), "link_id": str(other_link.id),
        "document_id": str(seed_document.id), "page_number": 1, "duration_ms": 10,
    })
    assert res.status_code == 400


# ─── Video events ────────────────────────────────────────────────

async def test_video_event_recorded(client, test_db, seed_link, seed_document):
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/record-video-event", json={
        "view_id": str(view.id), "document_id": str(seed_document.id),
        "event_type": "played", "start_time": 0, "end_time": 12.5,
    })
    assert res.status_code == 200
    event = (await test_db.execute(select(VideoEvent))).scalar_one()
    assert event.end_time == 12.5


async def test_video_event_end_before_start(client, test_db, seed_link, seed_document):
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/record-video-event", json={
        "view_id": str(view.id), "document_id": str(seed_document.id),
        "event_type": "played", "start_time": 30, "end_time": 10,
    })
    assert res.status_code == 400
    assert _error(res)["code"] == "VALIDATION_ERROR"


# ─── Downloads ───────────────────────────────────────────────────

def _download_body(link, view) -> dict:
    return {"link_id": str(link.id), "view_id": str(view.id)}


async def test_download_granted(client, test_db, seed_team, seed_document):
    link = await add_link(test_db, seed_team, document_id=seed_document.id, allow_download=True)
    view = await add_view(test_db, link, seed_document)

    res = await client.post("/api/v1/links/download", json=_download_body(link, view))
    assert res.status_code == 200
    body = res.json()
    assert body["download_url"] == (
        f"https://assets.papermark.local/docs/{seed_document.id}/original.pdf"
    )
    assert body["file_name"] == "Pitch Deck"
    assert body["watermark"] is None

    stored = (await test_db.execute(
        select(View).where(View.id == view.id).execution_options(populate_existing=True),
    )).scalar_one()
    assert stored.downloaded_at is not None


async def test_download_disabled(client, test_db, seed_link, seed_document):
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/links/download", json=_download_body(seed_link, view))
    assert res.status_code == 403
    error = _error(res)
    assert error["code"] == "DOWNLOAD_NOT_ALLOWED"
    assert error["message"] == "Error downloading"
    assert error["details"]["reason"] == "download_disabled"


async def test_download_window_elapsed(client, test_db, seed_team, seed_document):
    link = await add_link(test_db, seed_team, document_id=seed_document.id, allow_download=True)
    view = await add_view(
        test_db, link, seed_document,
        viewed_at=datetime.now(timezone.utc) - timedelta(hours=2),
    )
    res = await client.post("/api/v1/links/download", json=_download_body(link, view))
    assert res.status_code == 403
    assert _error(res)["details"]["reason"] == "download_window_elapsed"


async def test_download_unknown_view(client, seed_link):
    res = await client.post("/api/v1/links/download", json={
        "link_id": str(seed_link.id), "view_id": str(uuid4()),
    })
    assert res.status_code == 404
    assert _error(res)["code"] == "VIEW_NOT_FOUND"
    assert _error(res)["message"] == "Error downloading"


async def test_download_view_of_other_link(client, test_db, seed_team, seed_link, seed_document):
    link = await add_link(test_db, seed_team, document_id=seed_document.id, allow_download=True)
    view = await add_view(test_db, seed_link, seed_document)
    res = await client.post("/api/v1/links/download", json=_download_body(link, view))
    assert res.status_code == 404


async def test_download_only_document_ignores_link_flag(client, test_db, seed_team):
    document, _ = await add_document(
        test_db, seed_team, name="Model.xlsx", type_="sheet", pages=False, download_only=True,
    )
    link = await add_link(test_db, seed_team, document_id=document.id)
    view = await add_view(test_db, link, document)
    res = await client.post("/api/v1/links/download", json=_download_body(link, view))
    assert res.status_code == 200
    assert res.json()["download_url"].endswith("original.sheet")


async def test_download_archived_link(client, test_db, seed_team, seed_document):
    link = await add_link(
        test_db, seed_team, document_id=seed_document.id,
        allow_download=True, is_archived=True,
    )
    view = await add_view(test_db, link, seed_document)
    res = await client.post("/api/v1/links/download", json=_download_body(link, view))
    assert res.status_code == 403
    assert _error(res)["details"]["reason"] == "link_archived"


async def test_watermarked_pdf_download(client, test_db, seed_team, seed_document):
    link = await add_link(
        test_db, seed_team, document_id=seed_document.id, name="Investor link",
        allow_download=True, enable_watermark=True,
        watermark_config={"text": "{{email}} {{ipAddress}}"},
    )
    view = await add_view(test_db, link, seed_document, viewer_email="lp@fund.vc")
    res = await client.post(
        "/api/v1/links/download", json=_download_body(link, view),
        headers={"X-Forwarded-For": "203.0.113.9"},
    )
    body = res.json()
    assert body["download_url"].endswith("file.pdf")
    assert body["watermark"]["config"] == {"text": "{{email}} {{ipAddress}}"}
    viewer = body["watermark"]["viewer"]
    assert viewer["email"] == "lp@fund.vc"
    assert viewer["link"] == "Investor link"
    assert viewer["ip_address"] == "203.0.113.9"


async def test_download_notifies_webhook(client, test_db, seed_team, seed_document, webhooks):
    seed_team.webhook_url = "https://hooks.acme.test/papermark"
    await test_db.commit()
    link = await add_link(test_db, seed_team, document_id=seed_document.id, allow_download=True)
    view = await add_view(test_db, link, seed_document)

    await client.post("/api/v1/links/download", json=_download_body(link, view))

    assert [d["event"] for d in webhooks.deliveries] == ["link.downloaded"]
    data = webhooks.deliveries[0]["data"]
    assert UUID(data["view_id"]) == view.id
    assert data["downloaded_at"] is not None
