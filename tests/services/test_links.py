"""Links — team-side link management and the public link lookup.

Invariants:
    - Owners read the link password back; the public lookup only sees has_password
    - Linked resources must belong to the team
    - Archived links are 404 and expired links 410 on the public lookup
    - Deleting a link removes its views
"""

from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import select

from papermark.models.link import Agreement, Link
from papermark.models.user import Team
from papermark.models.view import View
from tests.services.factories import add_document


def _links_url(team) -> str:
    return f"/api/v1/teams/{team.id}/links"


# ─── Create ──────────────────────────────────────────────────────

async def test_create_link_encrypts_password(client, seed_team, seed_document, auth_headers, test_db):
    res = await client.post(_links_url(seed_team), json={
        "document_id": str(seed_document.id),
        "password": "hunter22",
        "allow_list": [" @Acme.com ", ""],
    }, headers=auth_headers)
    assert res.status_code == 201
    body = res.json()
    assert body["password"] == "hunter22"
    assert body["has_password"] is True
    assert body["allow_list"] == ["@acme.com"]

    stored = await test_db.get(Link, UUID(body["id"]))
    assert stored.password != "hunter22"


async def test_document_link_requires_document(client, seed_team, auth_headers):
    res = await client.post(_links_url(seed_team), json={
        "link_type": "DOCUMENT_LINK",
    }, headers=auth_headers)
    assert res.status_code == 400


async def test_agreement_flag_requires_agreement(client, seed_team, seed_document, auth_headers):
    res = await client.post(_links_url(seed_team), json={
        "document_id": str(seed_document.id), "enable_agreement": True,
    }, headers=auth_headers)
    assert res.status_code == 400


async def test_email_authenticated_forces_email_protected(
    client, seed_team, seed_document, auth_headers,
):
    res = await client.post(_links_url(seed_team), json={
        "document_id": str(seed_document.id),
        "email_protected": False,
        "email_authenticated": True,
    }, headers=auth_headers)
    assert res.json()["email_protected"] is True


async def test_cannot_link_other_teams_document(client, seed_team, auth_headers, test_db):
    other = Team(name="Other", global_block_list=[])
    test_db.add(other)
    await test_db.commit()
    foreign, _ = await add_document(test_db, other)

    res = await client.post(_links_url(seed_team), json={
        "document_id": str(foreign.id),
    }, headers=auth_headers)
    assert res.status_code == 404


async def test_link_with_agreement(client, seed_team, seed_document, auth_headers, test_db):
    agreement = Agreement(team_id=seed_team.id, name="NDA", content="Keep it secret.")
    test_db.add(agreement)
    await test_db.commit()

    res = await client.post(_links_url(seed_team), json={
        "document_id": str(seed_document.id),
        "enable_agreement": True,
        "agreement_id": str(agreement.id),
    }, headers=auth_headers)
    assert res.status_code == 201

    public = await client.get(f"/api/v1/links/{res.json()['id']}")
    assert public.json()["agreement"] == {"name": "NDA", "content": "Keep it secret."}


# ─── Update & archive ────────────────────────────────────────────

async def test_update_keeps_password_when_omitted(client, seed_team, seed_document, auth_headers):
    created = await client.post(_links_url(seed_team), json={
        "document_id": str(seed_document.id), "password": "hunter22",
    }, headers=auth_headers)
    link_id = created.json()["id"]

    res = await client.put(f"{_links_url(seed_team)}/{link_id}", json={
        "name": "Renamed",
    }, headers=auth_headers)
    assert res.json()["name"] == "Renamed"
    assert res.json()["password"] == "hunter22"

    cleared = await client.put(f"{_links_url(seed_team)}/{link_id}", json={
        "password": None,
    }, headers=auth_headers)
    assert cleared.json()["has_password"] is False


async def test_archived_link_is_gone_publicly(client, seed_team, seed_link, auth_headers):
    res = await client.patch(
        f"{_links_url(seed_team)}/{seed_link.id}/archive",
        json={"is_archived": True}, headers=auth_headers,
    )
    assert res.json()["is_archived"] is True

    public = await client.get(f"/api/v1/links/{seed_link.id}")
    assert public.status_code == 404
    assert public.json()["error"]["code"] == "LINK_ARCHIVED"


async def test_expired_link_is_410(client, seed_team, seed_link, auth_headers):
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    await client.put(f"{_links_url(seed_team)}/{seed_link.id}", json={
        "expires_at": past, "email_protected": False,
    }, headers=auth_headers)

    public = await client.get(f"/api/v1/links/{seed_link.id}")
    assert public.status_code == 410
    assert public.json()["error"]["code"] == "LINK_EXPIRED"


# ─── Public lookup ───────────────────────────────────────────────

async def test_public_lookup_hides_sensitive_fields(client, seed_team, seed_document, auth_headers):
    created = await client.post(_links_url(seed_team), json={
        "document_id": str(seed_document.id),
        "password": "hunter22",
        "deny_list": ["bad@x.io"],
    }, headers=auth_headers)

    res = await client.get(f"/api/v1/links/{created.json()['id']}")
    assert res.status_code == 200
    body = res.json()
    assert body["has_password"] is True
    assert "password" not in body
    assert "deny_list" not in body
    assert body["document"]["name"] == "Pitch Deck"


async def test_unknown_link_is_404(client):
    res = await client.get("/api/v1/links/00000000-0000-0000-0000-000000000001")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "LINK_NOT_FOUND"


# ─── Delete ──────────────────────────────────────────────────────

async def test_delete_link_removes_views(
    client, seed_team, seed_link, seed_document, auth_headers, test_db,
):
    await client.post("/api/v1/views", json={
        "link_id": str(seed_link.id), "document_id": str(seed_document.id),
    })
    res = await client.delete(f"{_links_url(seed_team)}/{seed_link.id}", headers=auth_headers)
    assert res.status_code == 204

    views = (await test_db.execute(select(View).where(View.link_id == seed_link.id))).all()
    assert views == []
    listed = await client.get(_links_url(seed_team), headers=auth_headers)
    assert listed.json()["links"] == []
