"""Data Rooms & Viewer Groups — room structure, indexes, members and permissions.

Invariants:
    - A document is placed in a room at most once
    - generate-index numbers folders and documents together
    - Granting view on a nested item makes its ancestor folders visible
    - Permission items must belong to the group's room
"""

from sqlalchemy import select

from papermark.models.dataroom import DataroomDocument, DataroomFolder
from papermark.models.viewer import ViewerGroupMembership


def _rooms_url(team) -> str:
    return f"/api/v1/teams/{team.id}/datarooms"


# ─── Rooms ───────────────────────────────────────────────────────

async def test_build_room_through_api(client, seed_team, seed_document, auth_headers):
    room = await client.post(_rooms_url(seed_team), json={"name": "Deal"}, headers=auth_headers)
    assert room.status_code == 201
    room_url = f"{_rooms_url(seed_team)}/{room.json()['id']}"

    folder = await client.post(f"{room_url}/folders", json={"name": "Legal"}, headers=auth_headers)
    sub = await client.post(f"{room_url}/folders", json={
        "name": "Contracts", "parent_id": folder.json()["id"],
    }, headers=auth_headers)
    assert sub.status_code == 201

    placed = await client.post(f"{room_url}/documents", json={
        "document_id": str(seed_document.id), "folder_id": sub.json()["id"],
    }, headers=auth_headers)
    assert placed.status_code == 201

    detail = await client.get(room_url, headers=auth_headers)
    legal = detail.json()["items"][0]
    assert legal["name"] == "Legal"
    assert legal["children"][0]["children"][0]["name"] == "Pitch Deck"
    assert legal["children"][0]["children"][0]["hierarchical_index"] == "1.1.1"


async def test_document_placed_once(client, seed_team, seed_dataroom, auth_headers):
    url = f"{_rooms_url(seed_team)}/{seed_dataroom['dataroom'].id}/documents"
    res = await client.post(url, json={
        "document_id": str(seed_dataroom["readme"].id),
    }, headers=auth_headers)
    assert res.status_code == 409


async def test_folder_parent_must_be_in_room(client, seed_team, auth_headers):
    room = await client.post(_rooms_url(seed_team), json={"name": "Deal"}, headers=auth_headers)
    res = await client.post(f"{_rooms_url(seed_team)}/{room.json()['id']}/folders", json={
        "name": "Orphan", "parent_id": "00000000-0000-0000-0000-000000000001",
    }, headers=auth_headers)
    assert res.status_code == 404


async def test_generate_index_persists_paths(client, seed_team, seed_dataroom, auth_headers, test_db):
    url = f"{_rooms_url(seed_team)}/{seed_dataroom['dataroom'].id}/generate-index"
    res = await client.post(url, headers=auth_headers)
    assert res.json() == {"folders_updated": 1, "documents_updated": 2}

    folder = (await test_db.execute(
        select(DataroomFolder).where(DataroomFolder.id == seed_dataroom["folder"].id)
        .execution_options(populate_existing=True),
    )).scalar_one()
    assert folder.hierarchical_index == "1"
    indexes = dict((await test_db.execute(
        select(DataroomDocument.document_id, DataroomDocument.hierarchical_index),
    )).all())
    assert indexes[seed_dataroom["term_sheet"].id] == "1.1"
    assert indexes[seed_dataroom["readme"].id] == "2"


# ─── Viewer groups ───────────────────────────────────────────────

def _groups_url(team, room) -> str:
    return f"{_rooms_url(team)}/{room['dataroom'].id}/groups"


async def test_group_domains_normalized(client, seed_team, seed_dataroom, auth_headers):
    res = await client.post(_groups_url(seed_team, seed_dataroom), json={
        "name": "Investors", "domains": ["Acme.com", "@fund.vc", " "],
    }, headers=auth_headers)
    assert res.status_code == 201
    assert res.json()["domains"] == ["@acme.com", "@fund.vc"]


async def test_add_members_dedupes(client, seed_team, seed_dataroom, auth_headers, test_db):
    group = await client.post(
        _groups_url(seed_team, seed_dataroom), json={"name": "LPs"}, headers=auth_headers,
    )
    url = f"{_groups_url(seed_team, seed_dataroom)}/{group.json()['id']}/members"

    first = await client.post(url, json={"emails": ["A@x.com", "a@x.com", "b@x.com"]}, headers=auth_headers)
    assert first.json() == {"added": 2, "members": 2}
    second = await client.post(url, json={"emails": ["b@x.com", "c@x.com"]}, headers=auth_headers)
    assert second.json() == {"added": 1, "members": 3}

    rows = (await test_db.execute(select(ViewerGroupMembership))).all()
    assert len(rows) == 3


async def test_add_members_rejects_invalid_email(client, seed_team, seed_dataroom, auth_headers):
    group = await client.post(
        _groups_url(seed_team, seed_dataroom), json={"name": "LPs"}, headers=auth_headers,
    )
    res = await client.post(
        f"{_groups_url(seed_team, seed_dataroom)}/{group.json()['id']}/members",
        json={"emails": ["ok@x.com", "broken"]}, headers=auth_headers,
    )
    assert res.status_code == 400


async def test_permissions_reveal_ancestor_folders(client, seed_team, seed_dataroom, auth_headers):
    group = await client.post(
        _groups_url(seed_team, seed_dataroom), json={"name": "LPs"}, headers=auth_headers,
    )
    url = f"{_groups_url(seed_team, seed_dataroom)}/{group.json()['id']}/permissions"
    item_id = str(seed_dataroom["term_sheet_item"].id)

    res = await client.put(url, json={"permissions": {
        item_id: {"item_type": "DATAROOM_DOCUMENT", "view": True, "download": True},
    }}, headers=auth_headers)
    assert res.status_code == 200
    controls = {c["item_id"]: c for c in res.json()["permissions"]}
    assert controls[item_id]["can_download"] is True
    folder_control = controls[str(seed_dataroom["folder"].id)]
    assert folder_control["can_view"] is True
    assert folder_control["can_download"] is False

    again = await client.put(url, json={"permissions": {
        item_id: {"item_type": "DATAROOM_DOCUMENT", "view": True, "download": False},
    }}, headers=auth_headers)
    assert len(again.json()["permissions"]) == 2

    listed = await client.get(url, headers=auth_headers)
    assert len(listed.json()["permissions"]) == 2


async def test_permissions_reject_foreign_items(client, seed_team, seed_dataroom, auth_headers):
    group = await client.post(
        _groups_url(seed_team, seed_dataroom), json={"name": "LPs"}, headers=auth_headers,
    )
    url = f"{_groups_url(seed_team, seed_dataroom)}/{group.json()['id']}/permissions"
    res = await client.put(url, json={"permissions": {
        str(seed_dataroom["folder"].id): {"item_type": "DATAROOM_DOCUMENT"},
    }}, headers=auth_headers)
    assert res.status_code == 400
