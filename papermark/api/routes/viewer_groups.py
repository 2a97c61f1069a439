"""Viewer Group Routes — data room audiences, their members and item permissions.

Invariants:
    - Members are Viewer rows of the team, created on first mention
    - Permission items must belong to the group's data room
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_member_team, get_team_resource
from papermark.core.domain_types import ItemType
from papermark.core.email_rules import normalize_email, validate_email
from papermark.core.errors import ErrorContext, ResourceNotFoundError, ValidationFailedError
from papermark.infrastructure.database import get_db
from papermark.models.dataroom import Dataroom, DataroomDocument, DataroomFolder
from papermark.models.user import Team
from papermark.models.viewer import ViewerGroup, ViewerGroupMembership
from papermark.schemas.dataroom import GroupMembersAdd, PermissionsUpdate, ViewerGroupCreate
from papermark.services.dataroom_permissions import group_controls, set_group_permissions
from papermark.services.visitor_access import find_or_create_viewer

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/teams/{team_id}/datarooms/{dataroom_id}/groups", tags=["viewer-groups"],
)


async def _group(db: AsyncSession, team: Team, dataroom_id: UUID, group_id: UUID) -> ViewerGroup:
    group = await get_team_resource(db, ViewerGroup, group_id, team)
    if group.dataroom_id != dataroom_id:
        raise ResourceNotFoundError(
            "ViewerGroup", str(group_id), ErrorContext(team_id=str(team.id)),
        )
    return group


def _control_dict(control) -> dict:
    return {
        "item_id": str(control.item_id),
        "item_type": control.item_type,
        "can_view": control.can_view,
        "can_download": control.can_download,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_group(
    dataroom_id: UUID,
    body: ViewerGroupCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    await get_team_resource(db, Dataroom, dataroom_id, team)
    group = ViewerGroup(
        team_id=team.id, dataroom_id=dataroom_id,
        name=body.name, allow_all=body.allow_all, domains=body.domains,
    )
    db.add(group)
    await db.commit()
    return {
        "id": str(group.id),
        "name": group.name,
        "allow_all": group.allow_all,
        "domains": group.domains,
    }


@router.post("/{group_id}/members")
async def add_members(
    dataroom_id: UUID,
    group_id: UUID,
    body: GroupMembersAdd,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    group = await _group(db, team, dataroom_id, group_id)
    emails = {normalize_email(e) for e in body.emails}
    invalid = sorted(e for e in emails if not validate_email(e))
    if invalid:
        raise ValidationFailedError(
            f"Invalid email addresses: {', '.join(invalid)}", "emails",
            ErrorContext(team_id=str(team.id)),
        )
    existing = set((await db.execute(
        select(ViewerGroupMembership.viewer_id).where(ViewerGroupMembership.group_id == group.id),
    )).scalars().all())
    added = 0
    for email in sorted(emails):
        viewer = await find_or_create_viewer(db, team.id, email, verified=False)
        if viewer.id not in existing:
            db.add(ViewerGroupMembership(group_id=group.id, viewer_id=viewer.id))
            existing.add(viewer.id)
            added += 1
    await db.commit()
    return {"added": added, "members": len(existing)}


@router.put("/{group_id}/permissions")
async def update_permissions(
    dataroom_id: UUID,
    group_id: UUID,
    body: PermissionsUpdate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    group = await _group(db, team, dataroom_id, group_id)
    folder_ids = set((await db.execute(
        select(DataroomFolder.id).where(DataroomFolder.dataroom_id == dataroom_id),
    )).scalars().all())
    document_ids = set((await db.execute(
        select(DataroomDocument.id).where(DataroomDocument.dataroom_id == dataroom_id),
    )).scalars().all())
    for item_id, perm in body.permissions.items():
        known = folder_ids if perm.item_type == ItemType.DATAROOM_FOLDER else document_ids
        if item_id not in known:
            raise ValidationFailedError(
                f"Item {item_id} is not a {perm.item_type} of this data room", "permissions",
            )
    controls = await set_group_permissions(
        db, group, {item_id: perm.model_dump() for item_id, perm in body.permissions.items()},
    )
    return {"permissions": [_control_dict(c) for c in controls]}


@router.get("/{group_id}/permissions")
async def list_permissions(
    dataroom_id: UUID,
    group_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    group = await _group(db, team, dataroom_id, group_id)
    controls = await group_controls(db, group.id)
    return {"permissions": [_control_dict(c) for c in controls.values()]}
