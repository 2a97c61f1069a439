"""Link Routes — team-side link management and the public link lookup.

Invariants:
    - Link passwords are encrypted before persistence and never appear in
      public responses (has_password only)
    - Linked document, data room, agreement and group must belong to the team
    - A GROUP link's group must belong to the link's data room
    - Public lookup applies availability rules (404 archived, 410 expired)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_member_team, get_team_resource
from papermark.core.domain_types import LinkAudienceType, LinkType
from papermark.core.errors import ErrorContext, ValidationFailedError
from papermark.infrastructure.database import get_db
from papermark.infrastructure.security import decrypt_link_password, encrypt_link_password
from papermark.models.dataroom import Dataroom
from papermark.models.document import Document
from papermark.models.link import Agreement, Link
from papermark.models.user import Team
from papermark.models.verification import DataroomSession
from papermark.models.view import PageView, VideoEvent, View
from papermark.models.viewer import ViewerGroup
from papermark.schemas.link import ArchiveToggle, LinkCreate, LinkSettings, LinkUpdate
from papermark.services.visitor_access import load_available_link

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/teams/{team_id}/links", tags=["links"])
public_router = APIRouter(prefix="/api/v1/links", tags=["links"])


def _link_dict(link: Link) -> dict:
    return {
        "id": str(link.id),
        "name": link.name,
        "link_type": link.link_type,
        "document_id": str(link.document_id) if link.document_id else None,
        "dataroom_id": str(link.dataroom_id) if link.dataroom_id else None,
        "has_password": bool(link.password),
        "expires_at": link.expires_at.isoformat() if link.expires_at else None,
        "email_protected": link.email_protected,
        "email_authenticated": link.email_authenticated,
        "allow_download": link.allow_download,
        "allow_list": link.allow_list or [],
        "deny_list": link.deny_list or [],
        "is_archived": link.is_archived,
        "enable_notification": link.enable_notification,
        "enable_agreement": link.enable_agreement,
        "agreement_id": str(link.agreement_id) if link.agreement_id else None,
        "enable_watermark": link.enable_watermark,
        "watermark_config": link.watermark_config,
        "enable_screenshot_protection": link.enable_screenshot_protection,
        "audience_type": link.audience_type,
        "group_id": str(link.group_id) if link.group_id else None,
        "custom_fields": link.custom_fields or [],
        "created_at": link.created_at.isoformat(),
    }


def _owner_link_dict(link: Link) -> dict:
    """Owners can read back the link password."""
    data = _link_dict(link)
    data["password"] = decrypt_link_password(link.password) if link.password else None
    return data


async def _check_references(
    db: AsyncSession, team: Team, body: LinkSettings, dataroom_id: UUID | None,
) -> None:
    if body.agreement_id:
        await get_team_resource(db, Agreement, body.agreement_id, team)
    if body.audience_type == LinkAudienceType.GROUP:
        group = await get_team_resource(db, ViewerGroup, body.group_id, team)
        if group.dataroom_id != dataroom_id:
            raise ValidationFailedError(
                "Group links must use a group of the same data room", "group_id",
                ErrorContext(team_id=str(team.id)),
            )


def _apply_settings(link: Link, body: LinkSettings, password_set: bool) -> None:
    data = body.model_dump(exclude={"password", "custom_fields"})
    for field, value in data.items():
        setattr(link, field, value)
    link.custom_fields = [f.model_dump() for f in body.custom_fields]
    if link.audience_type != LinkAudienceType.GROUP:
        link.group_id = None
    if password_set:
        link.password = encrypt_link_password(body.password) if body.password else None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_link(
    body: LinkCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    if body.link_type == LinkType.DOCUMENT_LINK:
        await get_team_resource(db, Document, body.document_id, team)
    else:
        await get_team_resource(db, Dataroom, body.dataroom_id, team)
    await _check_references(db, team, body, body.dataroom_id)

    link = Link(
        team_id=team.id,
        link_type=body.link_type,
        document_id=body.document_id,
        dataroom_id=body.dataroom_id,
    )
    _apply_settings(link, body, password_set=True)
    db.add(link)
    await db.commit()
    logger.info("Link created", extra={"link_id": str(link.id), "team_id": str(team.id)})
    return _owner_link_dict(link)


@router.get("")
async def list_links(
    document_id: UUID | None = Query(None),
    dataroom_id: UUID | None = Query(None),
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    query = select(Link).where(Link.team_id == team.id)
    if document_id:
        query = query.where(Link.document_id == document_id)
    if dataroom_id:
        query = query.where(Link.dataroom_id == dataroom_id)
    result = await db.execute(query.order_by(Link.created_at.desc()))
    return {"links": [_owner_link_dict(link) for link in result.scalars().all()]}


@router.put("/{link_id}")
async def update_link(
    link_id: UUID,
    body: LinkUpdate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    link = await get_team_resource(db, Link, link_id, team)
    await _check_references(db, team, body, link.dataroom_id)
    _apply_settings(link, body, password_set="password" in body.model_fields_set)
    await db.commit()
    return _owner_link_dict(link)


@router.patch("/{link_id}/archive")
async def archive_link(
    link_id: UUID,
    body: ArchiveToggle,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    link = await get_team_resource(db, Link, link_id, team)
    link.is_archived = body.is_archived
    await db.commit()
    return _owner_link_dict(link)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    link_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    link = await get_team_resource(db, Link, link_id, team)
    await db.execute(delete(DataroomSession).where(DataroomSession.link_id == link.id))
    await db.execute(delete(PageView).where(PageView.link_id == link.id))
    await db.execute(
        delete(VideoEvent)
        .where(VideoEvent.view_id.in_(select(View.id).where(View.link_id == link.id))),
    )
    await db.execute(delete(View).where(View.link_id == link.id))
    await db.delete(link)
    await db.commit()
    logger.info("Link deleted", extra={"link_id": str(link_id)})


@public_router.get("/{link_id}")
async def get_public_link(link_id: UUID, db: AsyncSession = Depends(get_db)):
    """What the visitor's access form needs to render."""
    link = await load_available_link(db, link_id)
    data = {
        k: v for k, v in _link_dict(link).items()
        if k not in ("allow_list", "deny_list", "is_archived", "enable_notification")
    }
    if link.document_id:
        document = await db.get(Document, link.document_id)
        data["document"] = {"id": str(document.id), "name": document.name, "type": document.type}
    if link.dataroom_id:
        dataroom = await db.get(Dataroom, link.dataroom_id)
        data["dataroom"] = {"id": str(dataroom.id), "name": dataroom.name}
    if link.enable_agreement and link.agreement_id:
        agreement = await db.get(Agreement, link.agreement_id)
        data["agreement"] = {"name": agreement.name, "content": agreement.content}
    return data
