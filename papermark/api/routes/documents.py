"""Document Routes — team documents, their versions and view tables.

Invariants:
    - Every route is scoped to a team the caller belongs to
    - Deleting a document removes its versions, pages, links, views and
      data room placements
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import get_current_user, get_member_team, get_team_resource
from papermark.infrastructure.database import get_db
from papermark.models.dataroom import DataroomDocument
from papermark.models.document import Document, DocumentPage, DocumentVersion
from papermark.models.link import Link
from papermark.models.user import Team, User
from papermark.models.view import PageView, VideoEvent, View
from papermark.models.viewer import ViewerGroupAccessControl
from papermark.schemas.document import DocumentCreate, DocumentVersionCreate
from papermark.services.documents import add_version, create_document, document_views
from papermark.services.view_content import load_version

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/teams/{team_id}/documents", tags=["documents"])


def _version_dict(version: DocumentVersion) -> dict:
    return {
        "id": str(version.id),
        "version_number": version.version_number,
        "type": version.type,
        "num_pages": version.num_pages,
        "length": version.length,
        "has_pages": version.has_pages,
        "is_primary": version.is_primary,
        "is_vertical": version.is_vertical,
    }


def _document_dict(document: Document, version: DocumentVersion | None = None) -> dict:
    data = {
        "id": str(document.id),
        "name": document.name,
        "type": document.type,
        "num_pages": document.num_pages,
        "download_only": document.download_only,
        "created_at": document.created_at.isoformat(),
    }
    if version is not None:
        data["primary_version"] = _version_dict(version)
    return data


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    body: DocumentCreate,
    team: Team = Depends(get_member_team),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    document, version = await create_document(db, team.id, user.id, body)
    return _document_dict(document, version)


@router.get("")
async def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    total = (await db.execute(
        select(func.count(Document.id)).where(Document.team_id == team.id),
    )).scalar_one()
    documents = (await db.execute(
        select(Document)
        .where(Document.team_id == team.id)
        .order_by(Document.created_at.desc())
        .limit(limit)
        .offset((page - 1) * limit),
    )).scalars().all()
    view_counts = dict((await db.execute(
        select(View.document_id, func.count(View.id))
        .where(View.document_id.in_([d.id for d in documents]))
        .group_by(View.document_id),
    )).all())
    return {
        "documents": [
            {**_document_dict(d), "views": view_counts.get(d.id, 0)} for d in documents
        ],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


@router.get("/{document_id}")
async def get_document(
    document_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    document = await get_team_resource(db, Document, document_id, team)
    versions = (await db.execute(
        select(DocumentVersion)
        .where(DocumentVersion.document_id == document.id)
        .order_by(DocumentVersion.version_number.desc()),
    )).scalars().all()
    primary = next((v for v in versions if v.is_primary), None)
    return {
        **_document_dict(document, primary),
        "versions": [_version_dict(v) for v in versions],
    }


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    document = await get_team_resource(db, Document, document_id, team)
    version_ids = select(DocumentVersion.id).where(DocumentVersion.document_id == document.id)
    room_doc_ids = select(DataroomDocument.id).where(DataroomDocument.document_id == document.id)
    await db.execute(delete(PageView).where(PageView.document_id == document.id))
    await db.execute(delete(VideoEvent).where(VideoEvent.document_id == document.id))
    await db.execute(delete(View).where(View.document_id == document.id))
    await db.execute(delete(Link).where(Link.document_id == document.id))
    await db.execute(
        delete(ViewerGroupAccessControl)
        .where(ViewerGroupAccessControl.item_id.in_(room_doc_ids)),
    )
    await db.execute(delete(DataroomDocument).where(DataroomDocument.document_id == document.id))
    await db.execute(delete(DocumentPage).where(DocumentPage.version_id.in_(version_ids)))
    await db.execute(delete(DocumentVersion).where(DocumentVersion.document_id == document.id))
    await db.delete(document)
    await db.commit()
    logger.info("Document deleted", extra={"document_id": str(document_id)})


@router.post("/{document_id}/versions", status_code=status.HTTP_201_CREATED)
async def create_version(
    document_id: UUID,
    body: DocumentVersionCreate,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    document = await get_team_resource(db, Document, document_id, team)
    version = await add_version(db, document, body)
    return _version_dict(version)


@router.get("/{document_id}/views")
async def list_document_views(
    document_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    document = await get_team_resource(db, Document, document_id, team)
    return await document_views(db, document, page, limit)


@router.get("/{document_id}/primary-version")
async def get_primary_version(
    document_id: UUID,
    team: Team = Depends(get_member_team),
    db: AsyncSession = Depends(get_db),
):
    document = await get_team_resource(db, Document, document_id, team)
    return _version_dict(await load_version(db, document.id))
