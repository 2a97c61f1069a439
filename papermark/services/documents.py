"""Documents — document creation, versioning and the per-document views table.

Invariants:
    - Exactly one primary version per document after create_document/add_version
    - version_number = previous max + 1
    - The document mirrors type and num_pages of its primary version
"""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.domain_types import DocumentType, ViewType, ensure_utc
from papermark.core.view_analytics import duration_format
from papermark.models.document import Document, DocumentPage, DocumentVersion
from papermark.models.view import View
from papermark.schemas.document import DocumentCreate, DocumentVersionCreate
from papermark.services.analytics import (
    page_events_by_view, summarize_document_view, versions_by_document, video_events_by_view,
)

logger = logging.getLogger(__name__)


def _new_version(document_id: UUID, number: int, body: DocumentVersionCreate) -> DocumentVersion:
    return DocumentVersion(
        document_id=document_id,
        version_number=number,
        type=body.type,
        file=body.file,
        original_file=body.original_file,
        content_type=body.content_type,
        storage_type=body.storage_type,
        num_pages=body.num_pages if body.num_pages is not None else (len(body.pages) or None),
        length=body.length,
        has_pages=bool(body.pages),
        is_primary=True,
        is_vertical=body.is_vertical,
    )


def _add_pages(db: AsyncSession, version: DocumentVersion, body: DocumentVersionCreate) -> None:
    for number, file in enumerate(body.pages, start=1):
        db.add(DocumentPage(
            version_id=version.id, page_number=number,
            file=file, storage_type=body.storage_type,
        ))


async def create_document(
    db: AsyncSession, team_id: UUID, owner_id: UUID, body: DocumentCreate,
) -> tuple[Document, DocumentVersion]:
    document = Document(
        team_id=team_id,
        owner_id=owner_id,
        name=body.name,
        type=body.type,
        download_only=body.download_only,
    )
    db.add(document)
    await db.flush()
    version = _new_version(document.id, 1, body)
    db.add(version)
    await db.flush()
    _add_pages(db, version, body)
    document.num_pages = version.num_pages
    await db.commit()
    logger.info("Document created", extra={"document_id": str(document.id)})
    return document, version


async def add_version(
    db: AsyncSession, document: Document, body: DocumentVersionCreate,
) -> DocumentVersion:
    """New upload becomes the primary version."""
    latest = (await db.execute(
        select(func.max(DocumentVersion.version_number))
        .where(DocumentVersion.document_id == document.id),
    )).scalar_one_or_none() or 0
    await db.execute(
        update(DocumentVersion)
        .where(DocumentVersion.document_id == document.id)
        .values(is_primary=False),
    )
    version = _new_version(document.id, latest + 1, body)
    db.add(version)
    await db.flush()
    _add_pages(db, version, body)
    document.type = version.type
    document.num_pages = version.num_pages
    await db.commit()
    logger.info(
        f"Version {version.version_number} added",
        extra={"document_id": str(document.id)},
    )
    return version


async def document_views(
    db: AsyncSession, document: Document, page: int, limit: int,
) -> dict:
    """Paginated views of one document with durations and completion."""
    base = (
        select(View)
        .where(View.document_id == document.id)
        .where(View.view_type == ViewType.DOCUMENT_VIEW.value)
    )
    total = (await db.execute(
        select(func.count()).select_from(base.subquery()),
    )).scalar_one()
    views = (await db.execute(
        base.order_by(View.viewed_at.desc()).limit(limit).offset((page - 1) * limit),
    )).scalars().all()

    view_ids = [v.id for v in views]
    events = await page_events_by_view(db, view_ids)
    versions = (await versions_by_document(db, {document.id})).get(document.id, [])
    is_video = document.type == DocumentType.VIDEO
    video_events = await video_events_by_view(db, view_ids) if is_video else {}

    rows = []
    for view in views:
        summary = summarize_document_view(
            view, document, versions, events.get(view.id, []), video_events.get(view.id, []),
        )
        rows.append({
            "id": str(view.id),
            "link_id": str(view.link_id),
            "viewer_email": view.viewer_email,
            "viewer_name": view.viewer_name,
            "verified": view.verified,
            "viewed_at": ensure_utc(view.viewed_at).isoformat(),
            "downloaded_at": (
                ensure_utc(view.downloaded_at).isoformat() if view.downloaded_at else None
            ),
            "is_archived": view.is_archived,
            "agreement_id": str(view.agreement_id) if view.agreement_id else None,
            "custom_field_responses": view.custom_field_responses,
            **summary,
            "total_duration_formatted": duration_format(summary["total_duration"]),
        })
    return {
        "views": rows,
        "pagination": {"page": page, "limit": limit, "total": total},
    }

