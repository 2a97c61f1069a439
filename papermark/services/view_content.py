"""View Content — loads the version a visitor sees and shapes the response payload."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.errors import ResourceNotFoundError
from papermark.core.view_payload import content_fields, watermark_fields
from papermark.models.document import DocumentPage, DocumentVersion
from papermark.models.link import Link
from papermark.services.storage import resolve_file_url


async def load_version(
    db: AsyncSession, document_id: UUID, version_id: UUID | None = None,
) -> DocumentVersion:
    """The requested version when given, else the primary one."""
    query = select(DocumentVersion).where(DocumentVersion.document_id == document_id)
    if version_id:
        query = query.where(DocumentVersion.id == version_id)
    else:
        query = query.where(DocumentVersion.is_primary.is_(True))
    result = await db.execute(query.order_by(DocumentVersion.version_number.desc()))
    version = result.scalars().first()
    if version is None:
        raise ResourceNotFoundError("DocumentVersion", str(version_id or document_id))
    return version


async def load_pages(db: AsyncSession, version_id: UUID) -> list[dict]:
    result = await db.execute(
        select(DocumentPage)
        .where(DocumentPage.version_id == version_id)
        .order_by(DocumentPage.page_number),
    )
    return [
        {"page_number": p.page_number, "file": resolve_file_url(p.file)}
        for p in result.scalars().all()
    ]


async def build_view_payload(
    db: AsyncSession,
    link: Link,
    version: DocumentVersion,
    has_pages: bool | None,
    ip_address: str | None,
) -> dict:
    """Content, watermark and display flags for a document view response."""
    paged = version.has_pages if has_pages is None else (has_pages and version.has_pages)
    pages = await load_pages(db, version.id) if paged else None
    return {
        **content_fields(
            has_pages=paged,
            pages=pages,
            version_type=version.type,
            file_url=resolve_file_url(version.file),
        ),
        **watermark_fields(link.enable_watermark, link.watermark_config, ip_address),
        "version_number": version.version_number,
        "is_vertical": version.is_vertical,
        "screenshot_protection": link.enable_screenshot_protection,
    }
