"""Downloads — authorizes a download for a recorded view and hands out the file URL.

Invariants:
    - Rules (enforce_download) are evaluated against the primary version
    - A granted download stamps downloaded_at on the view
    - Watermark details are returned only for links with watermarking on
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from papermark.config import get_settings
from papermark.core.domain_types import LinkType
from papermark.core.enforce_download import (
    DownloadWindows, check_download_allowed, select_download_file,
)
from papermark.core.errors import ErrorContext, LinkAccessError
from papermark.models.document import Document
from papermark.models.link import Link
from papermark.models.view import View
from papermark.services.dataroom_permissions import find_room_document, link_can_download
from papermark.services.storage import resolve_file_url
from papermark.services.view_content import load_version

logger = logging.getLogger(__name__)


def configured_windows() -> DownloadWindows:
    settings = get_settings()
    return DownloadWindows(
        document_link=timedelta(minutes=settings.document_download_window_minutes),
        dataroom_link=timedelta(hours=settings.dataroom_download_window_hours),
    )


async def authorize_download(
    db: AsyncSession,
    link_id: UUID,
    view_id: UUID,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.now(timezone.utc)
    context = ErrorContext(link_id=str(link_id), view_id=str(view_id))
    view = await db.get(View, view_id)
    link = await db.get(Link, link_id)
    view_found = (
        view is not None and link is not None
        and view.link_id == link_id and view.document_id is not None
    )
    document = await db.get(Document, view.document_id) if view_found else None
    version = await load_version(db, document.id) if document else None

    allow_download = bool(link and link.allow_download)
    if view_found and link.link_type == LinkType.DATAROOM_LINK:
        room_document = await find_room_document(db, link.dataroom_id, document.id)
        allow_download = await link_can_download(db, link, room_document)

    denial = check_download_allowed(
        view_found=view_found and document is not None,
        viewed_at=view.viewed_at if view_found else None,
        link_type=link.link_type if link else LinkType.DOCUMENT_LINK,
        link_allow_download=allow_download,
        link_is_archived=bool(link and link.is_archived),
        link_expires_at=link.expires_at if link else None,
        document_download_only=bool(document and document.download_only),
        version_type=version.type if version else None,
        now=now,
        windows=configured_windows(),
    )
    if denial:
        logger.info(
            f"Download denied: {denial['reason']}",
            extra={"link_id": str(link_id), "view_id": str(view_id)},
        )
        raise LinkAccessError.from_denial(denial, context)

    view.downloaded_at = now
    await db.commit()
    logger.info("Download granted", extra={"link_id": str(link_id), "view_id": str(view_id)})

    result = {
        "download_url": resolve_file_url(select_download_file(
            version_type=version.type,
            file=version.file,
            original_file=version.original_file,
            enable_watermark=link.enable_watermark,
        )),
        "file_name": document.name,
        "watermark": None,
    }
    if link.enable_watermark:
        result["watermark"] = {
            "config": link.watermark_config,
            "viewer": {
                "email": view.viewer_email,
                "date": now.date().isoformat(),
                "time": now.strftime("%H:%M:%S"),
                "link": link.name,
                "ip_address": ip_address,
            },
        }
    return result
