"""Page & Video Tracking — stores the per-page durations and video events a
viewer's client reports during a view.

Invariants:
    - Events attach only to an existing view of the same link and document
    - Archived views still accept events; they are excluded at query time
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.errors import ErrorContext, ResourceNotFoundError, ValidationFailedError
from papermark.models.view import PageView, VideoEvent, View
from papermark.schemas.view import PageViewRecord, VideoEventRecord

logger = logging.getLogger(__name__)


async def _load_view(db: AsyncSession, view_id, document_id) -> View:
    view = await db.get(View, view_id)
    if view is None:
        raise ResourceNotFoundError("View", str(view_id))
    if view.document_id != document_id:
        raise ValidationFailedError(
            "View does not belong to this document", "document_id",
            ErrorContext(view_id=str(view_id)),
        )
    return view


async def record_page_view(db: AsyncSession, body: PageViewRecord) -> PageView:
    view = await _load_view(db, body.view_id, body.document_id)
    if view.link_id != body.link_id:
        raise ValidationFailedError(
            "View does not belong to this link", "link_id",
            ErrorContext(view_id=str(view.id)),
        )
    row = PageView(
        view_id=view.id,
        link_id=body.link_id,
        document_id=body.document_id,
        version_number=body.version_number,
        page_number=body.page_number,
        duration_ms=body.duration_ms,
    )
    db.add(row)
    await db.commit()
    return row


async def record_video_event(db: AsyncSession, body: VideoEventRecord) -> VideoEvent:
    view = await _load_view(db, body.view_id, body.document_id)
    row = VideoEvent(
        view_id=view.id,
        document_id=body.document_id,
        event_type=body.event_type,
        start_time=body.start_time,
        end_time=body.end_time,
    )
    db.add(row)
    await db.commit()
    logger.debug("Video event recorded", extra={"view_id": str(view.id)})
    return row
