"""Visitor Routes — view recording, page/video tracking and downloads.

Invariants:
    - Availability is checked first; every other gate runs in VisitorAccess
    - Email-authenticated links answer the first request with
      {"type": "email-verification"} and send the code after the response
    - Data room sessions travel only in the http-only pm_drs_{link_id} cookie
    - Webhook notifications run as background tasks
"""

import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.api.dependencies import client_ip, get_optional_user_id
from papermark.config import get_settings
from papermark.core.domain_types import ViewType
from papermark.infrastructure.database import get_db
from papermark.schemas.view import (
    DataroomViewRequest, DownloadRequest, PageViewRecord, VideoEventRecord, ViewRequest,
)
from papermark.services.dataroom_sessions import find_dataroom_session, session_cookie_name
from papermark.services.downloads import authorize_download
from papermark.services.notifications import (
    LINK_DOWNLOADED, LINK_VIEWED, notify_link_event, send_verification_email,
)
from papermark.services.record_dataroom_view import (
    DataroomViewRecorder, check_dataroom_link, grant_from_session,
)
from papermark.services.record_view import record_document_view
from papermark.services.tracking import record_page_view, record_video_event
from papermark.services.visitor_access import AccessGrant, VisitorAccess, load_available_link

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["visitors"])

EMAIL_VERIFICATION_SENT = {"type": "email-verification", "message": "Verification email sent."}


def _queue_code(background_tasks: BackgroundTasks, grant: AccessGrant, is_dataroom: bool) -> dict:
    background_tasks.add_task(send_verification_email, grant.email, grant.otp_code, is_dataroom)
    return EMAIL_VERIFICATION_SENT


@router.post("/views")
async def record_view(
    body: ViewRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user_id: UUID | None = Depends(get_optional_user_id),
):
    """Open a document link."""
    ip_address = client_ip(request)
    link = await load_available_link(db, body.link_id)
    grant = await VisitorAccess(db, ip_address).authorize(body, link, user_id)
    if grant.awaiting_verification:
        return _queue_code(background_tasks, grant, is_dataroom=False)

    result = await record_document_view(db, grant, body, ip_address)
    if result["view_id"]:
        background_tasks.add_task(notify_link_event, LINK_VIEWED, result["view_id"])
    return result


@router.post("/views-dataroom")
async def record_dataroom_view(
    body: DataroomViewRequest,
    request: Request,
    response: Response,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    user_id: UUID | None = Depends(get_optional_user_id),
):
    """Open a data room link, or a document inside it."""
    ip_address = client_ip(request)
    link = await load_available_link(db, body.link_id)
    check_dataroom_link(link, body)
    cookie_name = session_cookie_name(link.id)

    session = None
    if not body.preview:
        session = await find_dataroom_session(
            db, request.cookies.get(cookie_name), link.id, link.dataroom_id,
        )
    if session is not None:
        grant = await grant_from_session(db, link, session)
    else:
        grant = await VisitorAccess(db, ip_address).authorize(body, link, user_id)
        if grant.awaiting_verification:
            return _queue_code(background_tasks, grant, is_dataroom=True)

    result = await DataroomViewRecorder(db, grant, body, ip_address, session).record()
    if result.session_token:
        response.set_cookie(
            cookie_name,
            result.session_token,
            max_age=get_settings().dataroom_session_ttl_minutes * 60,
            httponly=True,
            secure=request.url.scheme == "https",
            samesite="lax",
        )
    view_id = result.payload["view_id"]
    if view_id and (body.view_type == ViewType.DOCUMENT_VIEW or result.session_token):
        background_tasks.add_task(notify_link_event, LINK_VIEWED, view_id)
    return result.payload


@router.post("/record-view-page")
async def record_view_page(body: PageViewRecord, db: AsyncSession = Depends(get_db)):
    await record_page_view(db, body)
    return {"message": "Page view recorded"}


@router.post("/record-video-event")
async def record_video(body: VideoEventRecord, db: AsyncSession = Depends(get_db)):
    await record_video_event(db, body)
    return {"message": "Video event recorded"}


@router.post("/links/download")
async def download(
    body: DownloadRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    result = await authorize_download(db, body.link_id, body.view_id, client_ip(request))
    background_tasks.add_task(notify_link_event, LINK_DOWNLOADED, body.view_id)
    return result
