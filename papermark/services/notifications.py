"""Notifications — background delivery of verification emails and team webhooks.

Invariants:
    - Runs after the response (FastAPI BackgroundTasks) with its own DB session
    - Delivery failures are logged with context and never reach the visitor
    - Webhooks fire only when the link has enable_notification and the team
      has a webhook_url
"""

import logging
from uuid import UUID

import papermark.infrastructure.database as db_module
from papermark.core.errors import ExternalServiceError
from papermark.infrastructure.email_client import get_email_client
from papermark.infrastructure.webhook_client import get_webhook_client
from papermark.models.document import Document
from papermark.models.link import Link
from papermark.models.user import Team
from papermark.models.view import View

logger = logging.getLogger(__name__)

LINK_VIEWED = "link.viewed"
LINK_DOWNLOADED = "link.downloaded"


async def send_verification_email(email: str, code: str, is_dataroom: bool = False) -> None:
    try:
        await get_email_client().send_otp(email, code, is_dataroom)
    except ExternalServiceError as e:
        logger.error(
            f"Verification email failed: {e.message}",
            extra={"error_code": e.code, "email": email},
        )


async def notify_link_event(event: str, view_id: UUID) -> None:
    """Post `event` for a view to the owning team's webhook."""
    async with db_module.db_manager.session() as db:
        view = await db.get(View, view_id)
        if view is None:
            logger.warning("Notification for unknown view", extra={"view_id": str(view_id)})
            return
        link = await db.get(Link, view.link_id)
        team = await db.get(Team, view.team_id)
        document = await db.get(Document, view.document_id) if view.document_id else None

    if link is None or not link.enable_notification or team is None or not team.webhook_url:
        return
    payload = {
        "view_id": str(view.id),
        "link_id": str(link.id),
        "link_name": link.name,
        "document_id": str(document.id) if document else None,
        "document_name": document.name if document else None,
        "dataroom_id": str(view.dataroom_id) if view.dataroom_id else None,
        "viewer_email": view.viewer_email,
        "viewed_at": view.viewed_at.isoformat(),
        "downloaded_at": view.downloaded_at.isoformat() if view.downloaded_at else None,
    }
    try:
        await get_webhook_client().deliver(team.webhook_url, event, payload)
    except ExternalServiceError as e:
        logger.error(
            f"Webhook delivery failed: {e.message}",
            extra={"view_id": str(view_id), "team_id": str(team.id), "error_code": e.code},
        )
