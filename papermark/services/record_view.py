"""Document Views — records a visitor opening a document link.

Invariants:
    - The link must point at the requested document (404 otherwise)
    - Previews return content but never create View rows
    - agreement_id is stored only when the visitor confirmed the link's NDA
    - custom_field_responses follow the link's field definitions, blank when missing
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.domain_types import ViewType
from papermark.core.errors import ErrorContext, ResourceNotFoundError
from papermark.core.view_payload import custom_field_responses
from papermark.models.view import View
from papermark.schemas.view import ViewRequest
from papermark.services.view_content import build_view_payload, load_version
from papermark.services.visitor_access import AccessGrant, find_or_create_viewer

logger = logging.getLogger(__name__)


def new_view(grant: AccessGrant, body, now: datetime, **fields) -> View:
    """View row populated from the grant; caller adds and commits."""
    link = grant.link
    return View(
        link_id=link.id,
        team_id=link.team_id,
        viewer_email=grant.email,
        viewer_name=grant.name,
        verified=grant.is_email_verified,
        agreement_id=(
            link.agreement_id
            if link.enable_agreement and body.has_confirmed_agreement else None
        ),
        custom_field_responses=custom_field_responses(link.custom_fields, body.custom_fields),
        viewed_at=now,
        **fields,
    )


async def record_document_view(
    db: AsyncSession,
    grant: AccessGrant,
    body: ViewRequest,
    ip_address: str | None,
    now: datetime | None = None,
) -> dict:
    now = now or datetime.now(timezone.utc)
    link = grant.link
    if link.document_id != body.document_id:
        raise ResourceNotFoundError(
            "Document", str(body.document_id), ErrorContext(link_id=str(link.id)),
        )
    version = await load_version(db, body.document_id, body.document_version_id)

    view_id = None
    if not grant.is_preview:
        viewer = None
        if grant.email:
            viewer = await find_or_create_viewer(
                db, link.team_id, grant.email, grant.is_email_verified,
            )
        view = new_view(
            grant, body, now,
            document_id=body.document_id,
            viewer_id=viewer.id if viewer else None,
            view_type=ViewType.DOCUMENT_VIEW.value,
        )
        db.add(view)
        await db.commit()
        view_id = view.id
        logger.info(
            "Document view recorded",
            extra={"link_id": str(link.id), "view_id": str(view.id)},
        )

    payload = await build_view_payload(db, link, version, body.has_pages, ip_address)
    return {
        "view_id": view_id,
        **payload,
        "verification_token": grant.verification_token,
        "is_preview": grant.is_preview,
        "is_team_member": grant.is_team_member,
    }
