"""Data Room Views — records visits to a data room link and to documents inside it.

Invariants:
    - A live session cookie for this link skips every gate
    - DATAROOM_VIEW creates the parent view plus a session; with a live session
      it reuses the session's view
    - DOCUMENT_VIEW always hangs off a parent DATAROOM_VIEW (created when no
      session exists) through dataroom_view_id
    - GROUP links open only documents the group can view
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.domain_types import LinkAudienceType, LinkType, ViewType
from papermark.core.errors import ErrorContext, LinkAccessError, ResourceNotFoundError
from papermark.models.link import Link
from papermark.models.user import Team
from papermark.models.view import View
from papermark.models.verification import DataroomSession
from papermark.models.viewer import Viewer
from papermark.schemas.view import DataroomViewRequest
from papermark.services.dataroom_permissions import (
    find_room_document, group_document_access, link_can_download, visible_tree,
)
from papermark.services.dataroom_sessions import create_dataroom_session
from papermark.services.record_view import new_view
from papermark.services.view_content import build_view_payload, load_version
from papermark.services.visitor_access import AccessGrant, find_or_create_viewer

logger = logging.getLogger(__name__)


@dataclass
class DataroomViewResult:
    payload: dict
    session_token: str | None = None


def check_dataroom_link(link: Link, body: DataroomViewRequest) -> None:
    if link.link_type != LinkType.DATAROOM_LINK or link.dataroom_id != body.dataroom_id:
        raise ResourceNotFoundError(
            "Dataroom", str(body.dataroom_id), ErrorContext(link_id=str(link.id)),
        )


async def grant_from_session(
    db: AsyncSession, link: Link, session: DataroomSession,
) -> AccessGrant:
    """Access carried by a live session cookie; no gate is re-run."""
    team = await db.get(Team, link.team_id)
    viewer = await db.get(Viewer, session.viewer_id) if session.viewer_id else None
    return AccessGrant(
        link=link,
        team=team,
        email=viewer.email if viewer else None,
        is_email_verified=session.verified,
    )


class DataroomViewRecorder:
    """Records one data room request for a visitor who passed the gates or holds a session."""

    def __init__(
        self,
        db: AsyncSession,
        grant: AccessGrant,
        body: DataroomViewRequest,
        ip_address: str | None,
        session: DataroomSession | None = None,
        now: datetime | None = None,
    ):
        self.db = db
        self.grant = grant
        self.link = grant.link
        self.body = body
        self.ip_address = ip_address
        self.session = session
        self.now = now or datetime.now(timezone.utc)

    async def record(self) -> DataroomViewResult:
        if self.body.view_type == ViewType.DATAROOM_VIEW:
            return await self._record_dataroom_view()
        return await self._record_document_view()

    async def _record_dataroom_view(self) -> DataroomViewResult:
        tree = await visible_tree(self.db, self.link)
        token = None
        view_id = self.session.view_id if self.session else None
        if view_id is None and not self.grant.is_preview:
            view, token = await self._open_room()
            await self.db.commit()
            view_id = view.id
        return DataroomViewResult(
            payload={
                "view_id": view_id,
                "dataroom_id": self.link.dataroom_id,
                "items": tree,
                **self._common_fields(),
            },
            session_token=token,
        )

    async def _record_document_view(self) -> DataroomViewResult:
        document_id = self.body.document_id
        room_document = await find_room_document(self.db, self.link.dataroom_id, document_id)
        if room_document is None:
            raise ResourceNotFoundError(
                "Document", str(document_id), ErrorContext(link_id=str(self.link.id)),
            )
        await self._check_group_can_view(room_document)
        version = await load_version(self.db, document_id, self.body.document_version_id)

        token = None
        view_id = None
        if not self.grant.is_preview:
            if self.session is not None:
                parent_id, viewer_id = self.session.view_id, self.session.viewer_id
            else:
                parent, token = await self._open_room()
                parent_id, viewer_id = parent.id, parent.viewer_id
            view = self._new_view(
                ViewType.DOCUMENT_VIEW,
                document_id=document_id,
                dataroom_view_id=parent_id,
                viewer_id=viewer_id,
            )
            self.db.add(view)
            await self.db.commit()
            view_id = view.id
            logger.info(
                "Data room document view recorded",
                extra={"link_id": str(self.link.id), "view_id": str(view.id)},
            )

        payload = await build_view_payload(
            self.db, self.link, version, self.body.has_pages, self.ip_address,
        )
        return DataroomViewResult(
            payload={
                "view_id": view_id,
                **payload,
                "can_download": await link_can_download(self.db, self.link, room_document),
                **self._common_fields(),
            },
            session_token=token,
        )

    async def _check_group_can_view(self, room_document) -> None:
        link = self.link
        if self.grant.is_preview:
            return
        if link.audience_type != LinkAudienceType.GROUP or not link.group_id:
            return
        control = await group_document_access(self.db, link.group_id, room_document)
        if control is None or not control.can_view:
            raise LinkAccessError(
                "Unauthorized access", "UNAUTHORIZED_ACCESS", 403,
                details={"denied_by": "group"},
                context=ErrorContext(link_id=str(link.id)),
            )

    async def _open_room(self) -> tuple[View, str]:
        """Parent DATAROOM_VIEW plus a session for it. Caller commits."""
        viewer = None
        if self.grant.email:
            viewer = await find_or_create_viewer(
                self.db, self.link.team_id, self.grant.email, self.grant.is_email_verified,
            )
        view = self._new_view(
            ViewType.DATAROOM_VIEW, viewer_id=viewer.id if viewer else None,
        )
        self.db.add(view)
        await self.db.flush()
        token, _ = await create_dataroom_session(
            self.db,
            link_id=self.link.id,
            dataroom_id=self.link.dataroom_id,
            view_id=view.id,
            viewer_id=viewer.id if viewer else None,
            ip_address=self.ip_address,
            verified=self.grant.is_email_verified,
            now=self.now,
        )
        return view, token

    def _new_view(self, view_type: ViewType, **fields) -> View:
        return new_view(
            self.grant, self.body, self.now,
            dataroom_id=self.link.dataroom_id,
            group_id=self.link.group_id,
            view_type=view_type.value,
            **fields,
        )

    def _common_fields(self) -> dict:
        return {
            "verification_token": self.grant.verification_token,
            "is_preview": self.grant.is_preview,
            "is_team_member": self.grant.is_team_member,
            "enable_screenshot_protection": self.link.enable_screenshot_protection,
        }
