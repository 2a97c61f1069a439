"""Visitor Access — runs a link's gates against a visitor submission and the
email-verification handshake that follows them.

Invariants:
    - Availability (missing/archived/expired) is checked before anything else
    - Team members previewing with a valid access token skip every gate
    - Gates run before any OTP is issued: blocked visitors never get a code
    - A request carrying neither code nor token on an email-authenticated link
      yields an OTP and no access
    - Viewer rows are unique per (team, email); verified only ever flips to True

Design Decisions:
    - Returns an AccessGrant rather than a response so document and data room
      views share one gate implementation
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.core.domain_types import LinkAudienceType
from papermark.core.email_rules import normalize_email
from papermark.core.enforce_link_access import (
    GroupAudience, VisitorSubmission, check_link_available, validate_link_access,
)
from papermark.core.errors import (
    AuthenticationError, ErrorContext, LinkAccessError, ResourceNotFoundError,
)
from papermark.infrastructure.security import check_link_password
from papermark.models.link import Link
from papermark.models.user import Team, UserTeam
from papermark.models.viewer import Viewer, ViewerGroup, ViewerGroupMembership
from papermark.schemas.view import VisitorCredentials
from papermark.services.rate_limits import (
    SEND_OTP, VERIFY_EMAIL, VERIFY_OTP, enforce_rate_limit,
)
from papermark.services.verification import VerificationService

logger = logging.getLogger(__name__)


@dataclass
class AccessGrant:
    link: Link
    team: Team
    email: str | None = None
    name: str | None = None
    is_email_verified: bool = False
    verification_token: str | None = None
    is_preview: bool = False
    is_team_member: bool = False
    otp_code: str | None = None

    @property
    def awaiting_verification(self) -> bool:
        return self.otp_code is not None


async def load_available_link(
    db: AsyncSession, link_id: UUID, now: datetime | None = None,
) -> Link:
    """Fetch the link or raise the availability denial (404/410)."""
    link = await db.get(Link, link_id)
    denial = check_link_available(link, now or datetime.now(timezone.utc))
    if denial:
        raise LinkAccessError.from_denial(denial, ErrorContext(link_id=str(link_id)))
    return link


async def load_group_audience(
    db: AsyncSession, group_id: UUID | None,
) -> GroupAudience | None:
    if group_id is None:
        return None
    group = await db.get(ViewerGroup, group_id)
    if group is None:
        return None
    result = await db.execute(
        select(Viewer.email)
        .join(ViewerGroupMembership, ViewerGroupMembership.viewer_id == Viewer.id)
        .where(ViewerGroupMembership.group_id == group_id),
    )
    return GroupAudience(
        allow_all=group.allow_all,
        domains=list(group.domains or []),
        member_emails=list(result.scalars().all()),
    )


async def find_or_create_viewer(
    db: AsyncSession, team_id: UUID, email: str, verified: bool,
) -> Viewer:
    """Caller commits."""
    email = normalize_email(email)
    result = await db.execute(
        select(Viewer).where(Viewer.team_id == team_id).where(Viewer.email == email),
    )
    viewer = result.scalar_one_or_none()
    if viewer is None:
        viewer = Viewer(team_id=team_id, email=email, verified=verified)
        db.add(viewer)
        await db.flush()
    elif verified and not viewer.verified:
        viewer.verified = True
    return viewer


class VisitorAccess:
    """Decides whether a visitor submission opens a link."""

    def __init__(self, db: AsyncSession, client_ip: str, now: datetime | None = None):
        self.db = db
        self.client_ip = client_ip
        self.now = now or datetime.now(timezone.utc)

    async def authorize(
        self,
        body: VisitorCredentials,
        link: Link,
        current_user_id: UUID | None = None,
    ) -> AccessGrant:
        team = await self.db.get(Team, link.team_id)
        if team is None:
            raise ResourceNotFoundError("Team", str(link.team_id))
        email = normalize_email(body.email) or None
        grant = AccessGrant(link=link, team=team, email=email, name=body.name)

        if body.preview:
            await self._require_team_member(link, current_user_id)
            grant.is_preview = True
            grant.is_team_member = True
            grant.is_email_verified = True
            return grant

        group = None
        if link.audience_type == LinkAudienceType.GROUP:
            group = await load_group_audience(self.db, link.group_id)
        submission = VisitorSubmission(
            email=email,
            password=body.password,
            password_valid=check_link_password(body.password, link.password),
            has_confirmed_agreement=body.has_confirmed_agreement,
        )
        denial = validate_link_access(link, submission, team.global_block_list, group)
        if denial:
            logger.info(
                f"Link access denied: {denial['error_code']}",
                extra={"link_id": str(link.id), "error_code": denial["error_code"]},
            )
            raise LinkAccessError.from_denial(denial, ErrorContext(link_id=str(link.id)))

        if link.email_authenticated and email:
            await self._verify_email(grant, body)
        return grant

    async def _require_team_member(self, link: Link, user_id: UUID | None) -> None:
        if user_id is None:
            raise AuthenticationError("You need to be logged in to preview the link.")
        result = await self.db.execute(
            select(UserTeam)
            .where(UserTeam.user_id == user_id)
            .where(UserTeam.team_id == link.team_id),
        )
        if result.scalar_one_or_none() is None:
            raise AuthenticationError("You need to be a team member to preview the link.")

    async def _verify_email(self, grant: AccessGrant, body: VisitorCredentials) -> None:
        link = grant.link
        context = ErrorContext(link_id=str(link.id))
        verification = VerificationService(self.db, self.now)
        if body.code:
            enforce_rate_limit(VERIFY_OTP, self.client_ip, context)
            grant.verification_token = await verification.verify_code(
                link.id, link.team_id, grant.email, body.code,
            )
            grant.is_email_verified = True
        elif body.token:
            enforce_rate_limit(VERIFY_EMAIL, self.client_ip, context)
            await verification.verify_token(link.id, link.team_id, grant.email, body.token)
            grant.is_email_verified = True
        else:
            enforce_rate_limit(SEND_OTP, self.client_ip, context)
            grant.otp_code = await verification.issue_code(link.id, grant.email)
