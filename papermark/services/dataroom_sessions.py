"""Data Room Sessions — cookie-backed sessions that let a visitor browse a room
without re-entering credentials for every document.

Invariants:
    - Cookie name is "pm_drs_{link_id}"; its value is the raw session token
    - Only the SHA-256 digest of the token is stored
    - A session is valid only for the link and data room it was created for,
      and only until expires_at
    - Expired sessions are deleted when presented, and swept for the link
      whenever a new session is created
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.config import get_settings
from papermark.core.domain_types import ensure_utc
from papermark.infrastructure.security import hash_token, new_id
from papermark.models.verification import DataroomSession

logger = logging.getLogger(__name__)


def session_cookie_name(link_id: UUID) -> str:
    return f"pm_drs_{link_id}"


async def create_dataroom_session(
    db: AsyncSession,
    *,
    link_id: UUID,
    dataroom_id: UUID,
    view_id: UUID,
    viewer_id: UUID | None,
    ip_address: str | None,
    verified: bool,
    now: datetime | None = None,
) -> tuple[str, DataroomSession]:
    """Persist a new session and return (raw_token, row). Caller commits."""
    now = now or datetime.now(timezone.utc)
    await db.execute(
        delete(DataroomSession)
        .where(DataroomSession.link_id == link_id)
        .where(DataroomSession.expires_at < now)
        .execution_options(synchronize_session=False),
    )
    raw_token = new_id("drs")
    session = DataroomSession(
        token_hash=hash_token(raw_token),
        link_id=link_id,
        dataroom_id=dataroom_id,
        view_id=view_id,
        viewer_id=viewer_id,
        ip_address=ip_address,
        verified=verified,
        expires_at=now + timedelta(minutes=get_settings().dataroom_session_ttl_minutes),
    )
    db.add(session)
    return raw_token, session


async def find_dataroom_session(
    db: AsyncSession,
    raw_token: str | None,
    link_id: UUID,
    dataroom_id: UUID,
    now: datetime | None = None,
) -> DataroomSession | None:
    """Return the live session for this cookie, or None."""
    if not raw_token:
        return None
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        select(DataroomSession).where(DataroomSession.token_hash == hash_token(raw_token)),
    )
    session = result.scalar_one_or_none()
    if session is None:
        return None
    if session.link_id != link_id or session.dataroom_id != dataroom_id:
        logger.warning(
            "Data room session presented for another link",
            extra={"link_id": str(link_id)},
        )
        return None
    if ensure_utc(session.expires_at) < now:
        await db.delete(session)
        await db.commit()
        return None
    return session
