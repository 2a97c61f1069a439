"""Email Verification — one-time codes and long-term verification tokens for links.

Invariants:
    - At most one live OTP per identifier "otp:{link_id}:{email}"
    - A code is single use: deleted on successful verification
    - Expired codes/tokens are deleted (and committed) before the 401 is raised
    - Issuing a code also sweeps every expired OTP row, whatever its identifier
    - Long-term tokens are stored as SHA-256 digests; the raw value leaves
      this module once, in the return value of verify_code
"""

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import and_, delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from papermark.config import get_settings
from papermark.core.domain_types import ensure_utc
from papermark.core.email_rules import normalize_email
from papermark.core.errors import ErrorContext, LinkAccessError
from papermark.infrastructure.security import generate_otp, hash_token, new_id
from papermark.models.verification import VerificationToken

logger = logging.getLogger(__name__)

REQUEST_NEW_ACCESS = "Unauthorized access. Request new access."
ACCESS_EXPIRED = "Access expired. Request new access."


def otp_identifier(link_id: UUID, email: str) -> str:
    return f"otp:{link_id}:{normalize_email(email)}"


def link_verification_identifier(link_id: UUID, team_id: UUID, email: str) -> str:
    return f"link-verification:{link_id}:{team_id}:{normalize_email(email)}"


def _verification_error(message: str, link_id: UUID) -> LinkAccessError:
    return LinkAccessError(
        message, "VERIFICATION_FAILED", 401,
        details={"reset_verification": True},
        context=ErrorContext(link_id=str(link_id)),
    )


class VerificationService:
    """Issues and checks OTP codes and long-term tokens for one link."""

    def __init__(self, db: AsyncSession, now: datetime | None = None):
        self.db = db
        self.settings = get_settings()
        self._now = now

    @property
    def now(self) -> datetime:
        return self._now or datetime.now(timezone.utc)

    async def issue_code(self, link_id: UUID, email: str) -> str:
        """Replace any pending code for this visitor with a fresh one."""
        identifier = otp_identifier(link_id, email)
        await self.db.execute(
            delete(VerificationToken)
            .where(or_(
                VerificationToken.identifier == identifier,
                and_(
                    VerificationToken.identifier.startswith("otp:"),
                    VerificationToken.expires < self.now,
                ),
            ))
            .execution_options(synchronize_session=False),
        )
        code = generate_otp()
        self.db.add(VerificationToken(
            token=code,
            identifier=identifier,
            expires=self.now + timedelta(minutes=self.settings.otp_ttl_minutes),
        ))
        await self.db.commit()
        logger.info(
            "Verification code issued", extra={"link_id": str(link_id), "email": email},
        )
        return code

    async def verify_code(
        self, link_id: UUID, team_id: UUID, email: str, code: str,
    ) -> str:
        """Consume a code and return a raw long-term token."""
        row = await self._find(code.strip(), otp_identifier(link_id, email))
        await self._consume(row, link_id)
        raw_token = new_id("email")
        self.db.add(VerificationToken(
            token=hash_token(raw_token),
            identifier=link_verification_identifier(link_id, team_id, email),
            expires=self.now + timedelta(hours=self.settings.verification_token_ttl_hours),
        ))
        await self.db.commit()
        return raw_token

    async def verify_token(
        self, link_id: UUID, team_id: UUID, email: str, token: str,
    ) -> None:
        """Check a long-term token. It stays valid until it expires."""
        row = await self._find(
            hash_token(token), link_verification_identifier(link_id, team_id, email),
        )
        if row is None:
            raise _verification_error(REQUEST_NEW_ACCESS, link_id)
        if ensure_utc(row.expires) < self.now:
            await self.db.delete(row)
            await self.db.commit()
            raise _verification_error(ACCESS_EXPIRED, link_id)

    async def _find(self, token: str, identifier: str) -> VerificationToken | None:
        result = await self.db.execute(
            select(VerificationToken)
            .where(VerificationToken.token == token)
            .where(VerificationToken.identifier == identifier),
        )
        return result.scalar_one_or_none()

    async def _consume(self, row: VerificationToken | None, link_id: UUID) -> None:
        if row is None:
            raise _verification_error(REQUEST_NEW_ACCESS, link_id)
        expired = ensure_utc(row.expires) < self.now
        await self.db.delete(row)
        await self.db.commit()
        if expired:
            raise _verification_error(ACCESS_EXPIRED, link_id)
