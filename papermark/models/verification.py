"""Verification ORM — one-time codes, long-term email tokens and data room sessions.

Invariants:
    - VerificationToken.identifier is "otp:{link_id}:{email}" for codes and
      "link-verification:{link_id}:{team_id}:{email}" for long-term tokens
    - Long-term tokens and session tokens are stored hashed (SHA-256 hex)
    - Expired rows are deleted when they are next looked up
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from papermark.db.base import Base, utcnow


class VerificationToken(Base):
    __tablename__ = "verification_tokens"
    __table_args__ = (Index("ix_verification_tokens_identifier", "identifier"),)

    token: Mapped[str] = mapped_column(String(200), primary_key=True)
    identifier: Mapped[str] = mapped_column(String(500), nullable=False)
    expires: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DataroomSession(Base):
    __tablename__ = "dataroom_sessions"

    token_hash: Mapped[str] = mapped_column(String(64), primary_key=True)
    link_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("links.id", ondelete="CASCADE"), nullable=False,
    )
    dataroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("datarooms.id", ondelete="CASCADE"), nullable=False,
    )
    view_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("views.id", ondelete="CASCADE"), nullable=False,
    )
    viewer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("viewers.id", ondelete="SET NULL"), nullable=True,
    )
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
