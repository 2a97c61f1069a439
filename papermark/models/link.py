"""Link ORM — shareable access points with their access-control settings.

Invariants:
    - link_type DOCUMENT_LINK has document_id set; DATAROOM_LINK has dataroom_id set
    - password is Fernet-encrypted (or a legacy bcrypt hash), never plaintext
    - allow_list/deny_list/custom_fields are JSON lists
    - group_id only meaningful when audience_type == GROUP
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Boolean, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from papermark.db.base import Base, utcnow


class Agreement(Base):
    """NDA text a visitor confirms before viewing."""
    __tablename__ = "agreements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )


class Link(Base):
    __tablename__ = "links"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    link_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="DOCUMENT_LINK",
    )
    document_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=True,
    )
    dataroom_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("datarooms.id", ondelete="CASCADE"), nullable=True,
    )
    password: Mapped[str | None] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    email_protected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    email_authenticated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_download: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    allow_list: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    deny_list: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enable_notification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    enable_agreement: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    agreement_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("agreements.id", ondelete="SET NULL"), nullable=True,
    )
    enable_watermark: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    watermark_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    enable_screenshot_protection: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    audience_type: Mapped[str] = mapped_column(String(20), nullable=False, default="GENERAL")
    group_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("viewer_groups.id", ondelete="SET NULL"), nullable=True,
    )
    custom_fields: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
