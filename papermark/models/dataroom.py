"""Dataroom ORM — a folder hierarchy of documents shared through one link.

Invariants:
    - DataroomFolder.parent_id is None for root folders
    - A document appears at most once per data room
    - hierarchical_index is derived ("1", "1.2", ...) and rewritten by generate-index
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from papermark.db.base import Base, utcnow


class Dataroom(Base):
    __tablename__ = "datarooms"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    team_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teams.id", ondelete="CASCADE"), nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )


class DataroomFolder(Base):
    __tablename__ = "dataroom_folders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    dataroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("datarooms.id", ondelete="CASCADE"), nullable=False,
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("dataroom_folders.id", ondelete="CASCADE"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    order_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hierarchical_index: Mapped[str | None] = mapped_column(String(100), nullable=True)


class DataroomDocument(Base):
    __tablename__ = "dataroom_documents"
    __table_args__ = (UniqueConstraint("dataroom_id", "document_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    dataroom_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("datarooms.id", ondelete="CASCADE"), nullable=False,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("documents.id", ondelete="CASCADE"), nullable=False,
    )
    folder_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("dataroom_folders.id", ondelete="SET NULL"),
        nullable=True,
    )
    order_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hierarchical_index: Mapped[str | None] = mapped_column(String(100), nullable=True)
