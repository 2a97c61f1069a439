"""Initial schema — teams, documents, links, views, data rooms, viewer groups, verification.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), primary_key=True)


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True),
        sa.ForeignKey(f"{target}.id", ondelete=ondelete), nullable=nullable,
    )


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _flag(name: str, default: bool) -> sa.Column:
    return sa.Column(
        name, sa.Boolean, nullable=False, server_default=sa.true() if default else sa.false(),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("password_hash", sa.String(100), nullable=True),
        _created_at(),
    )
    op.create_table(
        "teams",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("plan", sa.String(30), nullable=False, server_default="free"),
        sa.Column("global_block_list", sa.JSON, nullable=False),
        sa.Column("webhook_url", sa.String(2000), nullable=True),
        _created_at(),
    )
    op.create_table(
        "user_teams",
        _id(),
        _fk("user_id", "users"),
        _fk("team_id", "teams"),
        sa.Column("role", sa.String(20), nullable=False, server_default="MEMBER"),
        _created_at(),
        sa.UniqueConstraint("user_id", "team_id"),
    )

    op.create_table(
        "documents",
        _id(),
        _fk("team_id", "teams"),
        _fk("owner_id", "users", nullable=True, ondelete="SET NULL"),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="pdf"),
        sa.Column("num_pages", sa.Integer, nullable=True),
        _flag("download_only", False),
        _created_at(),
    )
    op.create_table(
        "document_versions",
        _id(),
        _fk("document_id", "documents"),
        sa.Column("version_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("type", sa.String(20), nullable=False, server_default="pdf"),
        sa.Column("file", sa.Text, nullable=False),
        sa.Column("original_file", sa.Text, nullable=True),
        sa.Column("content_type", sa.String(200), nullable=True),
        sa.Column("storage_type", sa.String(20), nullable=False, server_default="S3_PATH"),
        sa.Column("num_pages", sa.Integer, nullable=True),
        sa.Column("length", sa.Integer, nullable=True),
        _flag("has_pages", False),
        _flag("is_primary", True),
        _flag("is_vertical", False),
        _created_at(),
        sa.UniqueConstraint("document_id", "version_number"),
    )
    op.create_table(
        "document_pages",
        _id(),
        _fk("version_id", "document_versions"),
        sa.Column("page_number", sa.Integer, nullable=False),
        sa.Column("file", sa.Text, nullable=False),
        sa.Column("storage_type", sa.String(20), nullable=False, server_default="S3_PATH"),
        sa.UniqueConstraint("version_id", "page_number"),
    )
    op.create_table(
        "agreements",
        _id(),
        _fk("team_id", "teams"),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        _created_at(),
    )

    op.create_table(
        "datarooms",
        _id(),
        _fk("team_id", "teams"),
        sa.Column("name", sa.String(200), nullable=False),
        _created_at(),
    )
    op.create_table(
        "dataroom_folders",
        _id(),
        _fk("dataroom_id", "datarooms"),
        _fk("parent_id", "dataroom_folders", nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("order_index", sa.Integer, nullable=True),
        sa.Column("hierarchical_index", sa.String(100), nullable=True),
    )
    op.create_table(
        "dataroom_documents",
        _id(),
        _fk("dataroom_id", "datarooms"),
        _fk("document_id", "documents"),
        _fk("folder_id", "dataroom_folders", nullable=True, ondelete="SET NULL"),
        sa.Column("order_index", sa.Integer, nullable=True),
        sa.Column("hierarchical_index", sa.String(100), nullable=True),
        sa.UniqueConstraint("dataroom_id", "document_id"),
    )

    op.create_table(
        "viewers",
        _id(),
        _fk("team_id", "teams"),
        sa.Column("email", sa.String(320), nullable=False),
        _flag("verified", False),
        _created_at(),
        sa.UniqueConstraint("team_id", "email"),
    )
    op.create_table(
        "viewer_groups",
        _id(),
        _fk("team_id", "teams"),
        _fk("dataroom_id", "datarooms"),
        sa.Column("name", sa.String(200), nullable=False),
        _flag("allow_all", False),
        sa.Column("domains", sa.JSON, nullable=False),
        _created_at(),
    )
    op.create_table(
        "viewer_group_memberships",
        _id(),
        _fk("group_id", "viewer_groups"),
        _fk("viewer_id", "viewers"),
        sa.UniqueConstraint("group_id", "viewer_id"),
    )
    op.create_table(
        "viewer_group_access_controls",
        _id(),
        _fk("group_id", "viewer_groups"),
        sa.Column("item_id", UUID(as_uuid=True), nullable=False),
        sa.Column("item_type", sa.String(30), nullable=False),
        _flag("can_view", True),
        _flag("can_download", False),
        sa.UniqueConstraint("group_id", "item_id"),
    )

    op.create_table(
        "links",
        _id(),
        _fk("team_id", "teams"),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("link_type", sa.String(20), nullable=False, server_default="DOCUMENT_LINK"),
        _fk("document_id", "documents", nullable=True),
        _fk("dataroom_id", "datarooms", nullable=True),
        sa.Column("password", sa.Text, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _flag("email_protected", True),
        _flag("email_authenticated", False),
        _flag("allow_download", False),
        sa.Column("allow_list", sa.JSON, nullable=False),
        sa.Column("deny_list", sa.JSON, nullable=False),
        _flag("is_archived", False),
        _flag("enable_notification", True),
        _flag("enable_agreement", False),
        _fk("agreement_id", "agreements", nullable=True, ondelete="SET NULL"),
        _flag("enable_watermark", False),
        sa.Column("watermark_config", sa.JSON, nullable=True),
        _flag("enable_screenshot_protection", False),
        sa.Column("audience_type", sa.String(20), nullable=False, server_default="GENERAL"),
        _fk("group_id", "viewer_groups", nullable=True, ondelete="SET NULL"),
        sa.Column("custom_fields", sa.JSON, nullable=False),
        _created_at(),
    )

    op.create_table(
        "views",
        _id(),
        _fk("link_id", "links"),
        _fk("team_id", "teams"),
        _fk("document_id", "documents", nullable=True),
        _fk("dataroom_id", "datarooms", nullable=True),
        _fk("dataroom_view_id", "views", nullable=True, ondelete="SET NULL"),
        _fk("viewer_id", "viewers", nullable=True, ondelete="SET NULL"),
        sa.Column("viewer_email", sa.String(320), nullable=True),
        sa.Column("viewer_name", sa.String(200), nullable=True),
        _fk("group_id", "viewer_groups", nullable=True, ondelete="SET NULL"),
        _flag("verified", False),
        sa.Column("view_type", sa.String(20), nullable=False, server_default="DOCUMENT_VIEW"),
        _fk("agreement_id", "agreements", nullable=True, ondelete="SET NULL"),
        sa.Column("custom_field_responses", sa.JSON, nullable=True),
        _flag("is_archived", False),
        _created_at("viewed_at"),
        sa.Column("downloaded_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_views_team_viewed_at", "views", ["team_id", "viewed_at"])
    op.create_index("ix_views_link_id", "views", ["link_id"])

    op.create_table(
        "page_views",
        _id(),
        _fk("view_id", "views"),
        _fk("link_id", "links"),
        _fk("document_id", "documents"),
        sa.Column("version_number", sa.Integer, nullable=False, server_default="1"),
        sa.Column("page_number", sa.Integer, nullable=False),
        sa.Column("duration_ms", sa.Integer, nullable=False, server_default="0"),
        _created_at("recorded_at"),
    )
    op.create_index("ix_page_views_view_id", "page_views", ["view_id"])

    op.create_table(
        "video_events",
        _id(),
        _fk("view_id", "views"),
        _fk("document_id", "documents"),
        sa.Column("event_type", sa.String(30), nullable=False),
        sa.Column("start_time", sa.Float, nullable=False, server_default="0"),
        sa.Column("end_time", sa.Float, nullable=False, server_default="0"),
        _created_at("recorded_at"),
    )
    op.create_index("ix_video_events_view_id", "video_events", ["view_id"])

    op.create_table(
        "verification_tokens",
        sa.Column("token", sa.String(200), primary_key=True),
        sa.Column("identifier", sa.String(500), nullable=False),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_verification_tokens_identifier", "verification_tokens", ["identifier"],
    )

    op.create_table(
        "dataroom_sessions",
        sa.Column("token_hash", sa.String(64), primary_key=True),
        _fk("link_id", "links"),
        _fk("dataroom_id", "datarooms"),
        _fk("view_id", "views"),
        _fk("viewer_id", "viewers", nullable=True, ondelete="SET NULL"),
        sa.Column("ip_address", sa.String(64), nullable=True),
        _flag("verified", False),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("dataroom_sessions")
    op.drop_index("ix_verification_tokens_identifier", table_name="verification_tokens")
    op.drop_table("verification_tokens")
    op.drop_index("ix_video_events_view_id", table_name="video_events")
    op.drop_table("video_events")
    op.drop_index("ix_page_views_view_id", table_name="page_views")
    op.drop_table("page_views")
    op.drop_index("ix_views_link_id", table_name="views")
    op.drop_index("ix_views_team_viewed_at", table_name="views")
    op.drop_table("views")
    op.drop_table("links")
    op.drop_table("viewer_group_access_controls")
    op.drop_table("viewer_group_memberships")
    op.drop_table("viewer_groups")
    op.drop_table("viewers")
    op.drop_table("dataroom_documents")
    op.drop_table("dataroom_folders")
    op.drop_table("datarooms")
    op.drop_table("agreements")
    op.drop_table("document_pages")
    op.drop_table("document_versions")
    op.drop_table("documents")
    op.drop_table("user_teams")
    op.drop_table("teams")
    op.drop_table("users")
