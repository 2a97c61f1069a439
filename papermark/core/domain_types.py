"""Domain Types — enums and datetime helpers shared across the codebase.

Invariants:
    - All valid states encoded as str Enums, no raw string matching in core
    - ensure_utc() is the only place naive datetimes are interpreted
"""

from datetime import datetime, timezone
from enum import Enum


# ─── Enums ───────────────────────────────────────────────────────

class LinkType(str, Enum):
    """What a link points at."""
    DOCUMENT_LINK = "DOCUMENT_LINK"
    DATAROOM_LINK = "DATAROOM_LINK"


class ViewType(str, Enum):
    """DATAROOM_VIEW is the parent visit; DOCUMENT_VIEW opens one document."""
    DOCUMENT_VIEW = "DOCUMENT_VIEW"
    DATAROOM_VIEW = "DATAROOM_VIEW"


class ItemType(str, Enum):
    """Data room items that carry viewer-group access controls."""
    DATAROOM_DOCUMENT = "DATAROOM_DOCUMENT"
    DATAROOM_FOLDER = "DATAROOM_FOLDER"


class LinkAudienceType(str, Enum):
    """GENERAL links are open to anyone passing the gates; GROUP links to group members."""
    GENERAL = "GENERAL"
    GROUP = "GROUP"


class DocumentType(str, Enum):
    PDF = "pdf"
    IMAGE = "image"
    VIDEO = "video"
    SHEET = "sheet"
    DOCS = "docs"
    SLIDES = "slides"
    ZIP = "zip"
    NOTION = "notion"
    URL = "url"


class TeamRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    MEMBER = "MEMBER"


class TeamPlan(str, Enum):
    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"
    DATAROOMS = "datarooms"


class AnalyticsInterval(str, Enum):
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"
    CUSTOM = "custom"


class AnalyticsType(str, Enum):
    OVERVIEW = "overview"
    LINKS = "links"
    DOCUMENTS = "documents"
    VISITORS = "visitors"
    VIEWS = "views"


# Document types whose stored file is handed to the viewer directly
DIRECT_FILE_TYPES = frozenset({
    DocumentType.PDF, DocumentType.IMAGE, DocumentType.VIDEO, DocumentType.ZIP,
})

# Video events that count toward watch time
WATCH_EVENT_TYPES = frozenset({"played", "muted", "unmuted", "rate_changed"})


def ensure_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes (SQLite round-trips) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
