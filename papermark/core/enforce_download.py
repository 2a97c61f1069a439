"""Download Enforcement — decides whether a recorded view may download its document.

Invariants:
    - Pure: callers pass the view's timestamp, the link flags and `now`
    - Rules run in a fixed order, first denial wins
    - Every denial is 403 except a missing view (404); the visitor-facing
      message is deliberately the same for all of them
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from papermark.core.domain_types import DocumentType, LinkType, ensure_utc

DOWNLOAD_ERROR_MESSAGE = "Error downloading"


@dataclass
class DownloadWindows:
    """How long after opening a link a download is still honoured."""
    document_link: timedelta = timedelta(minutes=30)
    dataroom_link: timedelta = timedelta(hours=23)

    def for_link_type(self, link_type: str) -> timedelta:
        if link_type == LinkType.DATAROOM_LINK:
            return self.dataroom_link
        return self.document_link


def _deny(reason: str, http_status: int = 403) -> dict:
    return {
        "status": "error",
        "error_code": "DOWNLOAD_NOT_ALLOWED" if http_status == 403 else "VIEW_NOT_FOUND",
        "message": DOWNLOAD_ERROR_MESSAGE,
        "http_status": http_status,
        "reason": reason,
    }


def check_download_allowed(
    *,
    view_found: bool,
    viewed_at: datetime | None,
    link_type: str,
    link_allow_download: bool,
    link_is_archived: bool,
    link_expires_at: datetime | None,
    document_download_only: bool,
    version_type: str | None,
    now: datetime,
    windows: DownloadWindows | None = None,
) -> dict | None:
    """Return a denial dict, or None when the download may proceed."""
    windows = windows or DownloadWindows()
    now = ensure_utc(now)
    if not view_found:
        return _deny("view_not_found", 404)
    if not document_download_only and not link_allow_download:
        return _deny("download_disabled")
    if link_is_archived:
        return _deny("link_archived")
    expires_at = ensure_utc(link_expires_at)
    if expires_at is not None and expires_at < now:
        return _deny("link_expired")
    if version_type == DocumentType.NOTION:
        return _deny("notion_document")
    opened = ensure_utc(viewed_at)
    if opened is None or opened < now - windows.for_link_type(link_type):
        return _deny("download_window_elapsed")
    return None


def select_download_file(
    *,
    version_type: str | None,
    file: str,
    original_file: str | None,
    enable_watermark: bool,
) -> str:
    """Watermarked PDFs come from the processed file; otherwise prefer the original upload."""
    if enable_watermark and version_type == DocumentType.PDF:
        return file
    return original_file or file
