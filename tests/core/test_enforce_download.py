"""Download Enforcement — tests for the download permission rules.

Tests cover:
    - missing view is 404, every other denial 403 with one visitor message
    - download_only documents bypass the link's allow_download flag
    - archived/expired links, notion documents and elapsed windows are denied
    - select_download_file prefers the original upload unless watermarking a PDF
"""

from datetime import datetime, timedelta, timezone

from papermark.core.enforce_download import (
    DOWNLOAD_ERROR_MESSAGE,
    DownloadWindows,
    check_download_allowed,
    select_download_file,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _check(**overrides):
    params = dict(
        view_found=True,
        viewed_at=NOW - timedelta(minutes=5),
        link_type="DOCUMENT_LINK",
        link_allow_download=True,
        link_is_archived=False,
        link_expires_at=None,
        document_download_only=False,
        version_type="pdf",
        now=NOW,
    )
    params.update(overrides)
    return check_download_allowed(**params)


# ─── check_download_allowed ──────────────────────────────────────

def test_allowed_download_returns_none():
    assert _check() is None


def test_missing_view_is_404():
    denial = _check(view_found=False)
    assert denial["http_status"] == 404
    assert denial["message"] == DOWNLOAD_ERROR_MESSAGE


def test_disabled_download_denied():
    denial = _check(link_allow_download=False)
    assert denial["http_status"] == 403
    assert denial["reason"] == "download_disabled"


def test_download_only_document_overrides_link_flag():
    assert _check(link_allow_download=False, document_download_only=True) is None


def test_archived_link_denied():
    assert _check(link_is_archived=True)["reason"] == "link_archived"


def test_expired_link_denied():
    assert _check(link_expires_at=NOW - timedelta(seconds=1))["reason"] == "link_expired"


def test_notion_document_denied():
    assert _check(version_type="notion")["reason"] == "notion_document"


def test_document_link_window_is_30_minutes():
    assert _check(viewed_at=NOW - timedelta(minutes=29)) is None
    denial = _check(viewed_at=NOW - timedelta(minutes=31))
    assert denial["reason"] == "download_window_elapsed"


def test_dataroom_link_window_is_23_hours():
    assert _check(link_type="DATAROOM_LINK", viewed_at=NOW - timedelta(hours=22)) is None
    denial = _check(link_type="DATAROOM_LINK", viewed_at=NOW - timedelta(hours=24))
    assert denial["reason"] == "download_window_elapsed"


def test_custom_windows_respected():
    windows = DownloadWindows(document_link=timedelta(minutes=1))
    denial = _check(viewed_at=NOW - timedelta(minutes=2), windows=windows)
    assert denial["reason"] == "download_window_elapsed"


def test_naive_viewed_at_treated_as_utc():
    assert _check(viewed_at=(NOW - timedelta(minutes=5)).replace(tzinfo=None)) is None


# ─── select_download_file ───────────────────────────────────────

def test_original_file_preferred():
    assert select_download_file(
        version_type="docs", file="converted.pdf", original_file="orig.docx",
        enable_watermark=False,
    ) == "orig.docx"


def test_watermarked_pdf_uses_processed_file():
    assert select_download_file(
        version_type="pdf", file="processed.pdf", original_file="orig.pdf",
        enable_watermark=True,
    ) == "processed.pdf"


def test_falls_back_to_file_without_original():
    assert select_download_file(
        version_type="image", file="img.png", original_file=None,
        enable_watermark=False,
    ) == "img.png"
