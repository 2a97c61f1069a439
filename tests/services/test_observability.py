"""Structured Logging — formatter output, email masking and idempotent setup.

Tests cover:
    - JSON lines include only the context extras that are set
    - visitor emails are masked by the handler filter
    - setup_logging replaces its own handler instead of stacking another
"""

import json
import logging

from papermark.infrastructure.observability import (
    EmailMaskFilter, JSONFormatter, mask_email, setup_logging,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "papermark.test", logging.INFO, __file__, 1, "View recorded", None, None,
    )
    record.__dict__.update(extra)
    return record


# ─── mask_email ─────────────────────────────────────────────────

def test_mask_email_keeps_domain():
    assert mask_email("jane@acme.com") == "j***@acme.com"


def test_mask_email_without_at():
    assert mask_email("jane") == "***"


# ─── JSONFormatter ──────────────────────────────────────────────

def test_json_line_carries_set_context_only():
    line = json.loads(JSONFormatter().format(_record(link_id="l1", attempt=2, view_id=None)))
    assert line["message"] == "View recorded"
    assert line["level"] == "INFO"
    assert line["link_id"] == "l1"
    assert line["attempt"] == 2
    assert "view_id" not in line


def test_email_filter_masks_before_format():
    record = _record(email="lp@fund.vc")
    assert EmailMaskFilter().filter(record) is True
    assert json.loads(JSONFormatter().format(record))["email"] == "l***@fund.vc"


# ─── setup_logging ──────────────────────────────────────────────

def test_setup_logging_is_idempotent():
    root = logging.getLogger()
    level = root.level
    try:
        setup_logging("DEBUG", "json")
        setup_logging("INFO", "text")
        ours = [h for h in root.handlers if h.get_name() == "papermark"]
        assert len(ours) == 1
        assert root.level == logging.INFO
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        for handler in [h for h in root.handlers if h.get_name() == "papermark"]:
            root.removeHandler(handler)
        root.setLevel(level)
