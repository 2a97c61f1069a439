"""Structured Logging — JSON log lines carrying link, view and team context.

Invariants:
    - Every line has timestamp (record creation time, UTC), level, logger, message
    - Context extras (link_id, view_id, team_id, ...) appear only when set
    - Visitor emails passed as `email` are masked before they reach a handler
    - setup_logging is idempotent: calling it twice does not duplicate output
"""

import json
import logging
from datetime import datetime, timezone

_CONTEXT_FIELDS = (
    "link_id", "view_id", "document_id", "dataroom_id", "team_id",
    "error_code", "attempt", "path", "status_code", "event", "email",
)
_HANDLER_NAME = "papermark"
_NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore")


def mask_email(email: str) -> str:
    """"jane@acme.com" -> "j***@acme.com"."""
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


class EmailMaskFilter(logging.Filter):

    def filter(self, record: logging.LogRecord) -> bool:
        email = record.__dict__.get("email")
        if isinstance(email, str):
            record.email = mask_email(email)
        return True


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = record.__dict__.get(key)
            if value is None:
                continue
            line[key] = value if isinstance(value, (int, float, bool)) else str(value)
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines for local development, context appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        context = " ".join(
            f"{key}={record.__dict__[key]}"
            for key in _CONTEXT_FIELDS if record.__dict__.get(key) is not None
        )
        return f"{text} [{context}]" if context else text


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.get_name() == _HANDLER_NAME:
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ConsoleFormatter())
    handler.addFilter(EmailMaskFilter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
