"""Webhook Client — delivers team event notifications as signed JSON POSTs.

Invariants:
    - Payload shape: {"event", "created_at", "data"}
    - X-Papermark-Signature is HMAC-SHA256, keyed by the app secret, of the exact bytes sent
"""

import hashlib
import hmac
import json
import logging
from datetime import datetime, timezone

from papermark.config import get_settings
from papermark.infrastructure.http_client import ResilientHTTPClient

logger = logging.getLogger(__name__)


class WebhookClient:

    def __init__(self, http: ResilientHTTPClient, signing_secret: str):
        self.http = http
        self.signing_secret = signing_secret

    def sign(self, raw: bytes) -> str:
        return hmac.new(self.signing_secret.encode("utf-8"), raw, hashlib.sha256).hexdigest()

    async def deliver(self, url: str, event: str, data: dict) -> None:
        body = {
            "event": event,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "data": data,
        }
        raw = json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        await self.http.post_raw_json(
            url, raw, headers={"X-Papermark-Signature": self.sign(raw)},
        )
        logger.info("Webhook delivered", extra={"event": event})


def get_webhook_client() -> WebhookClient:
    settings = get_settings()
    http = ResilientHTTPClient(
        "webhook",
        max_retries=settings.http_max_retries,
        base_delay_ms=settings.http_base_delay_ms,
        max_delay_ms=settings.http_max_delay_ms,
        timeout_seconds=settings.http_timeout_seconds,
    )
    return WebhookClient(http, settings.secret_key)
