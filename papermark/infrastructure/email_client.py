"""Email Client — transactional email delivery through the Resend HTTP API.

Invariants:
    - Empty resend_api_key disables delivery (logged, never raised)
    - Codes are never written to logs
    - Delivery failures raise ExternalServiceError; callers in background tasks log them
"""

import logging

from papermark.config import get_settings
from papermark.infrastructure.http_client import ResilientHTTPClient

logger = logging.getLogger(__name__)


class EmailClient:
    """Sends verification-code emails."""

    def __init__(
        self,
        http: ResilientHTTPClient,
        api_key: str,
        api_url: str,
        sender: str,
        otp_ttl_minutes: int = 10,
    ):
        self.http = http
        self.api_key = api_key
        self.api_url = api_url
        self.sender = sender
        self.otp_ttl_minutes = otp_ttl_minutes

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def send_otp(self, email: str, code: str, is_dataroom: bool = False) -> bool:
        if not self.enabled:
            logger.warning("Email delivery disabled; verification code not sent")
            return False
        subject_target = "data room" if is_dataroom else "document"
        await self.http.post_json(
            self.api_url,
            {
                "from": self.sender,
                "to": [email],
                "subject": f"Your {subject_target} verification code",
                "text": (
                    f"Your verification code is {code}.\n"
                    f"It expires in {self.otp_ttl_minutes} minutes. "
                    "If you did not request it, ignore this email."
                ),
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return True


def get_email_client() -> EmailClient:
    settings = get_settings()
    http = ResilientHTTPClient(
        "resend",
        max_retries=settings.http_max_retries,
        base_delay_ms=settings.http_base_delay_ms,
        max_delay_ms=settings.http_max_delay_ms,
        timeout_seconds=settings.http_timeout_seconds,
    )
    return EmailClient(
        http, settings.resend_api_key, settings.resend_api_url, settings.email_from,
        settings.otp_ttl_minutes,
    )
