"""Visitor Rate Limits — per-IP policies for the verification endpoints.

Invariants:
    - One registry per process (module-level), reset only by tests
    - Keys are "{policy}:{client_ip}"

Design Decisions:
    - In-process limiter: single uvicorn worker per container; a shared store
      is needed before scaling out
"""

import logging
import math

from papermark.core.errors import ErrorContext, RateLimitExceededError
from papermark.core.rate_limit import RateLimiterRegistry

logger = logging.getLogger(__name__)

SEND_OTP = "send-otp"
VERIFY_OTP = "verify-otp"
VERIFY_EMAIL = "verify-email"

POLICIES: dict[str, str] = {
    SEND_OTP: "10 per 1 m",
    VERIFY_OTP: "10 per 1 m",
    VERIFY_EMAIL: "10 per 1 m",
}

rate_limiter = RateLimiterRegistry()


def enforce_rate_limit(
    policy: str, client_ip: str, context: ErrorContext | None = None,
) -> None:
    """Raise RateLimitExceededError when the caller is over the policy."""
    result = rate_limiter.hit(POLICIES[policy], f"{policy}:{client_ip}")
    if not result.success:
        logger.warning(
            f"Rate limit hit for {policy}",
            extra={"event": "rate_limited", "path": policy},
        )
        raise RateLimitExceededError(
            retry_after_ms=math.ceil(result.reset_after_seconds * 1000),
            context=context,
        )
