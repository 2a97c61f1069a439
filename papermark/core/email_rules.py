"""Email Rules — pure email validation and allow/deny/block-list matching.

Invariants:
    - Matching is case-insensitive for both addresses and @domain rules
    - A rule starting with "@" matches every address on that exact domain
    - No IO; callers pass list values straight from Link/Team rows
"""

import re

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_email(email: str | None) -> bool:
    """True for a syntactically plausible address (local@domain.tld)."""
    if not email:
        return False
    return bool(_EMAIL_RE.match(email.strip()))


def email_domain(email: str | None) -> str:
    """Return the "@domain" part of an address, lowercase. Empty when absent."""
    value = normalize_email(email)
    at = value.rfind("@")
    if at == -1:
        return ""
    return value[at:]


def is_email_matched(email: str | None, rule: str) -> bool:
    """Exact address match, or "@domain" rule equal to the address's domain."""
    value = normalize_email(email)
    target = normalize_email(rule)
    if not value or not target:
        return False
    if target.startswith("@"):
        return email_domain(value) == target
    return value == target


def matches_any(email: str | None, rules: list[str] | None) -> bool:
    return any(is_email_matched(email, rule) for rule in rules or [])


def check_global_block_list(
    email: str | None, block_list: list[str] | None,
) -> dict:
    """Evaluate the team-wide block list.

    An empty list never blocks. A non-empty list requires a valid email,
    because an anonymous visitor cannot be checked against it.
    """
    if not block_list:
        return {"is_blocked": False, "error": None}
    if not email or not validate_email(email):
        return {
            "is_blocked": False,
            "error": "Email is required to access this link.",
        }
    return {"is_blocked": matches_any(email, block_list), "error": None}
