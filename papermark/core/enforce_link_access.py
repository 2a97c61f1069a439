"""Link Access Enforcement — ordered gating rules a visitor must pass to open a link.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Return a denial dict on violation, None on success
    - validate_link_access chains every rule in a fixed order; first denial wins
    - Denial dicts always carry error_code, message and http_status

Design Decisions:
    - Password validity is computed by the shell (crypto lives in infrastructure)
      and passed in as a flag; the rule only decides what the flag means here
    - Group membership is passed as a GroupAudience snapshot so core never
      touches ViewerGroup rows
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from papermark.core.domain_types import LinkAudienceType, ensure_utc
from papermark.core.email_rules import (
    check_global_block_list, email_domain, matches_any, normalize_email,
    validate_email,
)


class LinkLike(Protocol):
    """Structural contract for the Link fields gating reads."""
    is_archived: bool
    expires_at: datetime | None
    email_protected: bool
    password: str | None
    enable_agreement: bool
    allow_list: list | None
    deny_list: list | None
    audience_type: str
    group_id: object | None


@dataclass
class GroupAudience:
    """Snapshot of a viewer group used for GROUP-audience links."""
    allow_all: bool = False
    domains: list[str] = field(default_factory=list)
    member_emails: list[str] = field(default_factory=list)


@dataclass
class VisitorSubmission:
    """What the visitor sent with the view request."""
    email: str | None = None
    password: str | None = None
    password_valid: bool = False
    has_confirmed_agreement: bool = False


def _deny(error_code: str, message: str, http_status: int, **extra) -> dict:
    return {
        "status": "error",
        "error_code": error_code,
        "message": message,
        "http_status": http_status,
        **extra,
    }


def check_link_available(link: LinkLike | None, now: datetime) -> dict | None:
    """Rule 1: link exists, is not archived and has not expired."""
    if link is None:
        return _deny("LINK_NOT_FOUND", "Link not found.", 404)
    if link.is_archived:
        return _deny("LINK_ARCHIVED", "Link is no longer available.", 404)
    expires_at = ensure_utc(link.expires_at)
    if expires_at is not None and expires_at < ensure_utc(now):
        return _deny("LINK_EXPIRED", "Link has expired.", 410)
    return None


def check_email_gate(link: LinkLike, email: str | None) -> dict | None:
    """Rule 2: email-protected links need a valid address."""
    if not link.email_protected:
        return None
    if not email or not email.strip():
        return _deny("EMAIL_REQUIRED", "Email is required.", 400)
    if not validate_email(email):
        return _deny("EMAIL_INVALID", "Invalid email address.", 400)
    return None


def check_password_gate(
    link: LinkLike, password: str | None, password_valid: bool,
) -> dict | None:
    """Rule 3: password-protected links need the right password."""
    if not link.password:
        return None
    if not password or not password.strip():
        return _deny("PASSWORD_REQUIRED", "Password is required.", 400)
    if not password_valid:
        return _deny("PASSWORD_INVALID", "Invalid password.", 403)
    return None


def check_agreement(link: LinkLike, has_confirmed: bool) -> dict | None:
    """Rule 4: NDA links need explicit confirmation."""
    if link.enable_agreement and not has_confirmed:
        return _deny("AGREEMENT_REQUIRED", "Agreement to NDA is required.", 400)
    return None


def check_global_block(
    email: str | None, block_list: list[str] | None,
) -> dict | None:
    """Rule 5: team-wide block list overrides every link-level allowance."""
    result = check_global_block_list(email, block_list)
    if result["error"]:
        return _deny("EMAIL_REQUIRED", result["error"], 400)
    if result["is_blocked"]:
        return _deny("ACCESS_DENIED", "Access denied", 403, denied_by="global")
    return None


def check_allow_list(link: LinkLike, email: str | None) -> dict | None:
    """Rule 6: a non-empty allow list admits only matching addresses/domains."""
    if link.allow_list and not matches_any(email, link.allow_list):
        return _deny("UNAUTHORIZED_ACCESS", "Unauthorized access", 403, denied_by="allow")
    return None


def check_deny_list(link: LinkLike, email: str | None) -> dict | None:
    """Rule 7: any matching deny rule rejects the visitor."""
    if link.deny_list and matches_any(email, link.deny_list):
        return _deny("UNAUTHORIZED_ACCESS", "Unauthorized access", 403, denied_by="deny")
    return None


def check_group_audience(
    link: LinkLike, group: GroupAudience | None, email: str | None,
) -> dict | None:
    """Rule 8: GROUP links admit members or addresses on a group domain."""
    if link.audience_type != LinkAudienceType.GROUP or not link.group_id:
        return None
    if group is None:
        return _deny("GROUP_NOT_FOUND", "Group not found.", 404)
    if group.allow_all:
        return None
    value = normalize_email(email)
    is_member = value in {normalize_email(m) for m in group.member_emails}
    domain = email_domain(value)
    has_domain_access = bool(domain) and domain in {
        d.strip().lower() for d in group.domains
    }
    if not is_member and not has_domain_access:
        return _deny("UNAUTHORIZED_ACCESS", "Unauthorized access", 403, denied_by="group")
    return None


def validate_link_access(
    link: LinkLike,
    visitor: VisitorSubmission,
    block_list: list[str] | None = None,
    group: GroupAudience | None = None,
) -> dict | None:
    """Chain the visitor-facing rules (2-8). Returns first denial or None.

    Availability (rule 1) is checked separately because it also applies to
    sessions and previews that skip the visitor gates.
    """
    return (
        check_email_gate(link, visitor.email)
        or check_password_gate(link, visitor.password, visitor.password_valid)
        or check_agreement(link, visitor.has_confirmed_agreement)
        or check_global_block(visitor.email, block_list)
        or check_allow_list(link, visitor.email)
        or check_deny_list(link, visitor.email)
        or check_group_audience(link, group, visitor.email)
    )
