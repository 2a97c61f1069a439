"""Security Primitives — passwords, link-password encryption, tokens and one-time codes.

Invariants:
    - User passwords are stored as bcrypt hashes only
    - Link passwords are stored Fernet-encrypted so owners can read them back;
      legacy bcrypt-hashed link passwords still verify
    - Verification tokens are stored as SHA-256 hex digests; raw tokens are
      returned to the visitor exactly once
    - OTP codes come from the `secrets` CSPRNG
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import bcrypt
from cryptography.fernet import Fernet, InvalidToken
from jose import JWTError, jwt

from papermark.config import get_settings
from papermark.core.errors import AuthenticationError

JWT_ALGORITHM = "HS256"
OTP_LENGTH = 6


# ─── User passwords ─────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


# ─── Link passwords ─────────────────────────────────────────────

def _fernet() -> Fernet:
    return Fernet(get_settings().encryption_key.encode("utf-8"))


def encrypt_link_password(password: str) -> str:
    return _fernet().encrypt(password.encode("utf-8")).decode("utf-8")


def decrypt_link_password(stored: str) -> str | None:
    """Plaintext for Fernet-encrypted values; None for legacy hashes or bad data."""
    if stored.startswith("$2"):
        return None
    try:
        return _fernet().decrypt(stored.encode("utf-8")).decode("utf-8")
    except (InvalidToken, ValueError):
        return None


def check_link_password(password: str | None, stored: str | None) -> bool:
    if not password or not stored:
        return False
    if stored.startswith("$2"):
        return verify_password(password, stored)
    plaintext = decrypt_link_password(stored)
    if plaintext is None:
        return False
    return hmac.compare_digest(plaintext.encode("utf-8"), password.encode("utf-8"))


# ─── Tokens & codes ─────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def new_id(prefix: str) -> str:
    """Opaque random identifier such as "email_3kP..."."""
    return f"{prefix}_{secrets.token_urlsafe(24)}"


def generate_otp() -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(OTP_LENGTH))


# ─── Access tokens (team members) ───────────────────────────────

def create_access_token(user_id: UUID, expires_minutes: int | None = None) -> str:
    settings = get_settings()
    ttl = expires_minutes if expires_minutes is not None else settings.access_token_ttl_minutes
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> UUID:
    """Return the user id in the token. Raises AuthenticationError when invalid."""
    try:
        payload = jwt.decode(
            token, get_settings().secret_key, algorithms=[JWT_ALGORITHM],
        )
        return UUID(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise AuthenticationError("Invalid or expired access token")
