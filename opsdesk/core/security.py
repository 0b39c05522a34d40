import hmac
import uuid
from datetime import datetime

import bcrypt

from opsdesk.core.datetime_utils import get_expiry, is_expired

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72
MIN_PASSWORD_LENGTH = 8
SESSION_DAYS = 30


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (cost 12)."""
    raw = password.encode()
    if len(raw) > BCRYPT_MAX_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=12)).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored bcrypt hash."""
    if not password_hash:
        return False
    raw = password.encode()
    if len(raw) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(raw, password_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False


def generate_session_id() -> uuid.UUID:
    """Generate a new session ID."""
    return uuid.uuid4()


def get_session_expiry() -> datetime:
    """Get expiry time for sessions (30 days from now)."""
    return get_expiry(days=SESSION_DAYS)


def secrets_match(provided: str | None, expected: str | None) -> bool:
    """Constant-time comparison that never matches an empty secret."""
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


__all__ = [
    "hash_password",
    "verify_password",
    "generate_session_id",
    "get_session_expiry",
    "secrets_match",
    "is_expired",
]
