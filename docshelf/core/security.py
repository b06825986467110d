"""
Security utilities
API keys (issue, parse, hash, expiry) and bcrypt password hashing
"""

import hashlib
import secrets
from datetime import datetime, timezone
from typing import NamedTuple, Optional

from passlib.context import CryptContext
from docshelf.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

KEY_DISPLAY_LENGTH = 10


class IssuedKey(NamedTuple):
    """A freshly generated API key; `key` is shown to the user exactly once"""
    key: str
    key_hash: str
    display_prefix: str


def hash_api_key(api_key: str) -> str:
    """SHA-256 hex digest stored in place of the key"""
    return hashlib.sha256(api_key.encode()).hexdigest()


def issue_api_key() -> IssuedKey:
    key = f"{settings.API_KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return IssuedKey(key=key, key_hash=hash_api_key(key), display_prefix=key[:KEY_DISPLAY_LENGTH])


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Token from an `Authorization: Bearer <token>` header, None if malformed or empty"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    if expires_at is None:
        return False
    # SQLite hands back naive datetimes
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < now


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)
