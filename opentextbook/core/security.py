from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional
import logging

from jose import jwt, JWTError
from passlib.context import CryptContext

from .config import Settings

logger = logging.getLogger(__name__)

# pbkdf2_sha256 keeps the hash portable (no native bcrypt backend needed)
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@lru_cache
def _context_for(rounds: int) -> CryptContext:
    return pwd_context.copy(pbkdf2_sha256__rounds=rounds)


def hash_password(raw: str, rounds: Optional[int] = None) -> str:
    context = pwd_context if rounds is None else _context_for(rounds)
    return context.hash(raw)


def verify_password(raw: str, hashed: Optional[str]) -> bool:
    """Check ``raw`` against a stored hash. Malformed or unknown hashes verify as False."""
    if not raw or not hashed:
        return False
    try:
        return pwd_context.verify(raw, hashed)
    except (ValueError, TypeError):
        logger.warning("Refusing to verify against a malformed password hash")
        return False


@lru_cache
def dummy_hash() -> str:
    # compared against when no account matches, so both failures cost one verify
    return pwd_context.hash("not-a-real-password")


def create_session_token(session_id: str, max_age_seconds: int, settings: Settings) -> str:
    # Use timezone-aware UTC to avoid local-time offset issues on .timestamp()
    now = datetime.now(timezone.utc)
    to_encode: Dict[str, Any] = {
        "sub": session_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=max_age_seconds)).timestamp()),
        "type": "session",
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str, settings: Settings) -> Optional[str]:
    """Return the session id carried by a signed cookie, or None if it is forged or expired."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if payload.get("type") != "session":
        return None
    sub = payload.get("sub")
    return sub if isinstance(sub, str) else None
