"""
Password hashing and JWT token handling. No plain-text passwords in logs.
Uses bcrypt directly (not passlib) to avoid passlib's 72-byte internal test.
"""
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from devconnector.config import get_settings
from devconnector.utils.logger import get_logger

logger = get_logger(__name__)

# Bcrypt accepts max 72 bytes; truncate to avoid ValueError
BCRYPT_MAX_PASSWORD_BYTES = 72
ACCESS_TOKEN_TYPE = "access"


def _to_bcrypt_bytes(s: str) -> bytes:
    """Truncate password to 72 bytes for bcrypt (required by algorithm)."""
    raw = (s or "").encode("utf-8")
    if len(raw) <= BCRYPT_MAX_PASSWORD_BYTES:
        return raw
    return raw[:BCRYPT_MAX_PASSWORD_BYTES]


def hash_password(plain_password: str) -> str:
    """Hash password with a fresh bcrypt salt (cost from BCRYPT_ROUNDS)."""
    secret = _to_bcrypt_bytes(plain_password)
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(secret, salt).decode("ascii")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify plain password against hash. Malformed hashes never match."""
    secret = _to_bcrypt_bytes(plain_password)
    try:
        return bcrypt.checkpw(secret, hashed.encode("ascii"))
    except (ValueError, TypeError):
        logger.warning("Stored password hash is malformed")
        return False


def create_access_token(user_id: str, expires_delta: timedelta | None = None) -> str:
    """
    Sign a JWT for the given user id. Expiry defaults to JWT_EXPIRES_IN_SECONDS
    (360000 s). The user id is carried both as `sub` and as `user.id` so
    clients written against either claim layout can read it.
    """
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(seconds=settings.jwt_expires_in_seconds)
    )
    to_encode = {
        "sub": str(user_id),
        "user": {"id": str(user_id)},
        "exp": expire,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )


def decode_access_token(token: str) -> str | None:
    """Decode and validate access token. Returns user id or None."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    user = payload.get("user") or {}
    return payload.get("sub") or user.get("id")
