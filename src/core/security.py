"""Password hashing and JWT helpers.

Passwords are hashed with bcrypt directly. Tokens are HS256 JWTs signed with
``JWT_SECRET_KEY``; access tokens carry the caller's roles and permissions,
refresh tokens carry a ``jti`` that is persisted so it can be revoked.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import bcrypt
import pytz
from jose import JWTError, jwt

from config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    BCRYPT_ROUNDS,
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    REFRESH_TOKEN_EXPIRE_DAYS,
)
from core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > _BCRYPT_MAX_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            _BCRYPT_MAX_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:_BCRYPT_MAX_BYTES]
    return password_bytes


def hash_password(password: str) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password.

    Returns:
        Hashed password (bcrypt hash string).
    """
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash.

    Args:
        plain_password: Plain text password to verify.
        hashed_password: Bcrypt hash string to verify against.

    Returns:
        True if password matches, False otherwise.
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError as e:
        # Malformed hash in the database
        logger.error("Password verification error: %s", e)
        return False


def create_access_token(
    user_id: int,
    roles: List[str],
    permissions: List[str],
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: Subject of the token.
        roles: Role names held by the user.
        permissions: Union of the roles' permission names.
        expires_delta: Optional lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(pytz.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    payload = {
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "roles": roles,
        "permissions": permissions,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def create_refresh_token(
    user_id: int, expires_delta: Optional[timedelta] = None
) -> Tuple[str, str, datetime]:
    """Create a signed refresh token with a fresh jti.

    Returns:
        Tuple of (encoded token, jti, expiry datetime in UTC).
    """
    now = datetime.now(pytz.utc)
    expire = now + (expires_delta or timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS))
    jti = uuid.uuid4().hex
    payload = {
        "sub": str(user_id),
        "type": REFRESH_TOKEN_TYPE,
        "jti": jti,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM), jti, expire


def decode_token(token: str, expected_type: str) -> Dict[str, Any]:
    """Decode and verify a token of the given type.

    Args:
        token: Encoded JWT.
        expected_type: ``"access"`` or ``"refresh"``.

    Returns:
        Decoded payload; ``sub`` is guaranteed to be a numeric user id.

    Raises:
        AuthenticationError: If the signature, expiry, type or subject is invalid.
    """
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise AuthenticationError("Invalid or expired token") from e

    if payload.get("type") != expected_type:
        raise AuthenticationError("Invalid token type")
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        raise AuthenticationError("Invalid authentication credentials")
    return payload
