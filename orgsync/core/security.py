"""
Password hashing and access credentials.

Passwords of locally created admins are hashed with Argon2id; users imported
from the legacy system have no hash and can never log in. Access
credentials are HS256 JWTs signed with SECRET_KEY. Every credential carries
``type``, ``iat``, ``exp`` and a unique ``jti`` on top of the claims passed
by the caller.
"""

import re
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import jwt

from orgsync.core.config import settings

ALGORITHM = "HS256"
TOKEN_TYPE_ACCESS = "access"

MIN_PASSWORD_LENGTH = 8

# (pattern that must match, message when it does not)
PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
)

pwd_hasher = PasswordHasher(
    time_cost=settings.argon2_time_cost,
    memory_cost=settings.argon2_memory_cost,
    parallelism=settings.argon2_parallelism,
)


def hash_password(password: str) -> str:
    """Hash a password with Argon2id (salt and parameters are embedded)."""
    return pwd_hasher.hash(password)


def verify_password(password: str, hashed_password: str | None) -> bool:
    """
    Check a password against a stored hash.

    Returns False for users without a hash and for unreadable hashes, so
    callers only have one failure path to handle.
    """
    if not hashed_password:
        return False
    try:
        return pwd_hasher.verify(hashed_password, password)
    except (VerificationError, InvalidHashError):
        # VerifyMismatchError is a VerificationError
        return False


def validate_password_strength(password: str) -> tuple[bool, str | None]:
    """
    Validate the password given to a new admin.

    Returns:
        (True, None) when acceptable, otherwise (False, first failed rule)

    Example:
        >>> validate_password_strength("Strong123")
        (True, None)
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"

    for pattern, message in PASSWORD_RULES:
        if not pattern.search(password):
            return False, message

    return True, None


def create_access_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """
    Sign an access credential.

    Args:
        claims: Identity claims; must contain ``sub`` (the user id)
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        **claims,
        "type": TOKEN_TYPE_ACCESS,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Verify signature and expiry of a credential and return its claims.

    Raises:
        ExpiredSignatureError: The credential has expired
        JWTError: The credential is malformed or signed with another key
    """
    return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])


def verify_token_type(claims: dict[str, Any], expected_type: str) -> bool:
    return claims.get("type") == expected_type
