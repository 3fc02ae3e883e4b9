"""
Security utilities for JWT and password hashing.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, ExpiredSignatureError, JWTError
from passlib.context import CryptContext

from honeybadger.core.config import settings
from honeybadger.core.errors import AuthenticationFailure

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _create_token(
    subject: str,
    token_type: str,
    expires_delta: timedelta,
    extra_claims: Optional[Dict[str, Any]] = None
) -> str:
    """Internal function to create JWT tokens."""
    now = datetime.now(timezone.utc)

    payload = {
        "sub": str(subject),
        "iat": now,
        "exp": now + expires_delta,
        "type": token_type,
        **(extra_claims or {})
    }

    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: Any,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None
) -> str:
    """Create JWT access token."""
    delta = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _create_token(subject, "access", delta, extra_claims)


def user_id_from_token(token: Optional[str]) -> int:
    """
    Extract the user id carried by an access token.

    Raises:
        AuthenticationFailure: With a reason suitable for the client.
    """
    if not token:
        raise AuthenticationFailure("Authentication error: No token provided")

    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationFailure("Authentication error: Token expired")
    except JWTError:
        raise AuthenticationFailure("Authentication error: Invalid token")

    subject = payload.get("sub")
    if payload.get("type", "access") != "access" or subject is None:
        raise AuthenticationFailure("Authentication error: Invalid token")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise AuthenticationFailure("Authentication error: Invalid token")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)
