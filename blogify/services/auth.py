"""Bearer tokens and password hashing.

Tokens are HS256 JWTs carrying ``userId``, ``email`` and ``role``.
Handlers only ever look at the decoded claims.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Header
from passlib.context import CryptContext

from blogify.config import get_settings
from blogify.errors import AuthError
from blogify.models.user import TokenClaims, User

logger = logging.getLogger(__name__)

# Lazy singleton, built from settings on first use
_pwd_context: CryptContext | None = None


def _get_pwd_context() -> CryptContext:
    global _pwd_context
    if _pwd_context is None:
        _pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=get_settings().password_hash_rounds,
        )
    return _pwd_context


def hash_password(password: str) -> str:
    return _get_pwd_context().hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    return _get_pwd_context().verify(plain_password, password_hash)


def issue_token(user: User, expires_delta: timedelta | None = None) -> str:
    """Sign a bearer token for *user*."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "userId": user.id,
        "email": user.email,
        "role": user.role.value,
        "iat": now,
        "exp": now + (expires_delta or timedelta(days=settings.jwt_expires_days)),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenClaims:
    """Decode and validate a bearer token, raising AuthError on failure."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid token") from exc

    if not payload.get("userId"):
        raise AuthError("Invalid token")
    return TokenClaims(
        user_id=payload["userId"],
        email=payload.get("email", ""),
        role=payload.get("role", "USER"),
    )


def extract_token_from_header(auth_header: str | None) -> str:
    """Pull the token out of an ``Authorization: Bearer <token>`` header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        raise AuthError("No token provided or invalid token format")
    token = auth_header[len("Bearer "):].strip()
    if not token:
        raise AuthError("No token provided or invalid token format")
    return token


def require_user(authorization: str | None = Header(default=None)) -> TokenClaims:
    """FastAPI dependency: the caller's claims, or 401."""
    return verify_token(extract_token_from_header(authorization))


def optional_user(authorization: str | None = Header(default=None)) -> TokenClaims | None:
    """FastAPI dependency: the caller's claims if a valid token was sent."""
    if not authorization:
        return None
    try:
        return require_user(authorization)
    except AuthError:
        return None
