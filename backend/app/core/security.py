"""
Security utilities for authentication and authorization.

Passwords are stored as bcrypt hashes. Access tokens are HS256 JWTs carrying
the user id (``sub``, as a string), the e-mail the account held at issue
time (``email``) and its role (``role``). A token is honoured only while the
id still resolves to an account with that same e-mail.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    user_id: int,
    role: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_id: Id stored in the ``sub`` claim
        role: Role stored in the ``role`` claim
        email: Account e-mail stored in the ``email`` claim
        expires_delta: Lifetime; ``ACCESS_TOKEN_EXPIRE_MINUTES`` when omitted

    Returns:
        The encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "email": email.lower(),
        "role": role,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Return the token's claims, or None when the signature or expiry is bad."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except InvalidTokenError:
        return None


def get_token_identity(token: str) -> Optional[tuple[int, str]]:
    """Extract ``(user id, e-mail)`` from a token, or None when either is missing."""
    claims = decode_access_token(token)
    if claims is None:
        return None
    email = claims.get("email")
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
    if not isinstance(email, str) or not email:
        return None
    return user_id, email


def is_admin_email(email: Optional[str]) -> bool:
    """Admin privileges are restricted to the configured e-mail domain."""
    if not email:
        return False
    return email.lower().endswith("@" + settings.ADMIN_EMAIL_DOMAIN.lower())
