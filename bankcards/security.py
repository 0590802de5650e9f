"""
Security utilities: password hashing, JWT access tokens, refresh-token secrets.

Card-number encryption lives in bankcards.crypto; this module covers the
credential side.

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext handles hashing and future scheme migration

2. JWT ACCESS TOKENS
   - Signed with SECRET_KEY (HS256), short-lived (ACCESS_TOKEN_EXPIRE_MINUTES)
   - Claims: sub, id, login, email, roles, iss, iat, exp, jti
   - jti is random, so two tokens minted for the same user in the same
     second are still distinct strings

3. REFRESH TOKEN SECRETS
   - Opaque random strings handed to the client exactly once
   - Only their SHA-256 digest is persisted, so a database leak does not
     leak usable refresh tokens
"""

import hashlib
import secrets
import uuid
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from bankcards.config import settings
from bankcards.exceptions import InvalidTokenError, TokenExpiredError

REQUIRED_CLAIMS = ("sub", "id", "login", "roles", "exp")


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Access Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom lifetime. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({
        "iss": settings.TOKEN_ISSUER,
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, expected_login: str | None = None) -> dict:
    """
    Decode and verify a JWT access token.

    Checks the signature, expiry and issuer, that every required claim is
    present and, when ``expected_login`` is given, that the token was issued
    for that login.

    Raises:
        TokenExpiredError: If the token is past its exp claim.
        InvalidTokenError: If the token is tampered with, malformed, or
            issued for another login.

    Returns:
        The decoded payload dictionary.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            issuer=settings.TOKEN_ISSUER,
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError("Access token has expired") from e
    except JWTError as e:
        raise InvalidTokenError() from e

    if any(claim not in payload for claim in REQUIRED_CLAIMS):
        raise InvalidTokenError("Access token is missing required claims")
    if expected_login is not None and payload["login"] != expected_login:
        raise InvalidTokenError("Access token was issued for another user")

    return payload


# ---------------------------------------------------------------------------
# 3. Refresh Token Secrets
# ---------------------------------------------------------------------------


def generate_refresh_secret() -> str:
    """Generate a fresh opaque refresh token (URL-safe, 384 bits of entropy)."""
    return secrets.token_urlsafe(48)


def hash_refresh_secret(token: str) -> str:
    """SHA-256 hex digest of a refresh token, the value stored and indexed."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
