"""
Authentication service — signup, login, refresh, and bearer-token checks.

Signup flow:
  1. Reject a login or email that is already registered
  2. Hash the password with Argon2id
  3. Create the User with the USER role

Login flow:
  1. Look up user by login
  2. Verify password against stored hash
  3. Return a new access token and a new refresh token

Refresh flow:
  1. Hash the presented refresh token and look it up by that hash
  2. Reject it if unknown, past its expires_at, or inactive
  3. Return a new access token; the refresh token itself is left as is
     (no rotation), so any number of refreshes may run concurrently

Security notes:
  - Login returns the same error for "unknown login", "wrong password" and
    "blocked user" to prevent user enumeration
  - Neither passwords nor tokens are ever logged
"""

import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.clock import as_utc, utcnow
from bankcards.exceptions import (
    DuplicateUserError,
    InvalidCredentialsError,
    InvalidTokenError,
    RefreshTokenNotFoundError,
    TokenExpiredError,
    TokenNotActiveError,
    UserNotActiveError,
)
from bankcards.models.user import RoleType, User
from bankcards.security import hash_password, verify_password
from bankcards.services import token_service
from bankcards.services.user_service import get_or_create_role

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AuthTokens:
    """The credentials handed out at login."""
    user: User
    access_token: str
    refresh_token: str


async def signup(
    db: AsyncSession,
    login: str,
    email: str,
    password: str,
) -> User:
    """
    Register a new user holding the USER role.

    Raises:
        DuplicateUserError: If the login or email is already registered.
    """
    result = await db.execute(
        select(User).where(or_(User.login == login, User.email == email))
    )
    existing = result.scalars().first()
    if existing is not None:
        if existing.login == login:
            raise DuplicateUserError("login", login)
        raise DuplicateUserError("email", email)

    user = User(
        login=login,
        email=email,
        hashed_password=hash_password(password),
        roles={await get_or_create_role(db, RoleType.USER)},
    )
    db.add(user)
    await db.flush()

    logger.info("user_registered", user_id=str(user.id))
    return user


async def login(db: AsyncSession, login: str, password: str) -> AuthTokens:
    """
    Authenticate with login and password.

    Returns:
        AuthTokens with a fresh access token and a fresh refresh token.

    Raises:
        InvalidCredentialsError: Unknown login, wrong password, or blocked user.
    """
    result = await db.execute(select(User).where(User.login == login))
    user = result.scalar_one_or_none()

    # Same error for every case, so logins cannot be enumerated
    if user is None or not verify_password(password, user.hashed_password):
        logger.warning("login_failed", reason="bad_credentials")
        raise InvalidCredentialsError()
    if not user.is_active:
        logger.warning("login_failed", reason="user_blocked", user_id=str(user.id))
        raise InvalidCredentialsError()

    access_token = token_service.issue_access_token(user)
    refresh_token = await token_service.issue_refresh_token(db, user)

    logger.info("login_succeeded", user_id=str(user.id))
    return AuthTokens(user=user, access_token=access_token, refresh_token=refresh_token)


async def refresh(db: AsyncSession, refresh_token: str) -> str:
    """
    Exchange a refresh token for a new access token.

    The refresh token row is only read: it stays active and keeps its
    expiry, so the same token can be used again until it expires.

    Raises:
        RefreshTokenNotFoundError: No stored token matches.
        TokenExpiredError: The stored token's expires_at has passed.
        TokenNotActiveError: The stored token was deactivated.
        UserNotActiveError: The token's owner has been blocked.
    """
    record = await token_service.find_refresh_token(db, refresh_token)
    if record is None:
        raise RefreshTokenNotFoundError()

    if utcnow() > as_utc(record.expires_at):
        raise TokenExpiredError("Refresh token has expired")
    if not record.is_active:
        raise TokenNotActiveError()

    user = record.user
    if not user.is_active:
        raise UserNotActiveError(user.login)

    logger.info("access_token_refreshed", user_id=str(user.id), refresh_token_id=str(record.id))
    return token_service.issue_access_token(user)


async def authenticate(db: AsyncSession, access_token: str) -> User:
    """
    Resolve a bearer token to its User.

    The token must verify, the user named by its id claim must exist, and
    the token's login claim must match that user's login.

    Raises:
        TokenExpiredError / InvalidTokenError: On any mismatch.
    """
    claims = token_service.validate_access_token(access_token)

    try:
        user_id = uuid.UUID(claims["id"])
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidTokenError() from e

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or user.login != claims["login"]:
        raise InvalidTokenError()

    return user
