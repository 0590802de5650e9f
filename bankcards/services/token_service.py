"""
Token service — issues access tokens and persists refresh tokens.

Access tokens are stateless JWTs (see bankcards.security). Refresh tokens are
opaque random strings; only their SHA-256 digest is written to the database,
next to created_at, expires_at and is_active.

Every login creates a new refresh token. Older ones stay valid until they
expire, so a user signed in on several devices holds several live tokens.
"""

from datetime import timedelta

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.clock import utcnow
from bankcards.config import settings
from bankcards.exceptions import RolesEmptyError
from bankcards.models.refresh_token import RefreshToken
from bankcards.models.user import User
from bankcards.security import (
    create_access_token,
    decode_access_token,
    generate_refresh_secret,
    hash_refresh_secret,
)

logger = structlog.get_logger(__name__)


def issue_access_token(user: User) -> str:
    """
    Create a signed access token carrying the user's id, login, email and roles.

    Raises:
        RolesEmptyError: If the user holds no role; such a user could not
            pass any authorization check, so no token is minted.
    """
    if not user.roles:
        raise RolesEmptyError(user.login)

    return create_access_token(
        data={
            "sub": user.login,
            "id": str(user.id),
            "login": user.login,
            "email": user.email,
            "roles": user.role_names,
        }
    )


def validate_access_token(token: str, expected_login: str | None = None) -> dict:
    """Verify signature, expiry and (optionally) the login; return the claims."""
    return decode_access_token(token, expected_login=expected_login)


async def issue_refresh_token(db: AsyncSession, user: User) -> str:
    """
    Create and persist a new refresh token for ``user``.

    Returns:
        The opaque token. This is the only time it exists in plaintext;
        the database keeps its hash.
    """
    token = generate_refresh_secret()
    now = utcnow()

    record = RefreshToken(
        token_hash=hash_refresh_secret(token),
        user_id=user.id,
        created_at=now,
        expires_at=now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(record)
    await db.flush()

    logger.info("refresh_token_issued", user_id=str(user.id), refresh_token_id=str(record.id))
    return token


async def find_refresh_token(db: AsyncSession, token: str) -> RefreshToken | None:
    """Look up a refresh token by the hash of the presented value."""
    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token_hash == hash_refresh_secret(token))
    )
    return result.scalar_one_or_none()
