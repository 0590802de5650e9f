"""
User service — role lookup, role grants, and blocking users.

Role grants are set unions: ``user.roles.add(role)``. Granting a role the
user already holds changes nothing, without any "already has it?" check.

Admin-only functions take the acting admin explicitly and verify the ADMIN
role themselves; there is no ambient "current user".
"""

import uuid

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.exceptions import RoleRequiredError, UserNotFoundError
from bankcards.models.user import Role, RoleType, User

logger = structlog.get_logger(__name__)


def require_role(user: User, role: RoleType) -> None:
    """Raise RoleRequiredError unless ``user`` holds ``role`` (among any others)."""
    if not user.has_role(role):
        raise RoleRequiredError(role.value)


async def get_or_create_role(db: AsyncSession, role: RoleType) -> Role:
    result = await db.execute(select(Role).where(Role.name == role))
    existing = result.scalar_one_or_none()
    if existing is not None:
        return existing

    created = Role(name=role)
    db.add(created)
    await db.flush()
    return created


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def grant_role(
    db: AsyncSession,
    admin: User,
    user_id: uuid.UUID,
    role: RoleType,
) -> User:
    """
    [ADMIN ONLY] Grant ``role`` to a user. Idempotent.

    Raises:
        RoleRequiredError: If ``admin`` is not an ADMIN.
        UserNotFoundError: If the target user does not exist.
    """
    require_role(admin, RoleType.ADMIN)
    user = await get_user(db, user_id)

    user.roles.add(await get_or_create_role(db, role))
    await db.flush()

    logger.info("role_granted", user_id=str(user.id), role=role.value, admin_id=str(admin.id))
    return user


async def set_user_active(
    db: AsyncSession,
    admin: User,
    user_id: uuid.UUID,
    active: bool,
) -> User:
    """[ADMIN ONLY] Block (active=False) or unblock (active=True) a user."""
    require_role(admin, RoleType.ADMIN)
    user = await get_user(db, user_id)

    user.is_active = active
    await db.flush()

    logger.info("user_active_changed", user_id=str(user.id), active=active, admin_id=str(admin.id))
    return user
