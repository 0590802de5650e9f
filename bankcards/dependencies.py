"""
FastAPI dependencies for authentication and authorization.

  get_current_user (Bearer JWT -> User)
      └── require_admin (User -> User)                        [ADMIN role]

get_current_user delegates to auth_service.authenticate, so a route handler
only ever sees a User whose token verified and whose login matched the
token's login claim. Blocked users still authenticate; each operation then
decides whether a blocked user may proceed (transfers, for instance, reject
them with UserNotActiveError).

Roles are additive: require_admin asks "does this user hold ADMIN?", so a
user holding both USER and ADMIN passes.
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.models.user import RoleType, User
from bankcards.services import auth_service
from bankcards.services.user_service import require_role


# The tokenUrl points Swagger UI's "Authorize" button at the login endpoint.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to the authenticated User.

    Raises:
        TokenExpiredError / InvalidTokenError (401): Bad, expired, or
            mismatched token.
    """
    return await auth_service.authenticate(db, token)


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """
    Require the authenticated user to hold the ADMIN role.

    Raises:
        RoleRequiredError (403): If the user is not an admin.
    """
    require_role(user, RoleType.ADMIN)
    return user
