"""
Pydantic schemas for user administration.

hashed_password is never part of any response schema.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel

from bankcards.models.user import RoleType, User


class RoleGrantRequest(BaseModel):
    """Request body for POST /admin/users/{user_id}/roles."""
    role: RoleType


class UserResponse(BaseModel):
    """Public representation of a User."""
    id: uuid.UUID
    login: str
    email: str
    roles: list[str]
    is_active: bool
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            login=user.login,
            email=user.email,
            roles=user.role_names,
            is_active=user.is_active,
            created_at=user.created_at,
        )
