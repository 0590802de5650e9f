"""
User and Role models — the authentication identity.

A User logs in with a unique login and owns zero or more cards. Authorization
is role based:

  - USER:  May view and use their own cards and transfer between them.
  - ADMIN: May issue, block and unblock cards, and manage users.

Roles are additive. A user may hold USER and ADMIN at the same time, and every
check asks "does this user hold role X?", never "is this user's only role X?".

The roles collection is a Python ``set`` (collection_class=set). Granting a
role is ``user.roles.add(role)``, so granting a role the user already holds is
a no-op by construction.

The password is stored as an Argon2id hash — never in plaintext.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base


class RoleType(str, enum.Enum):
    """Role names; the str mixin keeps JSON and JWT claims plain strings."""
    USER = "USER"
    ADMIN = "ADMIN"


user_roles = Table(
    "user_roles",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[RoleType] = mapped_column(
        Enum(RoleType),
        unique=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"Role({self.name.value})"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # Login is the sign-in identifier and the JWT subject
    login: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Blocked users keep their data but cannot log in or move money
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    # selectin loading keeps roles available after the session closes (async)
    roles: Mapped[set[Role]] = relationship(
        secondary=user_roles,
        collection_class=set,
        lazy="selectin",
    )

    cards: Mapped[list["Card"]] = relationship(
        back_populates="owner",
        order_by="Card.created_at.desc()",
    )

    @property
    def role_names(self) -> list[str]:
        """Sorted role names, as carried in the access token."""
        return sorted(role.name.value for role in self.roles)

    def has_role(self, role: RoleType) -> bool:
        return any(r.name == role for r in self.roles)
