"""
Notification model — a user's request that an administrator act on a card.

  - CARD_CREATE_REQUESTED: the user asks for a new card (no account yet)
  - CARD_BLOCK_REQUESTED: the user asks for one of their cards to be blocked;
    account_id points at that card's account

The card stays active until an administrator blocks it.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from bankcards.database import Base


class EventType(str, enum.Enum):
    CARD_CREATE_REQUESTED = "CARD_CREATE_REQUESTED"
    CARD_BLOCK_REQUESTED = "CARD_BLOCK_REQUESTED"


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    event: Mapped[EventType] = mapped_column(
        Enum(EventType),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    account_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("card_accounts.id", ondelete="CASCADE"),
        nullable=True,
    )

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
