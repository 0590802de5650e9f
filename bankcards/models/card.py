"""
Card model — a payment card owned by a User, backed by exactly one Account.

The full card number is never stored in plaintext. Two columns stand in for it
(see bankcards.crypto):

  - number_ciphertext: AES-256-GCM blob with a random nonce. Unique, but
    useless for search because encrypting a number twice never gives the
    same bytes.
  - number_lookup: HMAC-SHA256 of the number under a separate key. UNIQUE
    and indexed, so resolving a card by number is a single index lookup
    rather than a decrypt-and-compare scan over every card.

Lifetime:
  expires_at is created_at + 5 years. A card is usable only while it is
  active and not expired; blocking a card clears is_active.

The Account is owned by the card: deleting a card deletes its account
(cascade="all, delete-orphan").
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime, ForeignKey, LargeBinary
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base


class Card(Base):
    __tablename__ = "cards"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    # nonce || AES-256-GCM ciphertext || tag
    number_ciphertext: Mapped[bytes] = mapped_column(
        LargeBinary,
        unique=True,
        nullable=False,
    )

    # HMAC-SHA256 blind index (hex), the only column used to find a card by number
    number_lookup: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    cvc: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
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
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    # --- Relationships ---
    owner: Mapped["User"] = relationship(
        back_populates="cards",
        lazy="selectin",
    )

    account: Mapped["Account"] = relationship(
        back_populates="card",
        uselist=False,
        cascade="all, delete-orphan",
        lazy="selectin",
    )
