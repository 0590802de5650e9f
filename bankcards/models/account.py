"""
Account model — the balance behind exactly one Card.

Balance management:
  The balance is stored as an integer number of minor units
  (`balance_cents`, e.g. 10.50 = 1050) and exposed as a two-place Decimal
  through the `balance` property. Integer storage keeps arithmetic exact on
  every backend; callers never see a float.

  Amounts with more than two decimal places are rejected before they reach
  this model (see services.validation.to_minor_units), so nothing is ever
  silently rounded on the way in.

  A CHECK constraint enforces that the balance can never be negative. The
  transfer engine checks funds against a locked row before debiting; the
  constraint is the database's own guard against a bug in that path.

Transactions:
  `sent_transactions` lists the PaymentTransactions this account sent,
  oldest first.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Integer, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base

CENTS = Decimal("0.01")


class Account(Base):
    __tablename__ = "card_accounts"

    __table_args__ = (
        CheckConstraint(
            "balance_cents >= 0",
            name="ck_card_accounts_non_negative_balance",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    # One account per card; UNIQUE enforces the one-to-one relationship
    card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    balance_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # --- Relationships ---
    card: Mapped["Card"] = relationship(
        back_populates="account",
    )

    sent_transactions: Mapped[list["PaymentTransaction"]] = relationship(
        back_populates="sender_account",
        foreign_keys="PaymentTransaction.sender_account_id",
        order_by="PaymentTransaction.created_at",
    )

    @property
    def balance(self) -> Decimal:
        """Current balance as a two-place Decimal."""
        return (Decimal(self.balance_cents) * CENTS).quantize(CENTS)
