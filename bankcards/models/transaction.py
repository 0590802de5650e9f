"""
PaymentTransaction model — the audit record of a completed transfer.

Every successful transfer appends exactly one PaymentTransaction in the same
database transaction as the debit and the credit. Records are never updated
after insert; there is no code path that mutates one.

Key fields:
  - sender_account_id: The debited account
  - recipient_account_id: The credited account (a real foreign key, so the
    audit trail can be navigated in both directions)
  - recipient_card_id: The recipient card's id, as shown on receipts
  - amount_cents: Always positive (the direction is sender -> recipient)
  - type: What kind of movement the caller declared (TRANSFER by default)
  - status: COMPLETED for every record the transfer engine writes; the other
    values exist for records produced by other channels
"""

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Text, Integer, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bankcards.database import Base
from bankcards.models.account import CENTS


class TransactionType(str, enum.Enum):
    TRANSFER = "TRANSFER"
    PAYMENT = "PAYMENT"
    WITHDRAWAL = "WITHDRAWAL"
    DEPOSIT = "DEPOSIT"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"

    __table_args__ = (
        CheckConstraint("amount_cents > 0", name="ck_payment_transactions_positive_amount"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )

    sender_account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("card_accounts.id"),
        nullable=False,
        index=True,
    )

    recipient_account_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("card_accounts.id"),
        nullable=False,
        index=True,
    )

    recipient_card_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cards.id"),
        nullable=False,
    )

    amount_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType),
        nullable=False,
        default=TransactionType.TRANSFER,
    )

    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )

    # Indexed for per-account history ordered by time
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    # --- Relationships ---
    sender_account: Mapped["Account"] = relationship(
        back_populates="sent_transactions",
        foreign_keys=[sender_account_id],
    )
    recipient_account: Mapped["Account"] = relationship(
        foreign_keys=[recipient_account_id],
    )

    @property
    def amount(self) -> Decimal:
        return (Decimal(self.amount_cents) * CENTS).quantize(CENTS)
