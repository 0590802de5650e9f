"""
Transfer service — moves money between two card accounts as one unit.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. A transfer walks a fixed,
linear sequence of stages:

    VALIDATED -> RESOLVED -> DEBITED -> CREDITED -> RECORDED -> COMMITTED

  VALIDATED  The validation chain passed (user active, both cards usable,
             amount >= 1.00, sender has the funds as currently loaded).
  RESOLVED   Both account rows are locked and re-read from the database.
  DEBITED    The sender's balance is reduced.
  CREDITED   The recipient's balance is increased.
  RECORDED   One COMPLETED PaymentTransaction is appended.
  COMMITTED  The savepoint is released into the caller's transaction.

Atomicity:
  Everything from RESOLVED to RECORDED runs inside db.begin_nested()
  (a SAVEPOINT). If any statement fails, the savepoint is rolled back and
  the debit, the credit and the record disappear together; the error is
  re-raised. The request session (get_db) then rolls back as well.

Lost updates:
  The funds check that guards the debit runs against rows fetched with
  SELECT ... FOR UPDATE and populate_existing, not against the balance
  read during validation. Two concurrent transfers out of the same account
  serialize on that lock, and the second sees the first one's debit.

Deadlock prevention:
  Both accounts are locked in ascending id order, whatever the direction of
  the transfer. A transfer from a card to itself locks its one account once.

SQLite note:
  with_for_update() is a no-op on SQLite, whose database-level write lock
  already serializes writers. On PostgreSQL it takes real row locks.
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.crypto import mask
from bankcards.exceptions import BankCardsError
from bankcards.models.account import CENTS, Account
from bankcards.models.card import Card
from bankcards.models.transaction import PaymentTransaction, TransactionStatus, TransactionType
from bankcards.models.user import User
from bankcards.services import validation

logger = structlog.get_logger(__name__)


class TransferStage(str, enum.Enum):
    VALIDATED = "VALIDATED"
    RESOLVED = "RESOLVED"
    DEBITED = "DEBITED"
    CREDITED = "CREDITED"
    RECORDED = "RECORDED"
    COMMITTED = "COMMITTED"


@dataclass(frozen=True)
class TransactionReceipt:
    """What the caller gets back from a successful transfer."""
    transaction_id: uuid.UUID
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    from_card_id: uuid.UUID
    to_card_id: uuid.UUID
    transaction_type: TransactionType
    status: TransactionStatus
    amount: Decimal
    comment: str | None
    created_at: datetime


async def transfer(
    db: AsyncSession,
    user: User,
    from_number: str,
    to_number: str,
    amount: Decimal,
    comment: str | None = None,
    txn_type: TransactionType = TransactionType.TRANSFER,
) -> TransactionReceipt:
    """
    Transfer ``amount`` from the card ``from_number`` to the card ``to_number``.

    Args:
        db: Database session (the caller owns the outer transaction).
        user: The authenticated user; must own the sending card.
        from_number: Full number of the sending card.
        to_number: Full number of the receiving card (any owner).
        amount: Positive amount with at most two decimal places.
        comment: Optional free-text note stored on the transaction.
        txn_type: The declared transaction type.

    Returns:
        A TransactionReceipt for the recorded transfer.

    Raises:
        UserNotActiveError, CardNotFoundError, CardNotAvailableError,
        CardAccessDeniedError, InvalidAmountError, AmountTooSmallError,
        InsufficientFundsError: Validation failures. Nothing was written.
        Any persistence error after validation propagates unchanged after
        the savepoint has been rolled back; balances are untouched.
    """
    amount_cents = validation.to_minor_units(amount)
    amount = Decimal(amount_cents) * CENTS

    from_card, to_card = await validation.run_transfer_checks(
        db, user, from_number, to_number, amount
    )
    log = logger.bind(
        user_id=str(user.id),
        from_card=mask(from_number),
        to_card=mask(to_number),
        amount=str(amount),
    )
    log.debug("transfer_stage", stage=TransferStage.VALIDATED.value)

    try:
        async with db.begin_nested():
            sender, recipient = await _lock_accounts(db, from_card, to_card)
            log.debug("transfer_stage", stage=TransferStage.RESOLVED.value)

            # Re-check against the locked row, not the balance seen during validation
            validation.sufficient_funds(sender, amount)

            sender.balance_cents -= amount_cents
            log.debug("transfer_stage", stage=TransferStage.DEBITED.value)

            recipient.balance_cents += amount_cents
            log.debug("transfer_stage", stage=TransferStage.CREDITED.value)

            txn = await _record_transaction(
                db,
                sender=sender,
                recipient=recipient,
                to_card=to_card,
                amount_cents=amount_cents,
                comment=comment,
                txn_type=txn_type,
            )
            log.debug("transfer_stage", stage=TransferStage.RECORDED.value)
    except BankCardsError as e:
        log.warning("transfer_rejected", error_type=e.error_type)
        raise
    except Exception:
        log.exception("transfer_rolled_back")
        raise

    log.info(
        "transfer_completed",
        stage=TransferStage.COMMITTED.value,
        transaction_id=str(txn.id),
    )

    return TransactionReceipt(
        transaction_id=txn.id,
        from_account_id=sender.id,
        to_account_id=recipient.id,
        from_card_id=from_card.id,
        to_card_id=to_card.id,
        transaction_type=txn.type,
        status=txn.status,
        amount=txn.amount,
        comment=txn.comment,
        created_at=txn.created_at,
    )


async def _lock_accounts(
    db: AsyncSession,
    from_card: Card,
    to_card: Card,
) -> tuple[Account, Account]:
    """
    Lock and re-read both accounts in ascending id order.

    populate_existing overwrites the identity-map copies with the locked
    row's current values.
    """
    sender_id = from_card.account.id
    recipient_id = to_card.account.id

    locked: dict[uuid.UUID, Account] = {}
    for account_id in sorted({sender_id, recipient_id}):
        result = await db.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        locked[account_id] = result.scalar_one()

    return locked[sender_id], locked[recipient_id]


async def _record_transaction(
    db: AsyncSession,
    *,
    sender: Account,
    recipient: Account,
    to_card: Card,
    amount_cents: int,
    comment: str | None,
    txn_type: TransactionType,
) -> PaymentTransaction:
    """Append the audit record and flush the whole unit to the database."""
    txn = PaymentTransaction(
        sender_account_id=sender.id,
        recipient_account_id=recipient.id,
        recipient_card_id=to_card.id,
        amount_cents=amount_cents,
        comment=comment,
        type=txn_type,
        status=TransactionStatus.COMPLETED,
    )
    db.add(txn)
    await db.flush()
    return txn
