"""
Validation chain — pre-conditions checked before any money moves.

Each check only reads, and each raises its own error kind, so the first
failing check short-circuits the chain and tells the caller exactly what to
fix:

  user_is_active      -> UserNotActiveError      (409)
  cards_available     -> CardNotFoundError       (404)
                         CardNotAvailableError   (409)
  card_owned_by       -> CardAccessDeniedError   (403)
  amount_above_floor  -> AmountTooSmallError     (400)
  sufficient_funds    -> InsufficientFundsError  (409)

run_transfer_checks() runs all of them in that order. It finishes before the
transfer engine touches a balance, so a rejected transfer never leaves a
partial mutation behind.

A transfer from a card to itself passes this chain on purpose: the debit and
the credit cancel out and the transfer is still recorded.
"""

from decimal import Decimal, InvalidOperation

from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.crypto import mask
from bankcards.exceptions import (
    AmountTooSmallError,
    CardAccessDeniedError,
    CardNotAvailableError,
    InsufficientFundsError,
    InvalidAmountError,
    UserNotActiveError,
)
from bankcards.models.account import Account
from bankcards.models.card import Card
from bankcards.models.user import User
from bankcards.services import card_directory

MIN_TRANSFER_AMOUNT = Decimal("1.00")


def to_minor_units(amount) -> int:
    """
    Convert a monetary amount to integer cents without rounding.

    Accepts Decimal, int or str (floats are read through their shortest
    repr). Anything with more than two decimal places, or not a finite
    number, is rejected.

    Raises:
        InvalidAmountError: If the amount cannot be represented exactly in cents.
    """
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmountError(amount) from e

    if not value.is_finite():
        raise InvalidAmountError(amount)

    cents = value * 100
    if cents != cents.to_integral_value():
        raise InvalidAmountError(amount)
    return int(cents)


def user_is_active(user: User) -> None:
    if not user.is_active:
        raise UserNotActiveError(user.login)


async def cards_available(
    db: AsyncSession,
    from_number: str,
    to_number: str,
) -> tuple[Card, Card]:
    """
    Resolve both cards and require that each is active and unexpired.

    Returns:
        (from_card, to_card). For a same-card transfer both are the same object.

    Raises:
        CardNotFoundError: If either number matches no card.
        CardNotAvailableError: If either card is blocked or expired.
    """
    from_card = await card_directory.find_by_number(db, from_number)
    to_card = await card_directory.find_by_number(db, to_number)

    if not (card_directory.is_usable(from_card) and card_directory.is_usable(to_card)):
        raise CardNotAvailableError()

    return from_card, to_card


def card_owned_by(user: User, card: Card, number: str) -> None:
    if card.owner_id != user.id:
        raise CardAccessDeniedError(mask(number))


def amount_above_floor(amount: Decimal) -> None:
    if amount < MIN_TRANSFER_AMOUNT:
        raise AmountTooSmallError(amount, MIN_TRANSFER_AMOUNT)


def sufficient_funds(account: Account, amount: Decimal) -> None:
    if account.balance - amount < 0:
        raise InsufficientFundsError(
            account_id=account.id,
            requested=amount,
            available=account.balance,
        )


async def run_transfer_checks(
    db: AsyncSession,
    user: User,
    from_number: str,
    to_number: str,
    amount: Decimal,
) -> tuple[Card, Card]:
    """Run the full chain for a transfer; returns the resolved cards."""
    user_is_active(user)
    from_card, to_card = await cards_available(db, from_number, to_number)
    card_owned_by(user, from_card, from_number)
    amount_above_floor(amount)
    sufficient_funds(from_card.account, amount)
    return from_card, to_card
