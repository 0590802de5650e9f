"""
Card service — card issuance, blocking, balance checks and card requests.

When an administrator issues a card:
  1. A 16-digit Luhn-valid number starting with "4" is generated
  2. A 3-digit CVC is generated
  3. Expiration is set to CARD_VALIDITY_DAYS (5 x 365 days) from now
  4. The number is stored twice, neither time in plaintext: as an
     AES-256-GCM ciphertext and as an HMAC blind index (see bankcards.crypto)
  5. An Account with a zero balance is created alongside the card

The full number is returned exactly once, in the issuance response. Every
later view of a card shows only the masked form.

Users do not issue or block cards themselves; they file a Notification
(CARD_CREATE_REQUESTED / CARD_BLOCK_REQUESTED) that an administrator acts on.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.clock import utcnow
from bankcards.config import settings
from bankcards.crypto import card_cipher, mask
from bankcards.exceptions import CardNotAvailableError, FatalError
from bankcards.models.account import Account
from bankcards.models.card import Card
from bankcards.models.notification import EventType, Notification
from bankcards.models.transaction import PaymentTransaction
from bankcards.models.user import RoleType, User
from bankcards.services import card_directory, validation
from bankcards.services.user_service import get_user, require_role

logger = structlog.get_logger(__name__)

CARD_PREFIX = "4"
CARD_LENGTH = 16
MAX_ISSUE_ATTEMPTS = 5


@dataclass(frozen=True)
class IssuedCard:
    """A freshly issued card. ``number`` is the only plaintext copy."""
    card: Card
    number: str
    masked_number: str


@dataclass(frozen=True)
class CardStatus:
    card: Card
    masked_number: str
    balance: Decimal
    transactions: list[PaymentTransaction]


def luhn_check_digit(partial: str) -> str:
    """Return the digit that makes ``partial + digit`` pass the Luhn check."""
    total = 0
    # Once the check digit is appended, the rightmost digit here sits in a
    # doubled position
    for i, ch in enumerate(reversed(partial)):
        d = int(ch)
        if i % 2 == 0:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return str((10 - total % 10) % 10)


def is_luhn_valid(number: str) -> bool:
    return number.isdigit() and luhn_check_digit(number[:-1]) == number[-1]


def generate_card_number() -> str:
    body = CARD_PREFIX + "".join(
        str(secrets.randbelow(10)) for _ in range(CARD_LENGTH - len(CARD_PREFIX) - 1)
    )
    return body + luhn_check_digit(body)


def _generate_cvc() -> str:
    return f"{secrets.randbelow(1000):03d}"


async def _lookup_taken(db: AsyncSession, lookup: str) -> bool:
    result = await db.execute(select(Card.id).where(Card.number_lookup == lookup))
    return result.scalar_one_or_none() is not None


async def issue_card(
    db: AsyncSession,
    admin: User,
    user_id: uuid.UUID,
) -> IssuedCard:
    """
    [ADMIN ONLY] Issue a new card, with an empty account, to a user.

    Args:
        db: Database session.
        admin: The acting administrator.
        user_id: The future card owner.

    Returns:
        IssuedCard carrying the plaintext number (shown once) and its mask.

    Raises:
        RoleRequiredError: If ``admin`` is not an ADMIN.
        UserNotFoundError: If the owner does not exist.
        UserNotActiveError: If the owner is blocked.
        FatalError: If no unused number was found after several attempts.
    """
    require_role(admin, RoleType.ADMIN)
    owner = await get_user(db, user_id)
    validation.user_is_active(owner)

    for _ in range(MAX_ISSUE_ATTEMPTS):
        number = generate_card_number()
        lookup = card_cipher.lookup_key(number)
        if not await _lookup_taken(db, lookup):
            break
        logger.warning("card_number_collision", user_id=str(owner.id))
    else:
        raise FatalError("Could not allocate a unique card number")

    now = utcnow()
    card = Card(
        owner_id=owner.id,
        number_ciphertext=card_cipher.encrypt(number),
        number_lookup=lookup,
        cvc=_generate_cvc(),
        created_at=now,
        expires_at=now + timedelta(days=settings.CARD_VALIDITY_DAYS),
        account=Account(balance_cents=0),
    )
    db.add(card)
    await db.flush()

    logger.info(
        "card_issued",
        card_id=str(card.id),
        card=mask(number),
        user_id=str(owner.id),
        admin_id=str(admin.id),
    )
    return IssuedCard(card=card, number=number, masked_number=mask(number))


async def set_card_active(
    db: AsyncSession,
    admin: User,
    number: str,
    active: bool,
) -> Card:
    """[ADMIN ONLY] Block (active=False) or unblock (active=True) a card by number."""
    require_role(admin, RoleType.ADMIN)
    card = await card_directory.find_by_number(db, number)

    card.is_active = active
    await db.flush()

    logger.info("card_active_changed", card=mask(number), active=active, admin_id=str(admin.id))
    return card


async def check_balance(db: AsyncSession, user: User, number: str) -> CardStatus:
    """
    Return the balance of one of the caller's cards, with the transfers it sent.

    Raises:
        UserNotActiveError: If the caller is blocked.
        CardNotFoundError: If the number matches no card.
        CardAccessDeniedError: If the card belongs to someone else.
        CardNotAvailableError: If the card is blocked or expired.
    """
    validation.user_is_active(user)
    card = await card_directory.find_by_number(db, number)
    validation.card_owned_by(user, card, number)
    if not card_directory.is_usable(card):
        raise CardNotAvailableError("Card is blocked or expired")

    result = await db.execute(
        select(PaymentTransaction)
        .where(PaymentTransaction.sender_account_id == card.account.id)
        .order_by(PaymentTransaction.created_at)
    )
    return CardStatus(
        card=card,
        masked_number=mask(number),
        balance=card.account.balance,
        transactions=list(result.scalars().all()),
    )


async def list_active_cards(db: AsyncSession, user: User) -> list[Card]:
    """The caller's active cards, newest first."""
    result = await db.execute(
        select(Card)
        .where(Card.owner_id == user.id, Card.is_active.is_(True))
        .order_by(Card.created_at.desc())
    )
    return list(result.scalars().all())


async def request_card(db: AsyncSession, user: User) -> Notification:
    """File a request for a new card."""
    validation.user_is_active(user)
    notification = Notification(event=EventType.CARD_CREATE_REQUESTED, user_id=user.id)
    db.add(notification)
    await db.flush()

    logger.info("card_requested", user_id=str(user.id), notification_id=notification.id)
    return notification


async def request_block(db: AsyncSession, user: User, number: str) -> Notification:
    """
    File a request to block one of the caller's cards.

    The card stays active until an administrator blocks it.
    """
    validation.user_is_active(user)
    card = await card_directory.find_by_number(db, number)
    validation.card_owned_by(user, card, number)

    notification = Notification(
        event=EventType.CARD_BLOCK_REQUESTED,
        user_id=user.id,
        account_id=card.account.id,
    )
    db.add(notification)
    await db.flush()

    logger.info(
        "card_block_requested",
        user_id=str(user.id),
        card=mask(number),
        notification_id=notification.id,
    )
    return notification
