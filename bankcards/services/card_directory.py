"""
Card directory — resolve a plaintext card number to its Card record.

Lookup goes through the blind index: the number is run through the keyed
HMAC and the result is matched against the UNIQUE, indexed number_lookup
column. One indexed query per lookup, however many cards exist; the
ciphertext column is never scanned or decrypted to find a card.

Everything here is read-only.
"""

from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.clock import as_utc, utcnow
from bankcards.crypto import card_cipher, mask
from bankcards.exceptions import CardNotFoundError
from bankcards.models.card import Card

logger = structlog.get_logger(__name__)


async def find_by_number(
    db: AsyncSession,
    number: str,
    *,
    for_update: bool = False,
) -> Card:
    """
    Find a card by its full number.

    Args:
        db: Database session.
        number: The plaintext card number supplied by the caller.
        for_update: Lock the card row (SELECT ... FOR UPDATE).

    Returns:
        The matching Card, with its account loaded.

    Raises:
        CardNotFoundError: If no card has this number.
    """
    query = select(Card).where(Card.number_lookup == card_cipher.lookup_key(number))
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    card = result.scalar_one_or_none()

    if card is None:
        logger.info("card_lookup_miss", card=mask(number))
        raise CardNotFoundError(mask(number))

    return card


def is_usable(card: Card, now: datetime | None = None) -> bool:
    """A card is usable while it is active and has not yet expired."""
    now = now or utcnow()
    return bool(card.is_active) and as_utc(card.expires_at) > now


def reveal_number(card: Card) -> str:
    """
    Decrypt a card's stored number.

    A DecryptionError here means the stored data or the key is wrong. It is
    a data-integrity failure and propagates as such, never as "not found".
    """
    return card_cipher.decrypt(card.number_ciphertext)


def masked_number(card: Card) -> str:
    return mask(reveal_number(card))
