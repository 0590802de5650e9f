"""
Pydantic schemas for Card endpoints.

Full card numbers are returned exactly once, by the issuance endpoint. Every
other response carries the masked form ("**** **** **** 4242"); the CVC is
never returned after issuance.

Requests that name a card send the number in the body rather than the URL,
so it does not end up in access logs.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bankcards.models.card import Card
from bankcards.models.notification import EventType
from bankcards.schemas.transaction import TransactionResponse
from bankcards.services import card_directory


class CardNumberRequest(BaseModel):
    """Request body naming one card by its full number."""
    number: str = Field(min_length=12, max_length=19, pattern=r"^\d+$")


class CardResponse(BaseModel):
    """Public representation of a card (masked — no full number or CVC)."""
    id: uuid.UUID
    owner_id: uuid.UUID
    masked_number: str
    is_active: bool
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_card(cls, card: Card, masked_number: str | None = None) -> "CardResponse":
        return cls(
            id=card.id,
            owner_id=card.owner_id,
            masked_number=masked_number or card_directory.masked_number(card),
            is_active=card.is_active,
            created_at=card.created_at,
            expires_at=card.expires_at,
        )


class IssuedCardResponse(CardResponse):
    """Issuance response: the only place the full number and CVC appear."""
    number: str
    cvc: str
    account_id: uuid.UUID
    balance: Decimal


class CardStatusResponse(BaseModel):
    """Balance of one card plus the transfers it has sent, oldest first."""
    card_id: uuid.UUID
    masked_number: str
    balance: Decimal
    transactions: list[TransactionResponse]


class NotificationResponse(BaseModel):
    id: int
    event: EventType
    user_id: uuid.UUID
    account_id: uuid.UUID | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
