"""
Cards router — the caller's own cards.

Endpoints:
  GET  /cards                 — List the caller's active cards (masked)
  POST /cards/balance         — Balance and sent transfers of one card
  POST /cards/requests        — Ask an administrator for a new card
  POST /cards/block-requests  — Ask an administrator to block a card

Card numbers travel in request bodies, never in URLs.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.dependencies import get_current_user
from bankcards.models.user import User
from bankcards.schemas.card import (
    CardNumberRequest,
    CardResponse,
    CardStatusResponse,
    NotificationResponse,
)
from bankcards.schemas.transaction import TransactionResponse
from bankcards.services import card_service

router = APIRouter()


@router.get(
    "",
    response_model=list[CardResponse],
    summary="List my active cards",
)
async def list_cards(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's active cards, newest first, with masked numbers."""
    cards = await card_service.list_active_cards(db, user)
    return [CardResponse.from_card(card) for card in cards]


@router.post(
    "/balance",
    response_model=CardStatusResponse,
    summary="Check a card's balance",
)
async def check_balance(
    request: CardNumberRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the balance of one of the caller's cards and the transfers it sent."""
    card_status = await card_service.check_balance(db, user, request.number)
    return CardStatusResponse(
        card_id=card_status.card.id,
        masked_number=card_status.masked_number,
        balance=card_status.balance,
        transactions=[TransactionResponse.model_validate(t) for t in card_status.transactions],
    )


@router.post(
    "/requests",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a new card",
)
async def request_card(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await card_service.request_card(db, user)


@router.post(
    "/block-requests",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request that a card be blocked",
)
async def request_block(
    request: CardNumberRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The card stays usable until an administrator blocks it."""
    return await card_service.request_block(db, user, request.number)
