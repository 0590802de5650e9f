"""
Admin router — card issuance and user management.

All endpoints require the ADMIN role.

Endpoints:
  POST /admin/users/{user_id}/cards    — Issue a card (full number shown once)
  POST /admin/cards/block              — Block a card
  POST /admin/cards/unblock            — Unblock a card
  POST /admin/users/{user_id}/roles    — Grant a role (idempotent)
  POST /admin/users/{user_id}/block    — Block a user
  POST /admin/users/{user_id}/unblock  — Unblock a user

The service functions re-check the ADMIN role themselves, so they stay safe
when called from outside this router.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.crypto import mask
from bankcards.database import get_db
from bankcards.dependencies import require_admin
from bankcards.models.user import User
from bankcards.schemas.card import CardNumberRequest, CardResponse, IssuedCardResponse
from bankcards.schemas.user import RoleGrantRequest, UserResponse
from bankcards.services import card_service, user_service

router = APIRouter()


# ---------------------------------------------------------------------------
# Card admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/users/{user_id}/cards",
    response_model=IssuedCardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="[Admin] Issue a card to a user",
)
async def admin_issue_card(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Issue a new card with an empty account.

    The response is the only time the full number and CVC are returned.
    """
    issued = await card_service.issue_card(db, admin, user_id)
    card = issued.card
    return IssuedCardResponse(
        **CardResponse.from_card(card, issued.masked_number).model_dump(),
        number=issued.number,
        cvc=card.cvc,
        account_id=card.account.id,
        balance=card.account.balance,
    )


@router.post(
    "/cards/block",
    response_model=CardResponse,
    summary="[Admin] Block a card",
)
async def admin_block_card(
    request: CardNumberRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    card = await card_service.set_card_active(db, admin, request.number, active=False)
    return CardResponse.from_card(card, mask(request.number))


@router.post(
    "/cards/unblock",
    response_model=CardResponse,
    summary="[Admin] Unblock a card",
)
async def admin_unblock_card(
    request: CardNumberRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    card = await card_service.set_card_active(db, admin, request.number, active=True)
    return CardResponse.from_card(card, mask(request.number))


# ---------------------------------------------------------------------------
# User admin endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/users/{user_id}/roles",
    response_model=UserResponse,
    summary="[Admin] Grant a role to a user",
)
async def admin_grant_role(
    user_id: uuid.UUID,
    request: RoleGrantRequest,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Granting a role the user already holds is a no-op."""
    user = await user_service.grant_role(db, admin, user_id, request.role)
    return UserResponse.from_user(user)


@router.post(
    "/users/{user_id}/block",
    response_model=UserResponse,
    summary="[Admin] Block a user",
)
async def admin_block_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.set_user_active(db, admin, user_id, active=False)
    return UserResponse.from_user(user)


@router.post(
    "/users/{user_id}/unblock",
    response_model=UserResponse,
    summary="[Admin] Unblock a user",
)
async def admin_unblock_user(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.set_user_active(db, admin, user_id, active=True)
    return UserResponse.from_user(user)
