"""
Transfers router — atomic money transfers between cards.

Endpoints:
  POST /transfers — Transfer money from one of the caller's cards to any card

The sending card must belong to the authenticated user; the receiving card
can belong to anyone. Either the debit, the credit and the transaction
record are all written, or none of them is.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.dependencies import get_current_user
from bankcards.models.user import User
from bankcards.schemas.transaction import TransferRequest, TransferResponse
from bankcards.services import transfer_service

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between cards",
)
async def create_transfer(
    request: TransferRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Transfer money from one card to another.

    - **from_number**: Must be one of the caller's active, unexpired cards
    - **to_number**: Any active, unexpired card
    - **amount**: At least 1.00, at most two decimal places
    - **comment**: Optional note stored with the transaction
    """
    receipt = await transfer_service.transfer(
        db=db,
        user=user,
        from_number=request.from_number,
        to_number=request.to_number,
        amount=request.amount,
        comment=request.comment,
        txn_type=request.type,
    )
    return TransferResponse.model_validate(receipt)
