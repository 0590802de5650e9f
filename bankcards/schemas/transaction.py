"""
Pydantic schemas for Transfer endpoints.

Amounts travel as decimal strings with at most two places ("200.00"), never
as floats. An amount with more places is rejected rather than rounded.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bankcards.models.transaction import TransactionStatus, TransactionType


class TransferRequest(BaseModel):
    """Request body for POST /transfers."""
    from_number: str = Field(min_length=12, max_length=19, pattern=r"^\d+$")
    to_number: str = Field(min_length=12, max_length=19, pattern=r"^\d+$")
    amount: Decimal = Field(description="Amount with at most two decimal places")
    comment: str | None = Field(None, max_length=1000)
    type: TransactionType = TransactionType.TRANSFER


class TransactionResponse(BaseModel):
    """Public representation of a recorded transaction."""
    id: uuid.UUID
    sender_account_id: uuid.UUID
    recipient_account_id: uuid.UUID
    recipient_card_id: uuid.UUID
    amount: Decimal
    comment: str | None
    type: TransactionType
    status: TransactionStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class TransferResponse(BaseModel):
    """Response body for a successful transfer."""
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

    model_config = {"from_attributes": True}
