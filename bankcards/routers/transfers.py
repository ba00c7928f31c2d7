"""
Transfers router — atomic money transfers between the user's own cards.

Endpoints:
  POST /transfers — Move money from one card to another

Both cards must belong to the authenticated user and be ACTIVE. Either
both balances change or neither does.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import get_db
from bankcards.dependencies import get_current_principal
from bankcards.schemas.transfer import TransferRequest, TransferResponse
from bankcards.schemas.user import Principal
from bankcards.services import transfer_service

router = APIRouter()


@router.post(
    "",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer money between your cards",
)
async def create_transfer(
    request: TransferRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Transfer money from one of your cards to another.

    - **from_card_id** / **to_card_id**: Both must be yours, ACTIVE, and different
    - **amount_cents**: Positive integer in cents (e.g., 50.00 = 5000)
    """
    result = await transfer_service.transfer(
        db=db,
        principal=principal,
        from_card_id=request.from_card_id,
        to_card_id=request.to_card_id,
        amount_cents=request.amount_cents,
    )
    return TransferResponse(
        from_card_id=result.from_card.id,
        to_card_id=result.to_card.id,
        amount_cents=result.amount_cents,
        from_balance_cents=result.from_card.balance_cents,
        to_balance_cents=result.to_card.balance_cents,
    )
