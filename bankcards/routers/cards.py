"""
Cards router — the authenticated user's own cards.

Endpoints:
  GET  /cards                    — List my cards (search, status, pagination)
  POST /cards/{card_id}/block    — Block a card (owner or admin)
  GET  /cards/{card_id}/balance  — Read a card's balance (owner only)

Card numbers are only ever returned masked.
"""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.config import settings
from bankcards.database import get_db
from bankcards.dependencies import get_current_principal
from bankcards.models.card import CardStatus
from bankcards.schemas.card import BalanceResponse, CardResponse
from bankcards.schemas.page import Page
from bankcards.schemas.user import Principal
from bankcards.services import card_service, listing_service

router = APIRouter()


@router.get(
    "",
    response_model=Page[CardResponse],
    summary="List my cards",
)
async def list_my_cards(
    search: str | None = Query(None, description="Substring of the card number"),
    status: CardStatus | None = Query(None, description="Filter by status"),
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """List the authenticated user's cards, masked, with pagination metadata."""
    return await listing_service.list_my_cards(
        db=db,
        principal=principal,
        search=search,
        status=status,
        page=page,
        size=size,
    )


@router.post(
    "/{card_id}/block",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Block a card",
)
async def block_card(
    card_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Block one of your cards. Admins may block any card."""
    await card_service.block_card(db, principal, card_id)


@router.get(
    "/{card_id}/balance",
    response_model=BalanceResponse,
    summary="Get a card's balance",
)
async def get_balance(
    card_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Balance in cents. Only the card's owner can read it."""
    balance_cents = await card_service.get_balance(db, principal, card_id)
    return BalanceResponse(card_id=card_id, balance_cents=balance_cents)
