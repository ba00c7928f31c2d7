"""
Pydantic schemas for Card endpoints.

Card numbers are NEVER returned in full. Responses carry the masked form
("**** **** **** 1234"), produced by decrypting the stored number. All
monetary amounts are integer cents.
"""

import uuid
from datetime import date

from pydantic import BaseModel, Field

from bankcards.models.card import CardStatus


class CardCreateRequest(BaseModel):
    """Request body for POST /admin/cards."""
    owner_username: str = Field(min_length=3, max_length=50)
    expiry_date: date
    initial_balance_cents: int = Field(ge=0, description="Opening balance in cents")


class CardResponse(BaseModel):
    """Display projection of a card."""
    id: uuid.UUID
    masked_card_number: str
    owner_username: str
    expiry_date: date
    status: CardStatus
    balance_cents: int


class BalanceResponse(BaseModel):
    card_id: uuid.UUID
    balance_cents: int
