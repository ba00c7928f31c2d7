"""
Pydantic schemas for card-to-card transfers.

All monetary amounts are in integer cents (e.g., 10.50 = 1050).
"""

import uuid

from pydantic import BaseModel, Field, model_validator


class TransferRequest(BaseModel):
    """Request body for POST /transfers."""
    from_card_id: uuid.UUID
    to_card_id: uuid.UUID
    amount_cents: int = Field(gt=0, description="Amount in cents (must be positive)")

    @model_validator(mode="after")
    def cards_must_differ(self):
        """Cannot transfer money to the same card."""
        if self.from_card_id == self.to_card_id:
            raise ValueError("Cannot transfer to the same card")
        return self


class TransferResponse(BaseModel):
    """Response body for a successful transfer, with both balances after the move."""
    from_card_id: uuid.UUID
    to_card_id: uuid.UUID
    amount_cents: int
    from_balance_cents: int
    to_balance_cents: int
