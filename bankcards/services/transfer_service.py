"""
Transfer service — atomic balance moves between two cards.

THIS IS THE MOST CRITICAL FILE IN THE PROJECT. It handles:
  - Input validation (positive amount, two distinct cards)
  - Ownership: the principal must own BOTH cards
  - Balance enforcement (no negative balances)

Card status is not consulted: a BLOCKED or EXPIRED card still sends and
receives transfers between its owner's cards.
  - Atomicity and lost-update protection

Atomicity:
  The debit and the credit are flushed in the same unit of work of the
  request's database transaction. get_db() commits both or rolls back both;
  no code path commits between the two writes.

Lost updates:
  Two concurrent transfers may read the same balance before either writes.
  Cards are version-counted (see bankcards.models.card), so the second
  writer's UPDATE matches zero rows and the flush raises StaleDataError.
  We then roll back, re-read both cards, and re-run every check, including
  the balance check, on the fresh data. After TRANSFER_MAX_ATTEMPTS tries
  the transfer fails with ConcurrentModificationError.

Because a retry rolls back the session, a transfer must be the only write
in its request transaction.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bankcards.config import settings
from bankcards.exceptions import (
    ConcurrentModificationError,
    InsufficientFundsError,
    InvalidInputError,
)
from bankcards.models.card import Card
from bankcards.schemas.user import Principal
from bankcards.services import policy
from bankcards.services.card_service import get_card_or_404

logger = logging.getLogger(__name__)


@dataclass
class TransferResult:
    from_card: Card
    to_card: Card
    amount_cents: int


async def _apply_transfer(
    db: AsyncSession,
    principal: Principal,
    from_card_id: uuid.UUID,
    to_card_id: uuid.UUID,
    amount_cents: int,
) -> TransferResult:
    source = await get_card_or_404(db, from_card_id, "Source")
    dest = await get_card_or_404(db, to_card_id, "Destination")

    policy.authorize_owner_of_all(principal, source, dest)

    if source.balance_cents < amount_cents:
        raise InsufficientFundsError(
            card_id=source.id,
            requested_cents=amount_cents,
            available_cents=source.balance_cents,
        )

    source.balance_cents -= amount_cents
    dest.balance_cents += amount_cents
    await db.flush()

    return TransferResult(from_card=source, to_card=dest, amount_cents=amount_cents)


async def transfer(
    db: AsyncSession,
    principal: Principal,
    from_card_id: uuid.UUID,
    to_card_id: uuid.UUID,
    amount_cents: int,
    max_attempts: int | None = None,
) -> TransferResult:
    """
    Move `amount_cents` from one of the principal's cards to another.

    Args:
        db: Database session (the transfer must be its only write).
        principal: The acting user; must own both cards.
        from_card_id: Source card.
        to_card_id: Destination card.
        amount_cents: Positive integer amount in cents.
        max_attempts: Optimistic-concurrency retries (defaults to settings).

    Returns:
        TransferResult with both cards as they stand after the move.

    Raises:
        InvalidInputError: Non-positive amount or source == destination.
        CardNotFoundError: Either card is missing ("Source"/"Destination").
        ForbiddenError: The principal does not own both cards.
        InsufficientFundsError: The source balance is below the amount.
        ConcurrentModificationError: Retries exhausted under contention.
    """
    if amount_cents <= 0:
        raise InvalidInputError("Transfer amount must be positive")
    if from_card_id == to_card_id:
        raise InvalidInputError("Cannot transfer to the same card")

    max_attempts = max_attempts or settings.TRANSFER_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        try:
            result = await _apply_transfer(
                db, principal, from_card_id, to_card_id, amount_cents
            )
        except StaleDataError:
            await db.rollback()
            logger.warning(
                "Transfer %s -> %s lost a concurrent update (attempt %d/%d)",
                from_card_id, to_card_id, attempt, max_attempts,
            )
            continue

        logger.info(
            "Transferred %d cents %s -> %s for %s",
            amount_cents, from_card_id, to_card_id, principal.username,
        )
        return result

    raise ConcurrentModificationError(
        f"Transfer could not complete after {max_attempts} attempts due to concurrent updates"
    )
