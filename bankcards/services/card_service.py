"""
Card service — issuance, lifecycle, and balance reads.

Every operation takes the acting Principal explicitly and follows the same
shape:

  1. Load the card (CardNotFoundError if absent)
  2. Ask the authorization policy (ForbiddenError, nothing written yet)
  3. Mutate and flush inside the request's database transaction

Issuance:
  1. A Luhn-valid 16-digit number starting with "4" is generated
  2. Its HMAC fingerprint is checked against existing cards (retry on hit)
  3. The number is AES-encrypted; only ciphertext and fingerprint are stored
  4. The card starts ACTIVE with the requested opening balance

Optimistic concurrency:
  Cards carry a version column. If a lifecycle write races with another
  committed write to the same card, the flush raises StaleDataError, which
  is surfaced as ConcurrentModificationError.
"""

import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bankcards.config import settings
from bankcards.exceptions import (
    CardNotFoundError,
    ConcurrentModificationError,
    ConflictError,
    InvalidInputError,
    UserNotFoundError,
)
from bankcards.models.card import Card, CardStatus
from bankcards.models.user import User
from bankcards.schemas.card import CardResponse
from bankcards.schemas.user import Principal
from bankcards.services import policy
from bankcards.services.card_cipher import CardNumberCipher, get_cipher, mask_card_number
from bankcards.services.card_numbers import generate_card_number

logger = logging.getLogger(__name__)


def to_card_response(card: Card, cipher: CardNumberCipher | None = None) -> CardResponse:
    """
    Build the display projection of a card.

    Decrypts the stored number to mask it; a CryptoFailureError propagates
    so callers never return a projection built from a corrupted number.
    """
    cipher = cipher or get_cipher()
    plaintext = cipher.decrypt(card.card_number_encrypted)
    return CardResponse(
        id=card.id,
        masked_card_number=mask_card_number(plaintext),
        owner_username=card.owner.username,
        expiry_date=card.expiry_date,
        status=card.status,
        balance_cents=card.balance_cents,
    )


async def get_card_or_404(db: AsyncSession, card_id: uuid.UUID, role: str = "") -> Card:
    result = await db.execute(select(Card).where(Card.id == card_id))
    card = result.scalar_one_or_none()
    if card is None:
        raise CardNotFoundError(card_id, role)
    return card


async def _flush_card_change(db: AsyncSession, card: Card) -> None:
    try:
        await db.flush()
    except StaleDataError as exc:
        logger.warning("Card %s was modified concurrently", card.id)
        raise ConcurrentModificationError() from exc


async def create_card(
    db: AsyncSession,
    principal: Principal,
    owner_username: str,
    expiry_date: date,
    initial_balance_cents: int,
    cipher: CardNumberCipher | None = None,
) -> CardResponse:
    """
    Issue a new card to an existing user.

    Args:
        db: Database session.
        principal: The acting user (must be ADMIN).
        owner_username: Username of the future card owner.
        expiry_date: Must be in the future.
        initial_balance_cents: Opening balance, non-negative.
        cipher: Card number cipher (defaults to the process-wide one).

    Returns:
        The display projection of the created card.

    Raises:
        ForbiddenError: If the principal is not an admin.
        UserNotFoundError: If the owner does not exist.
        InvalidInputError: If the expiry date or balance is invalid.
        GenerationExhaustedError: If no unused number could be generated.
    """
    policy.require_admin(principal, "issue cards")
    cipher = cipher or get_cipher()

    if initial_balance_cents < 0:
        raise InvalidInputError("Initial balance cannot be negative")
    if expiry_date <= date.today():
        raise InvalidInputError("Expiry date must be in the future")

    result = await db.execute(select(User).where(User.username == owner_username))
    owner = result.scalar_one_or_none()
    if owner is None:
        raise UserNotFoundError(owner_username)

    async def number_in_use(candidate: str) -> bool:
        existing = await db.execute(
            select(Card.id).where(Card.card_number_fingerprint == cipher.fingerprint(candidate))
        )
        return existing.first() is not None

    card_number = await generate_card_number(
        number_in_use, max_attempts=settings.CARD_NUMBER_MAX_ATTEMPTS
    )

    card = Card(
        owner=owner,
        card_number_encrypted=cipher.encrypt(card_number),
        card_number_fingerprint=cipher.fingerprint(card_number),
        expiry_date=expiry_date,
        status=CardStatus.ACTIVE,
        balance_cents=initial_balance_cents,
    )
    db.add(card)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Another request issued the same number between our check and insert
        raise ConflictError("Card number collision, please retry") from exc

    logger.info("Issued card %s to %s by %s", card.id, owner_username, principal.username)
    return to_card_response(card, cipher)


async def block_card(db: AsyncSession, principal: Principal, card_id: uuid.UUID) -> Card:
    """Block a card. Allowed for the card's owner and for admins."""
    card = await get_card_or_404(db, card_id)
    policy.authorize_block(principal, card)

    card.status = CardStatus.BLOCKED
    await _flush_card_change(db, card)
    logger.info("Card %s blocked by %s", card.id, principal.username)
    return card


async def activate_card(db: AsyncSession, principal: Principal, card_id: uuid.UUID) -> Card:
    """Set a card back to ACTIVE, whatever its status. Admin only."""
    card = await get_card_or_404(db, card_id)
    policy.require_admin(principal, "activate cards")

    card.status = CardStatus.ACTIVE
    await _flush_card_change(db, card)
    logger.info("Card %s activated by %s", card.id, principal.username)
    return card


async def delete_card(db: AsyncSession, principal: Principal, card_id: uuid.UUID) -> None:
    """Hard-delete a card. Admin only."""
    card = await get_card_or_404(db, card_id)
    policy.require_admin(principal, "delete cards")

    await db.delete(card)
    await _flush_card_change(db, card)
    logger.info("Card %s deleted by %s", card_id, principal.username)


async def get_balance(db: AsyncSession, principal: Principal, card_id: uuid.UUID) -> int:
    """
    Return a card's balance in cents.

    Only the owner may read it; admins get ForbiddenError here even though
    admin listings show balances.
    """
    card = await get_card_or_404(db, card_id)
    policy.authorize_owner_of_all(principal, card)
    return card.balance_cents
