"""
Listing service — paginated reads of cards and users.

Pagination is 0-based (page 0 is the first page) and every result carries
the total count so clients can render page controls.

Searching by card number:
  Card numbers are stored as randomized ciphertext, so SQL cannot filter
  on them. When a search term is given, the owner's cards are decrypted and
  matched in memory, then paginated. Without a search term, filtering and
  pagination happen in SQL.

Any decryption failure fails the whole listing; a page is never returned
with a corrupted or missing card number.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bankcards.models.card import Card, CardStatus
from bankcards.models.user import User
from bankcards.schemas.card import CardResponse
from bankcards.schemas.page import Page
from bankcards.schemas.user import Principal, UserResponse
from bankcards.services import policy
from bankcards.services.card_cipher import CardNumberCipher, get_cipher
from bankcards.services.card_service import to_card_response


async def _count(db: AsyncSession, query) -> int:
    result = await db.execute(select(func.count()).select_from(query.subquery()))
    return result.scalar_one()


async def _owner_id(db: AsyncSession, username: str) -> uuid.UUID | None:
    result = await db.execute(select(User.id).where(User.username == username))
    return result.scalar_one_or_none()


async def list_my_cards(
    db: AsyncSession,
    principal: Principal,
    search: str | None = None,
    status: CardStatus | None = None,
    page: int = 0,
    size: int = 20,
    cipher: CardNumberCipher | None = None,
) -> Page[CardResponse]:
    """
    List the principal's own cards.

    Args:
        search: Optional substring of the plaintext card number.
        status: Optional status filter.
        page: 0-based page number.
        size: Page size.
    """
    cipher = cipher or get_cipher()
    owner_id = await _owner_id(db, principal.username)
    if owner_id is None:
        return Page(items=[], page=page, size=size, total=0)

    query = select(Card).where(Card.owner_id == owner_id).order_by(Card.created_at, Card.id)
    if status is not None:
        query = query.where(Card.status == status)

    if search:
        result = await db.execute(query)
        matches = []
        for card in result.scalars().all():
            if search in cipher.decrypt(card.card_number_encrypted):
                matches.append(to_card_response(card, cipher))
        start = page * size
        return Page(items=matches[start:start + size], page=page, size=size, total=len(matches))

    total = await _count(db, query)
    result = await db.execute(query.limit(size).offset(page * size))
    items = [to_card_response(card, cipher) for card in result.scalars().all()]
    return Page(items=items, page=page, size=size, total=total)


async def list_all_cards(
    db: AsyncSession,
    principal: Principal,
    page: int = 0,
    size: int = 20,
    cipher: CardNumberCipher | None = None,
) -> Page[CardResponse]:
    """[ADMIN ONLY] List every card in the system."""
    policy.require_admin(principal, "list all cards")
    cipher = cipher or get_cipher()

    query = select(Card).order_by(Card.created_at, Card.id)
    total = await _count(db, query)
    result = await db.execute(query.limit(size).offset(page * size))
    items = [to_card_response(card, cipher) for card in result.scalars().all()]
    return Page(items=items, page=page, size=size, total=total)


async def list_users(
    db: AsyncSession,
    principal: Principal,
    username: str | None = None,
    page: int = 0,
    size: int = 20,
    cipher: CardNumberCipher | None = None,
) -> Page[UserResponse]:
    """
    [ADMIN ONLY] List users, optionally filtered by a username substring.

    Each user includes the display projections of all their cards.
    """
    policy.require_admin(principal, "list users")
    cipher = cipher or get_cipher()

    query = select(User).order_by(User.username)
    if username:
        query = query.where(User.username.contains(username, autoescape=True))

    total = await _count(db, query)
    result = await db.execute(
        query.options(selectinload(User.cards)).limit(size).offset(page * size)
    )
    items = [
        UserResponse(
            id=user.id,
            username=user.username,
            role=user.role,
            cards=[to_card_response(card, cipher) for card in user.cards],
        )
        for user in result.scalars().all()
    ]
    return Page(items=items, page=page, size=size, total=total)
