"""Expiry sweep: ACTIVE cards past their expiry date become EXPIRED."""

import asyncio
import logging
from datetime import date

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from bankcards.database import AsyncSessionLocal
from bankcards.models.card import Card, CardStatus

logger = logging.getLogger(__name__)


async def expire_cards(db: AsyncSession, today: date | None = None) -> int:
    """Mark every ACTIVE card with expiry_date before `today` as EXPIRED. Returns the count."""
    today = today or date.today()
    result = await db.execute(
        update(Card)
        .where(Card.status == CardStatus.ACTIVE)
        .where(Card.expiry_date < today)
        .values(status=CardStatus.EXPIRED, version=Card.version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def run_expiry_sweep() -> int:
    async with AsyncSessionLocal() as session:
        try:
            expired = await expire_cards(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return expired


async def schedule_expiry_sweep(interval_seconds: int) -> None:
    while True:
        try:
            expired = await run_expiry_sweep()
            logger.info("Expiry sweep completed. expired=%s", expired)
        except Exception:
            logger.exception("Expiry sweep failed")
        await asyncio.sleep(interval_seconds)
