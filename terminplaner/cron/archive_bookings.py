import asyncio
import logging
from typing import Optional
from sqlalchemy import update, and_
from sqlalchemy.ext.asyncio import AsyncSession
from ..core.clock import Clock, system_clock
from ..core.database import AsyncSessionLocal
from ..models.booking import Booking

logger = logging.getLogger(__name__)


async def archive_past_bookings(session: AsyncSession, clock: Optional[Clock] = None) -> int:
    """Archive every booking that has already ended, cancelled ones included"""
    now = (clock or system_clock).now()
    result = await session.execute(
        update(Booking)
        .where(
            and_(
                Booking.slot_end_time < now,
                (Booking.is_archived == False) | (Booking.is_archived.is_(None)),  # noqa: E712
            )
        )
        .values(is_archived=True)
    )
    await session.commit()

    count = result.rowcount or 0
    if count:
        logger.info(f"Auto-archived {count} past bookings")
    else:
        logger.info("No bookings to archive")
    return count


async def main():
    async with AsyncSessionLocal() as session:
        await archive_past_bookings(session)


if __name__ == '__main__':
    asyncio.run(main())
