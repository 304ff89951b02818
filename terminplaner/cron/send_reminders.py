import asyncio
import logging
from datetime import timedelta
from typing import Optional
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from ..core.clock import Clock, system_clock
from ..core.database import AsyncSessionLocal
from ..models.booking import Booking, BookingStatus
from ..services.notification_service import NotificationService, notification_service
from ..services.settings_service import SettingsService, REMINDER_LEAD_TIME

logger = logging.getLogger(__name__)


async def send_due_reminders(
    session: AsyncSession,
    clock: Optional[Clock] = None,
    notifier: Optional[NotificationService] = None,
) -> int:
    """Remind customers of confirmed bookings starting within the lead time; returns the count"""
    clock = clock or system_clock
    notifier = notifier or notification_service

    lead_minutes = await SettingsService(session).get_int(REMINDER_LEAD_TIME, 10)
    now = clock.now()
    window_end = now + timedelta(minutes=lead_minutes)

    result = await session.execute(
        select(Booking).where(
            and_(
                Booking.status == BookingStatus.CONFIRMED.value,
                (Booking.reminder_sent == False) | (Booking.reminder_sent.is_(None)),  # noqa: E712
                Booking.slot_start_time >= now,
                Booking.slot_start_time <= window_end,
            )
        )
    )
    bookings = result.scalars().all()

    for booking in bookings:
        await notifier.send_reminder(booking)
        booking.reminder_sent = True

    if bookings:
        await session.commit()
        logger.info(f"Sent {len(bookings)} reminders (lead time {lead_minutes} min)")
    return len(bookings)


async def main():
    async with AsyncSessionLocal() as session:
        await send_due_reminders(session)


if __name__ == '__main__':
    asyncio.run(main())
