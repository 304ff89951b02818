from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, func
from sqlalchemy.orm import selectinload
from typing import Optional, List
from datetime import datetime, timedelta
from ..core.clock import Clock, system_clock
from ..core.exceptions import NotFoundError, ForbiddenError, BadRequestError, ConflictError
from ..models.booking import Booking, BookingStatus
from ..models.topic import Topic
from ..models.user import User
from ..schemas.booking import BookingCreate
from .notification_service import NotificationService, notification_service
import logging

logger = logging.getLogger(__name__)


def to_local_naive(value: datetime) -> datetime:
    """Bookings are stored as naive local wall-clock times"""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class BookingService:

    def __init__(self, db: AsyncSession, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier or notification_service

    async def get_booking_by_id(self, booking_id: int) -> Optional[Booking]:
        try:
            result = await self.db.execute(select(Booking).where(Booking.id == booking_id))
            return result.scalar_one_or_none()
        except Exception as e:
            logger.error(f"Failed to load booking {booking_id}: {e}")
            raise

    async def find_overlapping(self, provider_id: int, start: datetime, end: datetime) -> List[Booking]:
        """Confirmed bookings of the provider intersecting [start, end)"""
        result = await self.db.execute(
            select(Booking).where(
                and_(
                    Booking.provider_id == provider_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.slot_start_time < end,
                    Booking.slot_end_time > start,
                )
            )
        )
        return result.scalars().all()

    async def create_booking(self, booking_data: BookingCreate) -> Booking:
        try:
            result = await self.db.execute(select(Topic).where(Topic.id == booking_data.topic_id))
            topic = result.scalar_one_or_none()
            if not topic:
                raise NotFoundError(f"Topic {booking_data.topic_id} not found")

            start = to_local_naive(booking_data.slot_timestamp)
            end = start + timedelta(minutes=topic.duration_minutes)

            if await self.find_overlapping(topic.user_id, start, end):
                raise ConflictError("This time slot has just been booked")

            booking = Booking(
                slot_start_time=start,
                slot_end_time=end,
                customer_name=booking_data.customer_name,
                customer_email=booking_data.customer_email,
                customer_phone=booking_data.customer_phone,
                status=BookingStatus.CONFIRMED.value,
                topic_id=topic.id,
                provider_id=topic.user_id,
            )
            self.db.add(booking)
            await self.db.commit()
            await self.db.refresh(booking)
            logger.info(f"Booking {booking.id} created for provider {topic.user_id} at {start}")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to create booking: {e}")
            raise

        await self.notifier.send_confirmation(booking, topic.title)
        return booking

    async def _cancel(self, booking: Booking, reason: Optional[str]) -> Booking:
        if booking.status == BookingStatus.CANCELLED.value:
            raise BadRequestError("Booking is already cancelled")
        booking.status = BookingStatus.CANCELLED.value
        booking.cancellation_reason = reason
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    async def cancel_by_token(self, token: str, reason: Optional[str] = None) -> Booking:
        """Customer-side cancellation with the opaque token from the confirmation"""
        try:
            result = await self.db.execute(select(Booking).where(Booking.cancellation_token == token))
            booking = result.scalar_one_or_none()
            if not booking:
                raise NotFoundError("Booking not found")
            booking = await self._cancel(booking, reason)
            logger.info(f"Booking {booking.id} cancelled by customer")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to cancel booking by token: {e}")
            raise

        await self.notifier.send_cancellation(booking, reason)
        return booking

    async def list_for_provider(self, provider_id: int, archived: bool = False) -> List[Booking]:
        result = await self.db.execute(
            select(Booking)
            .where(
                and_(
                    Booking.provider_id == provider_id,
                    Booking.is_archived.is_(archived),
                )
            )
            .order_by(Booking.slot_start_time)
        )
        return result.scalars().all()

    async def _get_for_actor(self, booking_id: int, actor: User) -> Booking:
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            raise NotFoundError(f"Booking {booking_id} not found")
        if booking.provider_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Not your booking")
        return booking

    async def cancel_by_provider(self, booking_id: int, actor: User, reason: Optional[str] = None) -> Booking:
        try:
            booking = await self._get_for_actor(booking_id, actor)
            booking = await self._cancel(booking, reason)
            logger.info(f"Booking {booking_id} cancelled by user {actor.id}")
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to cancel booking {booking_id}: {e}")
            raise

        await self.notifier.send_cancellation(booking, reason)
        return booking

    async def set_archived(self, booking_id: int, actor: User, archived: bool) -> Booking:
        try:
            booking = await self._get_for_actor(booking_id, actor)
            booking.is_archived = archived
            await self.db.commit()
            await self.db.refresh(booking)
            logger.info(f"Booking {booking_id} {'archived' if archived else 'unarchived'}")
            return booking
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to change archive flag of booking {booking_id}: {e}")
            raise

    async def delete_booking(self, booking_id: int, actor: User) -> bool:
        try:
            await self._get_for_actor(booking_id, actor)
            await self.db.execute(delete(Booking).where(Booking.id == booking_id))
            await self.db.commit()
            logger.info(f"Booking {booking_id} deleted")
            return True
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete booking {booking_id}: {e}")
            raise

    async def recover_by_email(self, email: str, clock: Optional[Clock] = None) -> int:
        """
        Send the customer a list of their upcoming confirmed bookings.

        Returns the number of bookings found. Nothing is sent when there are
        none, and callers must not reveal the count to the requester.
        """
        now = (clock or system_clock).now()
        result = await self.db.execute(
            select(Booking)
            .options(selectinload(Booking.topic))
            .where(
                and_(
                    func.lower(Booking.customer_email) == email.strip().lower(),
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.slot_start_time > now,
                )
            )
            .order_by(Booking.slot_start_time)
        )
        bookings = result.scalars().all()
        if bookings:
            await self.notifier.send_recovery(email.strip(), bookings)
        logger.info(f"Recovery requested, {len(bookings)} upcoming bookings found")
        return len(bookings)
