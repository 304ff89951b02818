from typing import List, Optional
from ..models.booking import Booking
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Outgoing customer notifications.

    Messages are composed here and handed to `deliver`, which the mail
    integration overrides. Public methods return False instead of raising.
    """

    async def deliver(self, recipient: str, subject: str, body: str) -> bool:
        logger.info(f"Notification to {recipient}: {subject}")
        logger.debug(body)
        return True

    async def _send(self, recipient: Optional[str], subject: str, body: str) -> bool:
        if not recipient:
            return False
        try:
            return await self.deliver(recipient, subject, body)
        except Exception as e:
            logger.error(f"Failed to send notification '{subject}' to {recipient}: {e}")
            return False

    async def send_confirmation(self, booking: Booking, topic_title: Optional[str] = None) -> bool:
        body = (
            f"Hello {booking.customer_name},\n\n"
            f"your appointment{f' ({topic_title})' if topic_title else ''} is confirmed for "
            f"{booking.slot_start_time:%Y-%m-%d %H:%M}.\n"
            f"To cancel, use this code: {booking.cancellation_token}"
        )
        return await self._send(booking.customer_email, "Appointment confirmed", body)

    async def send_cancellation(self, booking: Booking, reason: Optional[str] = None) -> bool:
        body = (
            f"Hello {booking.customer_name},\n\n"
            f"your appointment on {booking.slot_start_time:%Y-%m-%d %H:%M} has been cancelled."
        )
        if reason:
            body += f"\nReason: {reason}"
        return await self._send(booking.customer_email, "Appointment cancelled", body)

    async def send_reminder(self, booking: Booking) -> bool:
        body = (
            f"Hello {booking.customer_name},\n\n"
            f"this is a reminder of your appointment at {booking.slot_start_time:%H:%M}."
        )
        return await self._send(booking.customer_email, "Appointment reminder", body)

    async def send_recovery(self, email: str, bookings: List[Booking]) -> bool:
        """One message listing every upcoming booking with its cancellation code"""
        if not bookings:
            return False
        lines = []
        for booking in bookings:
            title = booking.topic.title if booking.topic else "Appointment"
            lines.append(
                f"- {booking.slot_start_time:%Y-%m-%d %H:%M} {title}, "
                f"cancellation code: {booking.cancellation_token}"
            )
        body = "Hello,\n\nthese are your upcoming appointments:\n" + "\n".join(lines)
        return await self._send(email, "Your appointments", body)


notification_service = NotificationService()
