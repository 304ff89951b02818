from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from typing import Optional, List, Iterator
from datetime import date, datetime, time, timedelta
from ..core.clock import Clock, system_clock
from ..core.exceptions import NotFoundError
from ..models.availability import AvailabilityRule, Recurrence
from ..models.booking import Booking, BookingStatus
from ..models.time_off import TimeOff
from ..models.topic import Topic
from .settings_service import SettingsService, MIN_BOOKING_NOTICE_HOURS
import logging

logger = logging.getLogger(__name__)

WEEKDAY_RECURRENCES = {
    Recurrence.WEEKLY.value,
    Recurrence.ODD_WEEK.value,
    Recurrence.EVEN_WEEK.value,
}


def day_of_week(day: date) -> int:
    """Weekday number with 0=Sunday .. 6=Saturday"""
    return day.isoweekday() % 7


def is_odd_iso_week(day: date) -> bool:
    return day.isocalendar()[1] % 2 == 1


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    current = start_date
    while current <= end_date:
        yield current
        if current == end_date:
            return
        current += timedelta(days=1)


def parse_time(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


class SlotService:
    """Resolves bookable slots from availability rules, time off and bookings"""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or system_clock

    async def get_available_slots(self, user_id: int, topic_id: int, start_date: date, end_date: date) -> List[dict]:
        """
        Enumerate free slots of one topic's length for a provider, day by day.

        Time off blocks whole days, slots starting before now + minimum notice
        are dropped, and so are slots overlapping a confirmed booking.
        Slots from different rules on the same day are not merged.
        """
        result = await self.db.execute(select(Topic).where(Topic.id == topic_id))
        topic = result.scalar_one_or_none()
        if not topic:
            raise NotFoundError(f"Topic {topic_id} not found")
        duration = topic.duration_minutes

        min_notice_hours = await SettingsService(self.db).get_int(MIN_BOOKING_NOTICE_HOURS, 0)
        min_slot_time = self.clock.now() + timedelta(hours=min_notice_hours)

        if end_date < start_date:
            return []

        range_start = datetime.combine(start_date, time.min)
        range_end = datetime.combine(end_date, time.max)

        rules = await self._get_rules(user_id)
        time_offs = await self._get_time_offs(user_id, start_date, end_date)
        busy_intervals = await self._get_busy_intervals(user_id, range_start, range_end)

        logger.info(
            f"Resolving slots for user={user_id}, topic={topic_id}, {start_date}..{end_date}: "
            f"{len(rules)} rules, {len(time_offs)} time off entries, {len(busy_intervals)} bookings"
        )

        slots = []
        for day in iter_days(start_date, end_date):
            if self._is_blocked(day, time_offs):
                continue

            for rule in self._get_rules_for_day(rules, day):
                for slot_start in self._generate_time_slots(day, rule.start_time, rule.end_time, duration):
                    if slot_start < min_slot_time:
                        continue
                    slot_end = slot_start + timedelta(minutes=duration)
                    if self._has_overlap(slot_start, slot_end, busy_intervals):
                        continue
                    slots.append({
                        "date": day.isoformat(),
                        "time": slot_start.strftime("%H:%M"),
                        "timestamp": slot_start.isoformat(),
                        "available": True,
                    })

        return slots

    async def _get_rules(self, user_id: int) -> List[AvailabilityRule]:
        result = await self.db.execute(
            select(AvailabilityRule)
            .where(AvailabilityRule.user_id == user_id)
            .order_by(AvailabilityRule.id)
        )
        return result.scalars().all()

    async def _get_time_offs(self, user_id: int, start_date: date, end_date: date) -> List[TimeOff]:
        result = await self.db.execute(
            select(TimeOff).where(
                and_(
                    TimeOff.user_id == user_id,
                    TimeOff.start_date <= end_date,
                    TimeOff.end_date >= start_date,
                )
            )
        )
        return result.scalars().all()

    async def _get_busy_intervals(self, user_id: int, range_start: datetime, range_end: datetime) -> List[tuple]:
        """Confirmed bookings of the provider overlapping the requested range"""
        result = await self.db.execute(
            select(Booking.slot_start_time, Booking.slot_end_time).where(
                and_(
                    Booking.provider_id == user_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.slot_start_time <= range_end,
                    Booking.slot_end_time > range_start,
                )
            )
        )
        return [(start, end) for start, end in result.all()]

    @staticmethod
    def _is_blocked(day: date, time_offs: List[TimeOff]) -> bool:
        return any(time_off.start_date <= day <= time_off.end_date for time_off in time_offs)

    @staticmethod
    def _rule_matches_day(rule: AvailabilityRule, day: date) -> bool:
        if rule.valid_until and day > rule.valid_until:
            return False

        if rule.recurrence == Recurrence.SPECIFIC_DATE.value:
            return rule.specific_date == day

        if rule.recurrence not in WEEKDAY_RECURRENCES or rule.day_of_week != day_of_week(day):
            return False

        if rule.recurrence == Recurrence.WEEKLY.value:
            return True
        if rule.recurrence == Recurrence.ODD_WEEK.value:
            return is_odd_iso_week(day)
        return not is_odd_iso_week(day)

    def _get_rules_for_day(self, rules: List[AvailabilityRule], day: date) -> List[AvailabilityRule]:
        return [rule for rule in rules if self._rule_matches_day(rule, day)]

    @staticmethod
    def _generate_time_slots(day: date, start_time: str, end_time: str, duration_minutes: int) -> List[datetime]:
        """Slot starts from start_time in steps of the duration; a slot ending past end_time is dropped"""
        if duration_minutes <= 0:
            return []
        current = datetime.combine(day, parse_time(start_time))
        window_end = datetime.combine(day, parse_time(end_time))
        step = timedelta(minutes=duration_minutes)

        slots = []
        while step <= window_end - current:
            slots.append(current)
            current += step
        return slots

    @staticmethod
    def _has_overlap(slot_start: datetime, slot_end: datetime, busy_intervals: List[tuple]) -> bool:
        return any(
            busy_start < slot_end and busy_end > slot_start
            for busy_start, busy_end in busy_intervals
        )
