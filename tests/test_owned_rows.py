"""
Tests for user-side CRUD of availability, topics and time off, including
the protection of rows managed by a batch config.
"""

import pytest
from datetime import date, datetime
from pydantic import ValidationError
from sqlalchemy import select

from terminplaner.core.exceptions import ForbiddenError, NotFoundError
from terminplaner.models import AvailabilityRule, Topic
from terminplaner.schemas import (
    AvailabilityCreate, BatchConfigCreate, BatchConfigUpdate, TimeOffCreate, TopicCreate, TopicUpdate
)
from terminplaner.services import AvailabilityService, BatchService, TimeOffService, TopicService


class TestAvailabilityRules:

    @pytest.mark.asyncio
    async def test_create_and_list(self, db_session, make_user):
        user = await make_user()
        service = AvailabilityService(db_session)

        rule = await service.create_for_user(user.id, AvailabilityCreate(
            recurrence="odd_week", day_of_week=3, start_time="9:00", end_time="12:00"
        ))

        assert rule.start_time == "09:00"
        assert rule.recurrence == "odd_week"
        assert [r.id for r in await service.list_for_user(user.id)] == [rule.id]

    def test_validation(self):
        with pytest.raises(ValidationError):
            AvailabilityCreate(recurrence="weekly", start_time="09:00", end_time="10:00")
        with pytest.raises(ValidationError):
            AvailabilityCreate(recurrence="specific_date", start_time="09:00", end_time="10:00")
        with pytest.raises(ValidationError):
            AvailabilityCreate(recurrence="weekly", day_of_week=7, start_time="09:00", end_time="10:00")
        with pytest.raises(ValidationError):
            AvailabilityCreate(recurrence="weekly", day_of_week=1, start_time="10:00", end_time="09:00")
        with pytest.raises(ValidationError):
            AvailabilityCreate(recurrence="weekly", day_of_week=1, start_time="25:00", end_time="26:00")

    @pytest.mark.asyncio
    async def test_delete_own_rule(self, db_session, make_user, make_rule):
        user = await make_user()
        rule = await make_rule(user, day_of_week=1)

        assert await AvailabilityService(db_session).delete_for_user(user.id, rule.id) is True
        assert (await db_session.execute(select(AvailabilityRule))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_rule_of_another_user_is_not_found(self, db_session, make_user, make_rule):
        owner, other = await make_user(), await make_user()
        rule = await make_rule(owner, day_of_week=1)

        with pytest.raises(NotFoundError):
            await AvailabilityService(db_session).delete_for_user(other.id, rule.id)

    @pytest.mark.asyncio
    async def test_batch_owned_rule_cannot_be_deleted(self, db_session, make_user):
        user = await make_user()
        batch_service = BatchService(db_session)
        batch = await batch_service.create_batch(BatchConfigCreate(
            name="Mornings", rule_type="availability",
            config_data={"recurrence": "weekly", "day_of_week": 1, "start_time": "09:00", "end_time": "10:00"},
            user_ids=[user.id],
        ))
        user_id, batch_id = user.id, batch.id
        rule = (await AvailabilityService(db_session).list_for_user(user_id))[0]
        assert rule.batch_config_id == batch_id
        rule_id = rule.id

        with pytest.raises(ForbiddenError):
            await AvailabilityService(db_session).delete_for_user(user_id, rule_id)
        batch = await batch_service.get_batch(batch_id)
        assert await batch_service.get_owner_user_ids(batch) == {user_id}

        # Removing the user from the target set is what releases the row
        await batch_service.update_batch(batch_id, BatchConfigUpdate(user_ids=[]))
        assert await AvailabilityService(db_session).list_for_user(user_id) == []


class TestTopics:

    @pytest.mark.asyncio
    async def test_create_update_delete(self, db_session, make_user):
        user = await make_user()
        service = TopicService(db_session)

        topic = await service.create_for_user(user.id, TopicCreate(title="Consultation", duration_minutes=30))
        topic = await service.update_for_user(user.id, topic.id, TopicUpdate(duration_minutes=45))

        assert (topic.title, topic.duration_minutes) == ("Consultation", 45)
        assert await service.delete_for_user(user.id, topic.id) is True
        assert await service.list_for_user(user.id) == []

    @pytest.mark.asyncio
    async def test_delete_detaches_bookings(self, db_session, make_user, make_topic, make_booking):
        user = await make_user()
        topic = await make_topic(user)
        booking = await make_booking(user, datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 9, 30), topic=topic)

        await TopicService(db_session).delete_for_user(user.id, topic.id)

        await db_session.refresh(booking)
        assert booking.topic_id is None

    @pytest.mark.asyncio
    async def test_batch_owned_topic_is_read_only(self, db_session, make_user):
        user = await make_user()
        await BatchService(db_session).create_batch(BatchConfigCreate(
            name="Office hours", rule_type="topic",
            config_data={"title": "Office hours", "duration_minutes": 30},
            user_ids=[user.id],
        ))
        user_id = user.id
        topic_id = (await db_session.execute(select(Topic.id))).scalar_one()
        service = TopicService(db_session)

        with pytest.raises(ForbiddenError):
            await service.update_for_user(user_id, topic_id, TopicUpdate(title="Mine now"))
        with pytest.raises(ForbiddenError):
            await service.delete_for_user(user_id, topic_id)

        topic = (await db_session.execute(
            select(Topic).where(Topic.id == topic_id).execution_options(populate_existing=True)
        )).scalar_one()
        assert topic.title == "Office hours"


class TestTimeOff:

    @pytest.mark.asyncio
    async def test_listed_by_start_date(self, db_session, make_user):
        user = await make_user()
        service = TimeOffService(db_session)
        later = await service.create_for_user(user.id, TimeOffCreate(
            start_date=date(2024, 3, 1), end_date=date(2024, 3, 2), reason="Conference"
        ))
        earlier = await service.create_for_user(user.id, TimeOffCreate(
            start_date=date(2024, 2, 1), end_date=date(2024, 2, 1)
        ))

        assert [t.id for t in await service.list_for_user(user.id)] == [earlier.id, later.id]

        await service.delete_for_user(user.id, later.id)
        assert [t.id for t in await service.list_for_user(user.id)] == [earlier.id]

    def test_end_before_start_rejected(self):
        with pytest.raises(ValidationError):
            TimeOffCreate(start_date=date(2024, 3, 2), end_date=date(2024, 3, 1))

    @pytest.mark.asyncio
    async def test_delete_foreign_time_off(self, db_session, make_user):
        owner, other = await make_user(), await make_user()
        time_off = await TimeOffService(db_session).create_for_user(owner.id, TimeOffCreate(
            start_date=date(2024, 3, 1), end_date=date(2024, 3, 1)
        ))

        with pytest.raises(NotFoundError):
            await TimeOffService(db_session).delete_for_user(other.id, time_off.id)
