"""
Tests for department membership replacement and the batch sync it triggers.
"""

import pytest
from unittest.mock import AsyncMock, patch
from sqlalchemy import select

from terminplaner.core.exceptions import NotFoundError
from terminplaner.models import AvailabilityRule
from terminplaner.schemas import BatchConfigCreate, DepartmentCreate, DepartmentUpdate
from terminplaner.services import BatchService, DepartmentService

AVAILABILITY_CONFIG = {
    "recurrence": "weekly",
    "day_of_week": 2,
    "start_time": "13:00",
    "end_time": "15:00",
}


async def rows_by_user(db_session, batch_id):
    result = await db_session.execute(
        select(AvailabilityRule).where(AvailabilityRule.batch_config_id == batch_id)
    )
    return {row.user_id: row.id for row in result.scalars().all()}


async def department_batch(db_session, department_ids, apply_to_future=True):
    return await BatchService(db_session).create_batch(BatchConfigCreate(
        name="Tuesday afternoons",
        rule_type="availability",
        target_type="department",
        config_data=AVAILABILITY_CONFIG,
        apply_to_future=apply_to_future,
        department_ids=department_ids,
    ))


class TestMembershipSync:
    """Replacing a member list grants and revokes batch-owned rows."""

    @pytest.mark.asyncio
    async def test_replace_members_diffs_rows(self, db_session, make_user, make_department):
        a, b, c = await make_user(), await make_user(), await make_user()
        department = await make_department("Languages", [a, b])
        batch = await department_batch(db_session, [department.id])
        before = await rows_by_user(db_session, batch.id)

        added, removed = await DepartmentService(db_session).on_membership_replaced(department.id, [b.id, c.id])

        after = await rows_by_user(db_session, batch.id)
        assert added == {c.id}
        assert removed == {a.id}
        assert set(after) == {b.id, c.id}
        assert after[b.id] == before[b.id]

    @pytest.mark.asyncio
    async def test_user_still_covered_by_second_department(self, db_session, make_user, make_department):
        user = await make_user()
        first = await make_department("Year 5", [user])
        second = await make_department("Year 6", [user])
        batch = await department_batch(db_session, [first.id, second.id])
        service = DepartmentService(db_session)
        assert set(await rows_by_user(db_session, batch.id)) == {user.id}

        await service.on_membership_replaced(first.id, [])
        assert set(await rows_by_user(db_session, batch.id)) == {user.id}

        await service.on_membership_replaced(second.id, [])
        assert await rows_by_user(db_session, batch.id) == {}

    @pytest.mark.asyncio
    async def test_joining_second_department_does_not_duplicate(self, db_session, make_user, make_department):
        user = await make_user()
        first = await make_department("Year 5", [user])
        second = await make_department("Year 6")
        batch = await department_batch(db_session, [first.id, second.id])

        await DepartmentService(db_session).on_membership_replaced(second.id, [user.id])

        result = await db_session.execute(
            select(AvailabilityRule).where(AvailabilityRule.batch_config_id == batch.id)
        )
        assert len(result.scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_batches_without_apply_to_future_are_left_alone(self, db_session, make_user, make_department):
        a, b = await make_user(), await make_user()
        department = await make_department("Languages", [a])
        batch = await department_batch(db_session, [department.id], apply_to_future=False)

        await DepartmentService(db_session).on_membership_replaced(department.id, [b.id])

        assert set(await rows_by_user(db_session, batch.id)) == {a.id}

    @pytest.mark.asyncio
    async def test_unchanged_members_is_noop(self, db_session, make_user, make_department):
        a = await make_user()
        department = await make_department("Languages", [a])
        await department_batch(db_session, [department.id])

        with patch.object(DepartmentService, "sync_batches", new_callable=AsyncMock) as sync:
            added, removed = await DepartmentService(db_session).on_membership_replaced(department.id, [a.id])

        assert (added, removed) == (set(), set())
        sync.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_member_rejected(self, db_session, make_department):
        department = await make_department("Languages")
        with pytest.raises(NotFoundError):
            await DepartmentService(db_session).on_membership_replaced(department.id, [404])

    @pytest.mark.asyncio
    async def test_unknown_department_rejected(self, db_session):
        with pytest.raises(NotFoundError):
            await DepartmentService(db_session).on_membership_replaced(999, [])


class TestSyncFailure:
    """A failing sync never undoes the membership change."""

    @pytest.mark.asyncio
    async def test_membership_kept_and_reconcile_heals(self, db_session, make_user, make_department):
        a, b = await make_user(), await make_user()
        department = await make_department("Languages", [a])
        batch = await department_batch(db_session, [department.id])
        a_id, b_id, department_id, batch_id = a.id, b.id, department.id, batch.id
        service = DepartmentService(db_session)

        with patch.object(BatchService, "create_owned_rows", new=AsyncMock(side_effect=RuntimeError("db gone"))):
            added, _ = await service.on_membership_replaced(department_id, [a_id, b_id])

        assert added == {b_id}
        assert await service.get_member_ids(department_id) == {a_id, b_id}
        assert set(await rows_by_user(db_session, batch_id)) == {a_id}

        await BatchService(db_session).reconcile_batch(batch_id)

        assert set(await rows_by_user(db_session, batch_id)) == {a_id, b_id}

    @pytest.mark.asyncio
    async def test_create_department_survives_failed_sync(self, db_session, make_user):
        a = await make_user()
        a_id = a.id

        async def failing_sync(self, department_id, added, removed):
            await self.db.execute(select(AvailabilityRule.id))
            raise RuntimeError("db gone")

        with patch.object(DepartmentService, "sync_batches", new=failing_sync):
            department = await DepartmentService(db_session).create_department(
                DepartmentCreate(name="Drama", user_ids=[a_id])
            )

        assert department.name == "Drama"
        assert {user.id for user in department.users} == {a_id}


class TestDepartmentCrud:

    @pytest.mark.asyncio
    async def test_create_with_members(self, db_session, make_user):
        a, b = await make_user(display_name="Zoe"), await make_user(display_name="Adam")

        department = await DepartmentService(db_session).create_department(
            DepartmentCreate(name="Music", user_ids=[a.id, b.id])
        )

        assert department.name == "Music"
        assert {user.id for user in department.users} == {a.id, b.id}

    @pytest.mark.asyncio
    async def test_update_name_keeps_members(self, db_session, make_user, make_department):
        a = await make_user()
        department = await make_department("Music", [a])

        updated = await DepartmentService(db_session).update_department(
            department.id, DepartmentUpdate(name="Music & Arts")
        )

        assert updated.name == "Music & Arts"
        assert [user.id for user in updated.users] == [a.id]

    @pytest.mark.asyncio
    async def test_update_members_runs_sync(self, db_session, make_user, make_department):
        a, b = await make_user(), await make_user()
        department = await make_department("Music", [a])
        batch = await department_batch(db_session, [department.id])

        updated = await DepartmentService(db_session).update_department(
            department.id, DepartmentUpdate(user_ids=[b.id])
        )

        assert [user.id for user in updated.users] == [b.id]
        assert set(await rows_by_user(db_session, batch.id)) == {b.id}

    @pytest.mark.asyncio
    async def test_delete_keeps_provisioned_rows(self, db_session, make_user, make_department):
        a = await make_user()
        department = await make_department("Music", [a])
        batch = await department_batch(db_session, [department.id])
        service = DepartmentService(db_session)

        await service.delete_department(department.id)

        assert await service.list_departments() == []
        assert set(await rows_by_user(db_session, batch.id)) == {a.id}
