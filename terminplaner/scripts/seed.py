import asyncio
from sqlalchemy import select
from ..core.database import AsyncSessionLocal, create_tables
from ..models.availability import AvailabilityRule, Recurrence
from ..models.topic import Topic
from ..models.user import User
from ..services.auth_service import hash_password


async def main():
    await create_tables()
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.username == "admin"))
        if result.scalar_one_or_none():
            print("Database already seeded, nothing to do.")
            return

        admin = User(
            username="admin",
            display_name="Administrator",
            password_hash=hash_password("admin"),
            is_admin=True,
        )
        staff = User(
            username="staff",
            display_name="Staff Member",
            email="staff@example.org",
            password_hash=hash_password("staff"),
            position="Counsellor",
        )
        session.add_all([admin, staff])
        await session.flush()

        session.add_all([
            Topic(user_id=staff.id, title="Consultation", duration_minutes=30),
            Topic(user_id=staff.id, title="Parent meeting", duration_minutes=15),
            AvailabilityRule(
                user_id=staff.id,
                recurrence=Recurrence.WEEKLY.value,
                day_of_week=1,
                start_time="09:00",
                end_time="12:00",
            ),
            AvailabilityRule(
                user_id=staff.id,
                recurrence=Recurrence.ODD_WEEK.value,
                day_of_week=3,
                start_time="14:00",
                end_time="16:00",
            ),
        ])
        await session.commit()
        print(f"Seeded admin (id={admin.id}) and staff (id={staff.id}) with two topics and two rules")


if __name__ == '__main__':
    asyncio.run(main())
