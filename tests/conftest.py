"""
Shared fixtures for the terminplaner test suite.

Each test runs against its own in-memory SQLite database (aiosqlite), so
services can commit freely without leaking state between tests.
"""

import itertools
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy import insert
from sqlalchemy.pool import StaticPool

from terminplaner.core.clock import FixedClock, get_clock
from terminplaner.core.database import Base, get_db
from terminplaner.models import User, Topic, AvailabilityRule, Department, Booking, user_departments
from terminplaner.services.auth_service import hash_password, create_session_token

# Monday of ISO week 1 (odd)
MONDAY_WEEK_1 = datetime(2024, 1, 1, 8, 0)


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    """Clock frozen on Monday 2024-01-01 08:00"""
    return FixedClock(MONDAY_WEEK_1)


@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    async def _make_user(username=None, **kwargs):
        n = next(counter)
        password = kwargs.pop("password", None)
        user = User(
            username=username or f"user{n}",
            display_name=kwargs.pop("display_name", f"User {n}"),
            password_hash=hash_password(password) if password else None,
            **kwargs,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_topic(db_session):
    async def _make_topic(user, duration_minutes=30, title="Consultation", **kwargs):
        topic = Topic(user_id=user.id, title=title, duration_minutes=duration_minutes, **kwargs)
        db_session.add(topic)
        await db_session.commit()
        await db_session.refresh(topic)
        return topic

    return _make_topic


@pytest.fixture
def make_rule(db_session):
    async def _make_rule(user, recurrence="weekly", start_time="09:00", end_time="10:00", **kwargs):
        rule = AvailabilityRule(
            user_id=user.id,
            recurrence=recurrence,
            start_time=start_time,
            end_time=end_time,
            **kwargs,
        )
        db_session.add(rule)
        await db_session.commit()
        await db_session.refresh(rule)
        return rule

    return _make_rule


@pytest.fixture
def make_department(db_session):
    async def _make_department(name="Science", members=()):
        department = Department(name=name)
        db_session.add(department)
        await db_session.flush()
        if members:
            await db_session.execute(
                insert(user_departments),
                [{"user_id": user.id, "department_id": department.id} for user in members],
            )
        await db_session.commit()
        await db_session.refresh(department)
        return department

    return _make_department


@pytest.fixture
def make_booking(db_session):
    async def _make_booking(provider, start, end, status="confirmed", topic=None, **kwargs):
        booking = Booking(
            slot_start_time=start,
            slot_end_time=end,
            customer_name=kwargs.pop("customer_name", "Parent"),
            customer_email=kwargs.pop("customer_email", "parent@example.org"),
            status=status,
            provider_id=provider.id,
            topic_id=topic.id if topic else None,
            **kwargs,
        )
        db_session.add(booking)
        await db_session.commit()
        await db_session.refresh(booking)
        return booking

    return _make_booking


@pytest_asyncio.fixture
async def client(session_factory, clock):
    """HTTP client against the app with the test database and clock"""
    from terminplaner.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header for a user"""
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_session_token(user.id)}"}

    return _auth_headers
