"""
Pytest fixtures for test database, client, and seeded catalog rows.

Each test gets a fresh in-memory SQLite database, so tests are isolated
and need no running Postgres or Redis.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from adventure_booking.db.base import Base
from adventure_booking.db.session import get_db
from adventure_booking.main import app
from adventure_booking.models import Adventure, AdventureAvailability, Booking, Promotion

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create tables, yield the engine, then drop tables for isolation."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    async with make_session_factory(test_engine)() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def trip_date() -> date:
    """A date comfortably inside every adventure's booking window."""
    return datetime.now(timezone.utc).date() + timedelta(days=30)


@pytest.fixture
def guest_headers() -> dict:
    return {"X-User-Id": "guest-1", "X-Session-Id": "sess-abc"}


def booking_payload(adventure_id: int, selected_date: date, participants: int, **extra) -> dict:
    payload = {
        "adventure_id": adventure_id,
        "selected_date": selected_date.isoformat(),
        "selected_time": "09:00",
        "participants": participants,
        "lead_guest": {"name": "Ada Lovelace", "email": "ada@example.com", "phone": "+15550100"},
    }
    payload.update(extra)
    return payload


@pytest_asyncio.fixture
async def adventure(db_session: AsyncSession) -> Adventure:
    """$150 per person, 8 guests a day, 10% off for groups, no early-bird."""
    adventure = Adventure(
        title="Canyon Rappel",
        description="Half a day on the ropes",
        location="Moab, UT",
        guide_id="guide-7",
        price_per_person=Decimal("150.00"),
        group_discount_percentage=Decimal("10"),
        early_bird_discount_percentage=Decimal("0"),
        early_bird_days=14,
        max_participants=8,
        daily_capacity=8,
        min_advance_booking_hours=24,
        max_advance_booking_days=365,
        image_urls=[],
    )
    db_session.add(adventure)
    await db_session.commit()
    await db_session.refresh(adventure)
    return adventure


@pytest_asyncio.fixture
async def inactive_adventure(db_session: AsyncSession) -> Adventure:
    adventure = Adventure(
        title="Retired Trek",
        price_per_person=Decimal("80.00"),
        daily_capacity=6,
        is_active=False,
        image_urls=[],
    )
    db_session.add(adventure)
    await db_session.commit()
    await db_session.refresh(adventure)
    return adventure


async def add_override(
    db: AsyncSession,
    adventure_id: int,
    day: date,
    available_spots: int,
    booked_spots: int = 0,
    is_blocked: bool = False,
    status: str = "available",
) -> AdventureAvailability:
    override = AdventureAvailability(
        adventure_id=adventure_id,
        date=day,
        available_spots=available_spots,
        booked_spots=booked_spots,
        is_blocked=is_blocked,
        status=status,
    )
    db.add(override)
    await db.commit()
    await db.refresh(override)
    return override


async def add_booking(
    db: AsyncSession,
    adventure_id: int,
    day: date,
    participants: int,
    status: str = "confirmed",
    user_id: str = "someone-else",
    expires_at: datetime = None,
) -> Booking:
    booking = Booking(
        user_id=user_id,
        adventure_id=adventure_id,
        booking_date=day,
        participants=participants,
        base_price=Decimal("150.00"),
        total_amount=Decimal("150.00") * participants,
        status=status,
        expires_at=expires_at or datetime.now(timezone.utc) + timedelta(hours=24),
    )
    db.add(booking)
    await db.commit()
    await db.refresh(booking)
    return booking


async def add_promotion(db: AsyncSession, code: str = "SUMMER20", **overrides) -> Promotion:
    now = datetime.now(timezone.utc)
    fields = dict(
        code=code,
        name="Summer sale",
        discount_type="percentage",
        discount_value=Decimal("20"),
        max_discount_amount=None,
        adventure_ids=None,
        starts_at=now - timedelta(days=1),
        expires_at=now + timedelta(days=30),
        usage_limit=None,
        usage_count=0,
        is_active=True,
    )
    fields.update(overrides)
    promotion = Promotion(**fields)
    db.add(promotion)
    await db.commit()
    await db.refresh(promotion)
    return promotion
