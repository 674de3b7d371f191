"""Общие фикстуры: база в памяти и фабрики сущностей"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from database.connection import Base
from database.models import User, Lot, Car, Bid
from database.models.car import CarStatus
from database.models.lot import LotStatus
from database.models.user import UserRole

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest_asyncio.fixture
async def engine():
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
async def session(engine):
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(session):
    counter = {"n": 0}

    async def _make_user(approved=True, role=UserRole.BIDDER.value, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            name=kwargs.pop("name", f"User {counter['n']}"),
            role=role,
            approved=approved,
            **kwargs
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def make_lot(session):
    counter = {"n": 0}

    async def _make_lot(
        status=LotStatus.ACTIVE.value,
        approved=True,
        start=NOW - timedelta(hours=1),
        end=NOW + timedelta(hours=1),
        **kwargs
    ) -> Lot:
        counter["n"] += 1
        lot = Lot(
            lot_number=kwargs.pop("lot_number", f"LOT-{counter['n']}"),
            status=status,
            approved=approved,
            bidding_start_date=start,
            bidding_end_date=end,
            **kwargs
        )
        session.add(lot)
        await session.commit()
        await session.refresh(lot)
        return lot

    return _make_lot


@pytest_asyncio.fixture
async def make_car(session):
    async def _make_car(
        lot: Lot,
        status=CarStatus.ACTIVE.value,
        enabled=True,
        start=NOW - timedelta(hours=1),
        end=NOW + timedelta(hours=1),
        **kwargs
    ) -> Car:
        car = Car(
            lot_id=lot.id,
            make_model=kwargs.pop("make_model", "Toyota Camry"),
            status=status,
            bidding_enabled=enabled,
            bidding_start_date=start,
            bidding_end_date=end,
            **kwargs
        )
        session.add(car)
        await session.commit()
        await session.refresh(car)
        return car

    return _make_car


@pytest_asyncio.fixture
async def biddable_car(make_lot, make_car):
    """Машина, открытая для ставок в момент NOW"""
    lot = await make_lot()
    return await make_car(lot)
