"""Сервис ставок: одна текущая ставка на пару (машина, пользователь)"""
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import selectinload
from database.models.bid import Bid
from database.models.car import Car, CarStatus
from database.models.lot import Lot
from database.models.user import User, UserRole
from services.eligibility import is_biddable, BIDDABLE_LOT_STATUSES
from services.errors import InvalidAmount, NotApproved, BiddingClosed, NotFound, Unauthorized

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _bid_upsert(session: AsyncSession, values: dict):
    """INSERT ... ON CONFLICT (car_id, user_id) DO UPDATE для текущего диалекта

    При конфликте меняются только amount и updated_at, created_at остается
    временем первой ставки пользователя на эту машину.
    """
    dialect = session.get_bind().dialect.name
    insert_factory = _UPSERT_INSERTS.get(dialect)
    if insert_factory is None:
        raise RuntimeError(f"Upsert ставок не поддерживается для диалекта {dialect}")

    stmt = insert_factory(Bid).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=["car_id", "user_id"],
        set_={
            "amount": stmt.excluded.amount,
            "updated_at": stmt.excluded.updated_at,
        }
    )


async def _get_bid_for_update(session: AsyncSession, car_id: int, user_id: int) -> Optional[Bid]:
    result = await session.execute(
        select(Bid)
        .where(Bid.car_id == car_id, Bid.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def place_or_update_bid(
    session: AsyncSession,
    car_id: int,
    user_id: int,
    amount: int,
    now: datetime
) -> Bid:
    """Сделать ставку или изменить свою текущую ставку на машину

    Проверки идут по порядку, первая неудачная прерывает операцию:
    сумма, одобрение пользователя, доступность машины для торгов.
    """
    if amount is None or amount <= 0:
        raise InvalidAmount()

    user = await session.get(User, user_id, populate_existing=True)
    if not user or user.role != UserRole.BIDDER.value or not user.approved:
        raise NotApproved()

    result = await session.execute(
        select(Car.lot_id).where(Car.id == car_id)
    )
    lot_id = result.scalar_one_or_none()
    if lot_id is None:
        raise NotFound("Машина не найдена")

    # Порядок блокировок: сначала лот, потом машина (как в close_lot)
    result = await session.execute(
        select(Lot)
        .where(Lot.id == lot_id)
        .with_for_update(read=True)
        .execution_options(populate_existing=True)
    )
    lot = result.scalar_one()

    result = await session.execute(
        select(Car)
        .where(Car.id == car_id)
        .with_for_update(read=True)
        .execution_options(populate_existing=True)
    )
    car = result.scalar_one()

    if not is_biddable(car, lot, now):
        raise BiddingClosed()

    await session.execute(
        _bid_upsert(
            session,
            {
                "car_id": car_id,
                "user_id": user_id,
                "amount": amount,
                "is_winner": False,
                "created_at": now,
                "updated_at": now,
            }
        )
    )
    bid = await _get_bid_for_update(session, car_id, user_id)
    await session.commit()

    logger.info(f"Ставка {bid.id}: пользователь {user_id}, машина {car_id}, сумма {amount}")
    return bid


async def delete_bid(
    session: AsyncSession,
    car_id: int,
    user_id: int
) -> None:
    """Удалить свою ставку на машину"""
    result = await session.execute(
        delete(Bid).where(Bid.car_id == car_id, Bid.user_id == user_id)
    )
    if result.rowcount == 0:
        raise NotFound("Ставка не найдена")

    await session.commit()
    logger.info(f"Ставка пользователя {user_id} на машину {car_id} удалена")


async def withdraw_bid(
    session: AsyncSession,
    bid_id: int,
    user_id: int
) -> None:
    """Удалить ставку по ID с проверкой владельца"""
    bid = await session.get(Bid, bid_id)
    if not bid:
        raise NotFound("Ставка не найдена")
    if bid.user_id != user_id:
        raise Unauthorized("Можно удалить только свою ставку")

    await session.delete(bid)
    await session.commit()
    logger.info(f"Ставка {bid_id} отозвана пользователем {user_id}")


async def mark_winner(
    session: AsyncSession,
    bid_id: int
) -> Bid:
    """Отметить ставку победившей и снять отметку с остальных ставок на машину"""
    bid = await session.get(Bid, bid_id, populate_existing=True)
    if not bid:
        raise NotFound("Ставка не найдена")

    # Блокировка строки машины сериализует параллельный выбор победителя
    await session.execute(
        select(Car.id).where(Car.id == bid.car_id).with_for_update()
    )
    await session.execute(
        update(Bid)
        .where(Bid.car_id == bid.car_id, Bid.id != bid.id)
        .values(is_winner=False)
    )
    await session.execute(
        update(Bid)
        .where(Bid.id == bid.id)
        .values(is_winner=True)
    )
    await session.commit()
    await session.refresh(bid)

    logger.info(f"Ставка {bid.id} выбрана победителем по машине {bid.car_id}")
    return bid


async def get_winning_bid(session: AsyncSession, car_id: int) -> Optional[Bid]:
    """Получить победившую ставку по машине"""
    result = await session.execute(
        select(Bid)
        .where(Bid.car_id == car_id, Bid.is_winner == True)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_user_bids(session: AsyncSession, user_id: int) -> list[Bid]:
    """Получить ставки пользователя, новые сверху"""
    result = await session.execute(
        select(Bid)
        .where(Bid.user_id == user_id)
        .options(selectinload(Bid.car))
        .order_by(Bid.created_at.desc())
    )
    return list(result.scalars().all())


async def get_car_with_lot(session: AsyncSession, car_id: int) -> Optional[Car]:
    """Машина вместе с лотом"""
    result = await session.execute(
        select(Car)
        .where(Car.id == car_id)
        .options(selectinload(Car.lot))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_biddable_cars(session: AsyncSession, now: datetime) -> list[Car]:
    """Машины, на которые сейчас можно сделать ставку"""
    result = await session.execute(
        select(Car)
        .join(Lot, Car.lot_id == Lot.id)
        .where(
            Car.status == CarStatus.ACTIVE.value,
            Car.bidding_enabled == True,
            Car.bidding_start_date <= now,
            Car.bidding_end_date >= now,
            Lot.approved == True,
            Lot.status.in_(BIDDABLE_LOT_STATUSES)
        )
        .order_by(Car.bidding_end_date.asc(), Car.id.asc())
    )
    return list(result.scalars().all())
