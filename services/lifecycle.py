"""Жизненный цикл лотов и машин

Статусы по времени пересчитываются одной идемпотентной функцией
refresh_statuses. Остальные переходы выполняет администратор.
"""
import logging
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete
from sqlalchemy.orm import selectinload
from database.models.car import Car, CarStatus
from database.models.lot import Lot, LotStatus
from database.models.question import Question
from services.eligibility import ensure_utc
from services.errors import NotFound, AlreadyExists, AlreadyClosed, InvalidStatusTransition, WindowExpired

logger = logging.getLogger(__name__)

# Статусы, которые меняет только администратор
CAR_ADMIN_STATUSES = (CarStatus.CLOSED.value, CarStatus.DISABLED.value)
LOT_FINAL_STATUSES = (
    LotStatus.CLOSED.value,
    LotStatus.EARLY_CLOSED.value,
    LotStatus.DISABLED.value,
)


def _car_status_for_window(
    status: str,
    start: datetime,
    end: datetime,
    now: datetime
) -> str:
    if status in CAR_ADMIN_STATUSES:
        return status
    if start is None or end is None:
        return status

    now = ensure_utc(now)
    if now > ensure_utc(end):
        return CarStatus.CLOSED.value
    if now >= ensure_utc(start):
        return CarStatus.ACTIVE.value
    if status == CarStatus.REOPENED.value:
        return status
    return CarStatus.UPCOMING.value


def derive_car_status(car: Car, now: datetime) -> str:
    """Статус машины, который следует из окна торгов на момент now"""
    return _car_status_for_window(
        car.status,
        car.bidding_start_date,
        car.bidding_end_date,
        now
    )


def derive_lot_status(lot: Lot, now: datetime) -> str:
    """Статус лота, который следует из окна торгов на момент now"""
    if lot.status in LOT_FINAL_STATUSES or not lot.approved:
        return lot.status
    if lot.bidding_start_date is None or lot.bidding_end_date is None:
        return lot.status

    now = ensure_utc(now)
    if now > ensure_utc(lot.bidding_end_date):
        return LotStatus.CLOSED.value
    if now >= ensure_utc(lot.bidding_start_date):
        return LotStatus.ACTIVE.value
    return LotStatus.APPROVED.value


async def refresh_statuses(session: AsyncSession, now: datetime) -> int:
    """Пересчитать статусы всех незакрытых лотов и машин

    Возвращает количество измененных строк. Повторный запуск с тем же now
    ничего не меняет.
    """
    changed = 0

    result = await session.execute(
        select(Lot)
        .where(Lot.status.not_in(LOT_FINAL_STATUSES))
        .execution_options(populate_existing=True)
    )
    for lot in result.scalars().all():
        new_status = derive_lot_status(lot, now)
        if new_status != lot.status:
            logger.debug(f"Лот {lot.id}: {lot.status} -> {new_status}")
            lot.status = new_status
            changed += 1

    result = await session.execute(
        select(Car)
        .where(Car.status.not_in(CAR_ADMIN_STATUSES))
        .execution_options(populate_existing=True)
    )
    for car in result.scalars().all():
        new_status = derive_car_status(car, now)
        if new_status != car.status:
            logger.debug(f"Машина {car.id}: {car.status} -> {new_status}")
            car.status = new_status
            car.updated_at = now
            changed += 1

    await session.commit()
    if changed:
        logger.info(f"Обновлено статусов: {changed}")
    return changed


async def _get_lot_for_update(session: AsyncSession, lot_id: int) -> Lot:
    result = await session.execute(
        select(Lot)
        .where(Lot.id == lot_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    lot = result.scalar_one_or_none()
    if not lot:
        raise NotFound("Лот не найден")
    return lot


async def _get_car(session: AsyncSession, car_id: int) -> Car:
    result = await session.execute(
        select(Car)
        .where(Car.id == car_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    car = result.scalar_one_or_none()
    if not car:
        raise NotFound("Машина не найдена")
    return car


async def approve_lot(
    session: AsyncSession,
    lot_id: int,
    actor_id: int,
    start: datetime,
    end: datetime,
    now: datetime
) -> Lot:
    """Одобрить лот и открыть торги по всем его машинам в окне [start, end]"""
    if ensure_utc(end) <= ensure_utc(start):
        raise ValueError("Дата окончания торгов должна быть позже даты начала")

    lot = await _get_lot_for_update(session, lot_id)
    if lot.status in LOT_FINAL_STATUSES:
        raise AlreadyClosed()

    lot.approved = True
    lot.approved_by_id = actor_id
    lot.approved_at = now
    lot.bidding_start_date = start
    lot.bidding_end_date = end
    lot.status = LotStatus.APPROVED.value
    lot.status = derive_lot_status(lot, now)

    # Машины получают то же окно и статус по тем же правилам;
    # отключенные и закрытые администратором машины не трогаем
    await session.execute(
        update(Car)
        .where(Car.lot_id == lot_id, Car.status.not_in(CAR_ADMIN_STATUSES))
        .values(
            bidding_start_date=start,
            bidding_end_date=end,
            bidding_enabled=True,
            status=_car_status_for_window(CarStatus.UPCOMING.value, start, end, now),
            updated_at=now
        )
    )
    await session.commit()

    logger.info(f"Лот {lot_id} одобрен пользователем {actor_id}, статус {lot.status}")
    return lot


async def close_lot(
    session: AsyncSession,
    lot_id: int,
    actor_id: int,
    now: datetime
) -> Lot:
    """Досрочно закрыть лот вместе со всеми его машинами

    Лот и машины обновляются в одной транзакции под блокировкой строки лота,
    поэтому параллельная ставка видит либо открытый, либо закрытый лот целиком.
    """
    lot = await _get_lot_for_update(session, lot_id)
    if lot.status in (LotStatus.CLOSED.value, LotStatus.EARLY_CLOSED.value):
        raise AlreadyClosed()

    lot.status = LotStatus.EARLY_CLOSED.value
    lot.early_closed = True
    lot.early_closed_by_id = actor_id
    lot.early_closed_at = now

    await session.execute(
        update(Car)
        .where(Car.lot_id == lot_id)
        .values(status=CarStatus.CLOSED.value, updated_at=now)
    )
    await session.commit()

    logger.info(f"Лот {lot_id} досрочно закрыт пользователем {actor_id}")
    return lot


async def disable_car(session: AsyncSession, car_id: int, now: datetime) -> Car:
    """Отключить торги по машине"""
    car = await _get_car(session, car_id)
    if car.status not in (
        CarStatus.UPCOMING.value,
        CarStatus.ACTIVE.value,
        CarStatus.REOPENED.value,
    ):
        raise InvalidStatusTransition(f"Нельзя отключить машину в статусе {car.status}")

    car.status = CarStatus.DISABLED.value
    car.bidding_enabled = False
    car.updated_at = now
    await session.commit()

    logger.info(f"Машина {car_id} отключена")
    return car


async def reopen_car(
    session: AsyncSession,
    car_id: int,
    now: datetime,
    start: datetime = None,
    end: datetime = None
) -> Car:
    """Снова открыть отключенную машину, при необходимости с новым окном торгов"""
    car = await _get_car(session, car_id)
    if car.status != CarStatus.DISABLED.value:
        raise InvalidStatusTransition(f"Открыть можно только отключенную машину, сейчас {car.status}")
    if start is not None and end is not None and ensure_utc(end) <= ensure_utc(start):
        raise ValueError("Дата окончания торгов должна быть позже даты начала")
    new_end = end if end is not None else car.bidding_end_date
    if new_end is not None and ensure_utc(now) > ensure_utc(new_end):
        raise WindowExpired()

    if start is not None:
        car.bidding_start_date = start
    if end is not None:
        car.bidding_end_date = end
    car.bidding_enabled = True
    car.status = CarStatus.REOPENED.value
    # Если окно уже идет, машина сразу становится активной
    car.status = derive_car_status(car, now)
    car.updated_at = now
    await session.commit()

    logger.info(f"Машина {car_id} снова открыта, статус {car.status}")
    return car


async def delete_lot(session: AsyncSession, lot_id: int) -> None:
    """Удалить лот вместе с машинами, их ставками и вопросами"""
    result = await session.execute(
        select(Lot)
        .where(Lot.id == lot_id)
        .options(
            selectinload(Lot.cars).selectinload(Car.bids),
            selectinload(Lot.cars).selectinload(Car.questions)
        )
    )
    lot = result.scalar_one_or_none()
    if not lot:
        raise NotFound("Лот не найден")

    await session.execute(
        delete(Question)
        .where(Question.lot_id == lot_id, Question.car_id.is_(None))
        .execution_options(synchronize_session=False)
    )
    # Машины, их ставки и вопросы удаляются каскадом связей
    await session.delete(lot)
    await session.commit()

    logger.info(f"Лот {lot_id} удален")


async def create_lot(
    session: AsyncSession,
    lot_number: str,
    uploaded_by_id: int = None,
    cars: list[dict] = None
) -> Lot:
    """Создать лот с машинами; лот ждет одобрения администратора"""
    result = await session.execute(
        select(Lot.id).where(Lot.lot_number == lot_number)
    )
    if result.scalar_one_or_none() is not None:
        raise AlreadyExists(f"Лот {lot_number} уже существует")

    lot = Lot(
        lot_number=lot_number,
        status=LotStatus.UPCOMING.value,
        approved=False,
        uploaded_by_id=uploaded_by_id
    )
    for car_data in cars or []:
        lot.cars.append(Car(
            status=CarStatus.UPCOMING.value,
            bidding_enabled=False,
            **car_data
        ))
    session.add(lot)
    await session.commit()

    logger.info(f"Лот {lot.id} ({lot_number}) создан, машин: {len(cars or [])}")
    return lot
