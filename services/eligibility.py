"""Проверка доступности машины для ставок"""
from datetime import datetime, timezone
from typing import Optional
from database.models.car import Car, CarStatus
from database.models.lot import Lot, LotStatus

# Статусы лота, при которых его машины принимают ставки
BIDDABLE_LOT_STATUSES = (LotStatus.APPROVED.value, LotStatus.ACTIVE.value)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Привести datetime к UTC; naive значения считаются UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_within_window(
    start: Optional[datetime],
    end: Optional[datetime],
    now: datetime
) -> bool:
    """start <= now <= end, обе границы включительно"""
    if start is None or end is None:
        return False
    now = ensure_utc(now)
    return ensure_utc(start) <= now <= ensure_utc(end)


def is_biddable(car: Car, lot: Lot, now: datetime) -> bool:
    """Можно ли сейчас сделать ставку на машину"""
    return bool(
        car.status == CarStatus.ACTIVE.value
        and car.bidding_enabled
        and is_within_window(car.bidding_start_date, car.bidding_end_date, now)
        and lot.approved
        and lot.status in BIDDABLE_LOT_STATUSES
    )
