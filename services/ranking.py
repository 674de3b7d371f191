"""Рейтинг ставок по машине

Рейтинг не хранится в базе, он каждый раз считается из текущих ставок.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.bid import Bid
from services.eligibility import ensure_utc

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class CarBidSummary:
    """Сводка по торгам для карточки машины"""
    car_id: int
    highest_amount: Optional[int]
    bid_count: int
    user_amount: Optional[int] = None
    is_leading: bool = False


def _rank_key(bid: Bid):
    # Больше сумма выше; при равной сумме выше более ранняя ставка
    return (-bid.amount, ensure_utc(bid.created_at) or _EPOCH, bid.id or 0)


def rank_bids(bids: Iterable[Bid]) -> list[Bid]:
    """Оставить одну (максимальную) ставку на пользователя и отсортировать"""
    best_by_user = {}
    for bid in bids:
        current = best_by_user.get(bid.user_id)
        if current is None or _rank_key(bid) < _rank_key(current):
            best_by_user[bid.user_id] = bid
    return sorted(best_by_user.values(), key=_rank_key)


async def _get_car_bids(session: AsyncSession, car_ids: list[int]) -> list[Bid]:
    result = await session.execute(
        select(Bid)
        .where(Bid.car_id.in_(car_ids))
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def ranked_bids(session: AsyncSession, car_id: int) -> list[Bid]:
    """Ставки по машине от лидирующей к последней"""
    return rank_bids(await _get_car_bids(session, [car_id]))


async def ranked_bids_for_cars(session: AsyncSession, car_ids: Iterable[int]) -> dict[int, list[Bid]]:
    """Рейтинги сразу для нескольких машин"""
    car_ids = list(car_ids)
    if not car_ids:
        return {}

    grouped = {car_id: [] for car_id in car_ids}
    for bid in await _get_car_bids(session, car_ids):
        grouped[bid.car_id].append(bid)
    return {car_id: rank_bids(bids) for car_id, bids in grouped.items()}


async def highest_bid(session: AsyncSession, car_id: int) -> Optional[int]:
    """Сумма лидирующей ставки или None"""
    ranked = await ranked_bids(session, car_id)
    return ranked[0].amount if ranked else None


async def bid_count(session: AsyncSession, car_id: int) -> int:
    """Количество разных участников, сделавших ставку"""
    return len(await ranked_bids(session, car_id))


async def get_car_summary(
    session: AsyncSession,
    car_id: int,
    user_id: int = None
) -> CarBidSummary:
    """Сводка по машине: лидер, число участников и место пользователя"""
    ranked = await ranked_bids(session, car_id)
    summary = CarBidSummary(
        car_id=car_id,
        highest_amount=ranked[0].amount if ranked else None,
        bid_count=len(ranked),
    )
    if user_id is not None:
        for position, bid in enumerate(ranked):
            if bid.user_id == user_id:
                summary.user_amount = bid.amount
                summary.is_leading = position == 0
                break
    return summary
