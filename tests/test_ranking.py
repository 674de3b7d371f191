from datetime import datetime, timedelta, timezone

from database.models.bid import Bid
from services.bids import place_or_update_bid
from services.ranking import (
    bid_count,
    get_car_summary,
    highest_bid,
    rank_bids,
    ranked_bids,
    ranked_bids_for_cars,
)

T = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def bid(id, user_id, amount, minutes=0):
    return Bid(id=id, car_id=1, user_id=user_id, amount=amount, created_at=T + timedelta(minutes=minutes))


def test_rank_bids_sorts_by_amount_descending():
    ranked = rank_bids([bid(1, 10, 100), bid(2, 11, 300), bid(3, 12, 200)])
    assert [b.amount for b in ranked] == [300, 200, 100]


def test_rank_bids_keeps_only_best_bid_per_user():
    ranked = rank_bids([bid(1, 10, 100), bid(2, 10, 250), bid(3, 11, 200)])
    assert [(b.user_id, b.amount) for b in ranked] == [(10, 250), (11, 200)]


def test_equal_amounts_earliest_bid_wins():
    ranked = rank_bids([bid(1, 10, 500, minutes=5), bid(2, 11, 500, minutes=1)])
    assert [b.user_id for b in ranked] == [11, 10]


def test_rank_bids_is_deterministic():
    bids = [bid(1, 10, 100), bid(2, 11, 100), bid(3, 12, 150, minutes=2)]
    assert rank_bids(bids) == rank_bids(list(reversed(bids)))


def test_rank_bids_empty():
    assert rank_bids([]) == []


async def test_scenario_update_moves_user_to_top(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    a = await make_user()
    b = await make_user()

    await place_or_update_bid(session, car_id, a.id, 100, now)
    await place_or_update_bid(session, car_id, b.id, 150, now + timedelta(minutes=1))
    await place_or_update_bid(session, car_id, a.id, 200, now + timedelta(minutes=2))

    ranked = await ranked_bids(session, car_id)
    assert [(r.user_id, r.amount) for r in ranked] == [(a.id, 200), (b.id, 150)]
    assert await highest_bid(session, car_id) == 200
    assert await bid_count(session, car_id) == 2

    # Повторный расчет без новых ставок дает тот же порядок
    again = await ranked_bids(session, car_id)
    assert [r.id for r in again] == [r.id for r in ranked]


async def test_empty_car_has_no_highest_bid(session, biddable_car):
    assert await highest_bid(session, biddable_car.id) is None
    assert await bid_count(session, biddable_car.id) == 0


async def test_ranked_bids_for_cars(session, make_user, make_lot, make_car, now):
    lot = await make_lot()
    first = await make_car(lot)
    second = await make_car(lot)
    empty = await make_car(lot)
    a = await make_user()
    b = await make_user()

    await place_or_update_bid(session, first.id, a.id, 100, now)
    await place_or_update_bid(session, first.id, b.id, 120, now)
    await place_or_update_bid(session, second.id, a.id, 90, now)

    rankings = await ranked_bids_for_cars(session, [first.id, second.id, empty.id])
    assert [r.amount for r in rankings[first.id]] == [120, 100]
    assert [r.amount for r in rankings[second.id]] == [90]
    assert rankings[empty.id] == []
    assert await ranked_bids_for_cars(session, []) == {}


async def test_car_summary_for_user(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    a = await make_user()
    b = await make_user()
    c = await make_user()
    await place_or_update_bid(session, car_id, a.id, 100, now)
    await place_or_update_bid(session, car_id, b.id, 300, now)

    leader = await get_car_summary(session, car_id, b.id)
    assert leader.highest_amount == 300
    assert leader.bid_count == 2
    assert leader.user_amount == 300
    assert leader.is_leading is True

    outbid = await get_car_summary(session, car_id, a.id)
    assert outbid.user_amount == 100
    assert outbid.is_leading is False

    spectator = await get_car_summary(session, car_id, c.id)
    assert spectator.user_amount is None
    assert spectator.is_leading is False
