from datetime import timedelta

import pytest
from sqlalchemy import select, func

from database.models.bid import Bid
from database.models.car import CarStatus
from database.models.user import UserRole
from services.bids import (
    delete_bid,
    get_biddable_cars,
    get_user_bids,
    get_winning_bid,
    mark_winner,
    place_or_update_bid,
    withdraw_bid,
)
from services.eligibility import ensure_utc
from services.errors import (
    BiddingClosed,
    InvalidAmount,
    NotApproved,
    NotFound,
    Unauthorized,
)


async def count_bids(session, car_id):
    result = await session.execute(select(func.count(Bid.id)).where(Bid.car_id == car_id))
    return result.scalar_one()


async def test_place_bid_creates_row(session, make_user, biddable_car, now):
    user = await make_user()
    bid = await place_or_update_bid(session, biddable_car.id, user.id, 1000, now)

    assert bid.id is not None
    assert bid.amount == 1000
    assert bid.is_winner is False
    assert ensure_utc(bid.created_at) == now


async def test_second_bid_updates_in_place_and_keeps_created_at(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    user = await make_user()
    first = await place_or_update_bid(session, car_id, user.id, 1000, now)
    first_id = first.id

    later = now + timedelta(minutes=10)
    second = await place_or_update_bid(session, car_id, user.id, 1500, later)

    assert second.id == first_id
    assert second.amount == 1500
    assert ensure_utc(second.created_at) == now
    assert ensure_utc(second.updated_at) == later
    assert await count_bids(session, car_id) == 1


async def test_retried_submission_is_idempotent(session, make_user, biddable_car, now):
    user = await make_user()
    await place_or_update_bid(session, biddable_car.id, user.id, 700, now)
    await place_or_update_bid(session, biddable_car.id, user.id, 700, now)
    assert await count_bids(session, biddable_car.id) == 1


@pytest.mark.parametrize("amount", [0, -5, None])
async def test_invalid_amount(session, make_user, biddable_car, now, amount):
    user = await make_user()
    with pytest.raises(InvalidAmount):
        await place_or_update_bid(session, biddable_car.id, user.id, amount, now)


async def test_amount_checked_before_approval(session, make_user, biddable_car, now):
    user = await make_user(approved=False)
    with pytest.raises(InvalidAmount):
        await place_or_update_bid(session, biddable_car.id, user.id, 0, now)


async def test_unapproved_user_cannot_bid(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    user = await make_user(approved=False)
    with pytest.raises(NotApproved):
        await place_or_update_bid(session, car_id, user.id, 500, now)
    assert await count_bids(session, car_id) == 0


async def test_staff_cannot_bid(session, make_user, biddable_car, now):
    admin = await make_user(role=UserRole.ADMIN.value)
    with pytest.raises(NotApproved):
        await place_or_update_bid(session, biddable_car.id, admin.id, 500, now)


async def test_unknown_user_is_not_approved(session, biddable_car, now):
    with pytest.raises(NotApproved):
        await place_or_update_bid(session, biddable_car.id, 9999, 500, now)


async def test_unknown_car(session, make_user, now):
    user = await make_user()
    with pytest.raises(NotFound):
        await place_or_update_bid(session, 9999, user.id, 500, now)


async def test_bid_after_window_is_rejected(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    user = await make_user()
    with pytest.raises(BiddingClosed):
        await place_or_update_bid(session, car_id, user.id, 500, now + timedelta(hours=2))
    assert await count_bids(session, car_id) == 0


async def test_bid_on_disabled_car_is_rejected(session, make_user, make_lot, make_car, now):
    lot = await make_lot()
    car = await make_car(lot, status=CarStatus.DISABLED.value, enabled=False)
    user = await make_user()
    with pytest.raises(BiddingClosed):
        await place_or_update_bid(session, car.id, user.id, 500, now)


async def test_bid_on_unapproved_lot_is_rejected(session, make_user, make_lot, make_car, now):
    lot = await make_lot(approved=False)
    car = await make_car(lot)
    user = await make_user()
    with pytest.raises(BiddingClosed):
        await place_or_update_bid(session, car.id, user.id, 500, now)


async def test_delete_bid(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    user = await make_user()
    await place_or_update_bid(session, car_id, user.id, 500, now)

    await delete_bid(session, car_id, user.id)
    assert await count_bids(session, car_id) == 0

    with pytest.raises(NotFound):
        await delete_bid(session, car_id, user.id)


async def test_withdraw_bid_checks_owner(session, make_user, biddable_car, now):
    owner = await make_user()
    other = await make_user()
    bid = await place_or_update_bid(session, biddable_car.id, owner.id, 500, now)
    bid_id = bid.id

    with pytest.raises(Unauthorized):
        await withdraw_bid(session, bid_id, other.id)

    await withdraw_bid(session, bid_id, owner.id)
    assert await count_bids(session, biddable_car.id) == 0

    with pytest.raises(NotFound):
        await withdraw_bid(session, bid_id, owner.id)


async def test_mark_winner_flips_between_bids(session, make_user, biddable_car, now):
    car_id = biddable_car.id
    a = await make_user()
    b = await make_user()
    bid_a = await place_or_update_bid(session, car_id, a.id, 100, now)
    bid_b = await place_or_update_bid(session, car_id, b.id, 200, now)

    await mark_winner(session, bid_a.id)
    winner = await get_winning_bid(session, car_id)
    assert winner.id == bid_a.id

    await mark_winner(session, bid_b.id)
    result = await session.execute(
        select(Bid).where(Bid.car_id == car_id).execution_options(populate_existing=True)
    )
    flags = {row.id: row.is_winner for row in result.scalars().all()}
    assert flags == {bid_a.id: False, bid_b.id: True}


async def test_mark_winner_does_not_touch_other_cars(session, make_user, make_lot, make_car, now):
    lot = await make_lot()
    first = await make_car(lot)
    second = await make_car(lot)
    user = await make_user()
    bid_first = await place_or_update_bid(session, first.id, user.id, 100, now)
    bid_second = await place_or_update_bid(session, second.id, user.id, 100, now)

    await mark_winner(session, bid_first.id)
    await mark_winner(session, bid_second.id)

    assert (await get_winning_bid(session, first.id)).id == bid_first.id
    assert (await get_winning_bid(session, second.id)).id == bid_second.id


async def test_mark_winner_unknown_bid(session):
    with pytest.raises(NotFound):
        await mark_winner(session, 12345)


async def test_get_user_bids(session, make_user, make_lot, make_car, now):
    lot = await make_lot()
    first = await make_car(lot, make_model="Chevrolet Cobalt")
    second = await make_car(lot, make_model="Kia K5")
    user = await make_user()
    await place_or_update_bid(session, first.id, user.id, 100, now)
    await place_or_update_bid(session, second.id, user.id, 200, now + timedelta(minutes=1))

    bids = await get_user_bids(session, user.id)
    assert [b.car.make_model for b in bids] == ["Kia K5", "Chevrolet Cobalt"]


async def test_get_biddable_cars(session, make_lot, make_car, now):
    open_lot = await make_lot()
    open_car = await make_car(open_lot)
    await make_car(open_lot, status=CarStatus.DISABLED.value, enabled=False)
    await make_car(open_lot, start=now + timedelta(hours=1), end=now + timedelta(hours=2))
    hidden_lot = await make_lot(approved=False)
    await make_car(hidden_lot)

    cars = await get_biddable_cars(session, now)
    assert [car.id for car in cars] == [open_car.id]
