from datetime import timedelta

import pytest
from sqlalchemy import select, func

from database.models.otp import OtpStorage, OtpMethod
from services.eligibility import ensure_utc
from services.errors import InvalidOrExpiredOtp
from services.otp import cleanup_otps, generate_otp_code, send_otp, verify_otp


async def count_otps(session):
    result = await session.execute(select(func.count(OtpStorage.id)))
    return result.scalar_one()


def test_generated_code_is_six_digits():
    for _ in range(200):
        code = generate_otp_code()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


async def test_send_otp_for_email(session, now):
    record = await send_otp(session, now, email="a@b.com")

    assert record.email == "a@b.com"
    assert record.phone is None
    assert record.otp_method == OtpMethod.EMAIL.value
    assert record.verified is False
    assert len(record.otp_code) == 6
    assert ensure_utc(record.expires_at) == now + timedelta(minutes=10)


async def test_send_otp_for_phone(session, now):
    record = await send_otp(session, now, phone="+998901234567")
    assert record.otp_method == OtpMethod.MOBILE.value
    assert record.email is None


@pytest.mark.parametrize("identity", [{}, {"email": "a@b.com", "phone": "+998901234567"}])
async def test_send_otp_requires_exactly_one_identity(session, now, identity):
    with pytest.raises(ValueError):
        await send_otp(session, now, **identity)


async def test_verify_succeeds_exactly_once(session, now):
    record = await send_otp(session, now, email="a@b.com")
    code = record.otp_code

    verified = await verify_otp(session, code, now + timedelta(minutes=1), email="a@b.com")
    assert verified.verified is True

    with pytest.raises(InvalidOrExpiredOtp):
        await verify_otp(session, code, now + timedelta(minutes=2), email="a@b.com")


async def test_wrong_code_leaves_store_unchanged(session, now):
    record = await send_otp(session, now, email="a@b.com")
    wrong = "000000" if record.otp_code != "000000" else "111111"

    with pytest.raises(InvalidOrExpiredOtp):
        await verify_otp(session, wrong, now, email="a@b.com")

    result = await session.execute(
        select(OtpStorage).execution_options(populate_existing=True)
    )
    rows = result.scalars().all()
    assert len(rows) == 1
    assert rows[0].verified is False


async def test_expired_code_is_rejected(session, now):
    record = await send_otp(session, now, email="a@b.com")
    with pytest.raises(InvalidOrExpiredOtp):
        await verify_otp(session, record.otp_code, now + timedelta(minutes=11), email="a@b.com")


async def test_code_is_bound_to_identity(session, now):
    record = await send_otp(session, now, email="a@b.com")
    with pytest.raises(InvalidOrExpiredOtp):
        await verify_otp(session, record.otp_code, now, email="other@b.com")
    with pytest.raises(InvalidOrExpiredOtp):
        await verify_otp(session, record.otp_code, now, phone="+998901234567")


async def test_older_codes_stay_valid(session, now):
    first = await send_otp(session, now, email="a@b.com")
    second = await send_otp(session, now + timedelta(minutes=1), email="a@b.com")
    first_code = first.otp_code

    if first_code != second.otp_code:
        verified = await verify_otp(session, first_code, now + timedelta(minutes=2), email="a@b.com")
        assert verified.id == first.id
    assert await count_otps(session) == 2


async def test_cleanup_removes_expired_and_verified(session, now):
    used = await send_otp(session, now, email="used@b.com")
    await verify_otp(session, used.otp_code, now, email="used@b.com")
    await send_otp(session, now - timedelta(minutes=30), email="old@b.com")
    fresh = await send_otp(session, now, email="fresh@b.com")
    fresh_id = fresh.id

    deleted = await cleanup_otps(session, now)
    assert deleted == 2

    result = await session.execute(select(OtpStorage.id))
    assert result.scalars().all() == [fresh_id]

    assert await cleanup_otps(session, now) == 0
