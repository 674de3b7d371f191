import pytest

from database.models.user import UserRole, UserType
from services.errors import AlreadyExists, NotFound
from services.otp import send_otp, verify_otp
from services.user import (
    accept_terms,
    approve_user,
    ensure_email_available,
    get_or_create_user,
    get_pending_users,
    is_staff,
    register_user,
    reject_user,
    update_contact,
)


async def test_register_bidder_waits_for_approval(session):
    user = await register_user(session, "dealer@example.com", "Автосалон", user_type=UserType.ORGANIZATION.value)
    assert user.role == UserRole.BIDDER.value
    assert user.approved is False

    pending = await get_pending_users(session)
    assert [u.id for u in pending] == [user.id]


async def test_register_staff_is_approved(session):
    admin = await register_user(session, "admin@example.com", "Админ", role=UserRole.ADMIN.value)
    assert admin.approved is True
    assert is_staff(admin)
    assert await get_pending_users(session) == []


async def test_email_is_unique_across_roles(session):
    await register_user(session, "same@example.com", "Бизнес", role=UserRole.BUSINESS.value)
    with pytest.raises(AlreadyExists):
        await register_user(session, "same@example.com", "Участник")


async def test_approve_and_reject(session, make_user, now):
    admin = await make_user(role=UserRole.ADMIN.value)
    bidder = await make_user(approved=False)

    approved = await approve_user(session, bidder.id, admin.id, now)
    assert approved.approved is True
    assert approved.approved_by_id == admin.id
    assert await get_pending_users(session) == []

    rejected = await reject_user(session, bidder.id, admin.id)
    assert rejected.approved is False
    assert rejected.approved_by_id is None
    assert [u.id for u in await get_pending_users(session)] == [bidder.id]


async def test_approve_unknown_user(session, now):
    with pytest.raises(NotFound):
        await approve_user(session, 404, 1, now)


async def test_get_or_create_user_is_idempotent(session):
    first = await get_or_create_user(session, 777000, "Иван")
    second = await get_or_create_user(session, 777000, "Другое имя")
    assert first.id == second.id
    assert second.name == "Иван"
    assert second.approved is False
    assert not is_staff(second)


async def test_accept_terms(session, make_user, now):
    user = await make_user()
    updated = await accept_terms(session, user.id, now)
    assert updated.terms_accepted_at is not None


async def test_update_contact(session, make_user):
    taken = await make_user(email="taken@example.com")
    user = await make_user()

    with pytest.raises(AlreadyExists):
        await update_contact(session, user.id, email=taken.email)

    updated = await update_contact(session, user.id, email="new@example.com", phone="+998901234567")
    assert updated.email == "new@example.com"
    assert updated.phone == "+998901234567"


async def test_taken_email_is_rejected_before_code_is_spent(session, make_user, now):
    owner = await make_user(email="owner@example.com")
    other = await make_user()
    record = await send_otp(session, now, email=owner.email)

    with pytest.raises(AlreadyExists):
        await ensure_email_available(session, owner.email, other.id)

    # Код не израсходован и остается у владельца адреса
    verified = await verify_otp(session, record.otp_code, now, email=owner.email)
    assert verified.verified is True
    await ensure_email_available(session, owner.email, owner.id)
