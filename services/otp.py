"""Сервис одноразовых кодов для подтверждения email и телефона"""
import logging
import secrets
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, or_
from database.models.otp import OtpStorage, OtpMethod
from services.errors import InvalidOrExpiredOtp
from config import settings

logger = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Случайный шестизначный код"""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def _identity_filter(email: str = None, phone: str = None):
    if (email is None) == (phone is None):
        raise ValueError("Нужно указать ровно одно из: email или телефон")
    if email is not None:
        return OtpStorage.email == email
    return OtpStorage.phone == phone


async def send_otp(
    session: AsyncSession,
    now: datetime,
    email: str = None,
    phone: str = None
) -> OtpStorage:
    """Создать новый код для email или телефона

    Ранее выданные неподтвержденные коды остаются действительными
    до истечения своего срока.
    """
    _identity_filter(email, phone)

    record = OtpStorage(
        email=email,
        phone=phone,
        otp_code=generate_otp_code(),
        otp_method=OtpMethod.EMAIL.value if email is not None else OtpMethod.MOBILE.value,
        expires_at=now + timedelta(minutes=settings.OTP_TTL_MINUTES),
        verified=False,
        created_at=now
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)

    logger.info(f"OTP {record.id} выдан ({record.otp_method})")
    return record


async def verify_otp(
    session: AsyncSession,
    code: str,
    now: datetime,
    email: str = None,
    phone: str = None
) -> OtpStorage:
    """Проверить код и отметить его использованным

    Причина отказа наружу не сообщается: неверный код, чужой адрес,
    истекший срок и повторное использование дают одну и ту же ошибку.
    """
    identity = _identity_filter(email, phone)

    result = await session.execute(
        select(OtpStorage)
        .where(
            identity,
            OtpStorage.otp_code == code,
            OtpStorage.verified == False,
            OtpStorage.expires_at > now
        )
        .order_by(OtpStorage.created_at.desc(), OtpStorage.id.desc())
        .limit(1)
    )
    record = result.scalar_one_or_none()
    if not record:
        raise InvalidOrExpiredOtp()

    # Код гасится только если он все еще не подтвержден
    result = await session.execute(
        update(OtpStorage)
        .where(OtpStorage.id == record.id, OtpStorage.verified == False)
        .values(verified=True)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.commit()
        raise InvalidOrExpiredOtp()

    await session.commit()
    await session.refresh(record)

    logger.info(f"OTP {record.id} подтвержден")
    return record


async def cleanup_otps(session: AsyncSession, now: datetime) -> int:
    """Удалить истекшие и уже использованные коды"""
    result = await session.execute(
        delete(OtpStorage)
        .where(
            or_(
                OtpStorage.expires_at < now,
                OtpStorage.verified == True
            )
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    deleted = result.rowcount or 0
    if deleted:
        logger.info(f"Удалено {deleted} устаревших OTP")
    return deleted
