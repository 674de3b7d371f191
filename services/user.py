"""Сервис для работы с пользователями"""
import logging
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.user import User, UserRole, UserType
from services.errors import AlreadyExists, NotFound

logger = logging.getLogger(__name__)


def is_staff(user: User) -> bool:
    """Администратор или бизнес-пользователь"""
    return user is not None and user.role in (UserRole.ADMIN.value, UserRole.BUSINESS.value)


async def get_or_create_user(
    session: AsyncSession,
    telegram_id: int,
    name: str = None
) -> User:
    """Получить или создать участника по Telegram ID"""
    result = await session.execute(
        select(User).where(User.telegram_id == telegram_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        user = User(
            telegram_id=telegram_id,
            name=name,
            role=UserRole.BIDDER.value,
            user_type=UserType.INDIVIDUAL.value,
            approved=False
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        logger.info(f"Новый пользователь {user.id} (telegram {telegram_id})")
    elif name and not user.name:
        user.name = name
        await session.commit()

    return user


async def register_user(
    session: AsyncSession,
    email: str,
    name: str,
    phone: str = None,
    user_type: str = UserType.INDIVIDUAL.value,
    role: str = UserRole.BIDDER.value,
    password_hash: str = None
) -> User:
    """Зарегистрировать аккаунт; email уникален для всех ролей"""
    result = await session.execute(
        select(User.id).where(User.email == email)
    )
    if result.scalar_one_or_none() is not None:
        raise AlreadyExists("Пользователь с таким email уже существует")

    user = User(
        email=email,
        name=name,
        phone=phone,
        user_type=user_type,
        role=role,
        password_hash=password_hash,
        # Персонал не проходит одобрение как участник торгов
        approved=role != UserRole.BIDDER.value
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info(f"Зарегистрирован пользователь {user.id} ({role})")
    return user


async def _get_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id, populate_existing=True)
    if not user:
        raise NotFound("Пользователь не найден")
    return user


async def approve_user(
    session: AsyncSession,
    user_id: int,
    admin_id: int,
    now: datetime
) -> User:
    """Одобрить участника торгов"""
    user = await _get_user(session, user_id)
    user.approved = True
    user.approved_by_id = admin_id
    user.approved_at = now
    await session.commit()

    logger.info(f"Пользователь {user_id} одобрен администратором {admin_id}")
    return user


async def reject_user(
    session: AsyncSession,
    user_id: int,
    admin_id: int
) -> User:
    """Отозвать одобрение участника"""
    user = await _get_user(session, user_id)
    user.approved = False
    user.approved_by_id = None
    user.approved_at = None
    await session.commit()

    logger.info(f"Одобрение пользователя {user_id} отозвано администратором {admin_id}")
    return user


async def get_pending_users(session: AsyncSession) -> list[User]:
    """Участники, ожидающие одобрения"""
    result = await session.execute(
        select(User)
        .where(User.role == UserRole.BIDDER.value, User.approved == False)
        .order_by(User.created_at.asc(), User.id.asc())
    )
    return list(result.scalars().all())


async def accept_terms(session: AsyncSession, user_id: int, now: datetime) -> User:
    """Отметить принятие условий участия"""
    user = await _get_user(session, user_id)
    user.terms_accepted_at = now
    await session.commit()
    return user


async def ensure_email_available(session: AsyncSession, email: str, user_id: int = None) -> None:
    """AlreadyExists, если email занят другим пользователем"""
    query = select(User.id).where(User.email == email)
    if user_id is not None:
        query = query.where(User.id != user_id)
    result = await session.execute(query)
    if result.scalar_one_or_none() is not None:
        raise AlreadyExists("Этот email уже используется")


async def update_contact(
    session: AsyncSession,
    user_id: int,
    email: str = None,
    phone: str = None
) -> User:
    """Сохранить подтвержденный через OTP email или телефон"""
    user = await _get_user(session, user_id)

    if email is not None and email != user.email:
        await ensure_email_available(session, email, user_id)
        user.email = email
    if phone is not None:
        user.phone = phone

    await session.commit()
    return user
