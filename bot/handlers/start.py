"""Обработчики /start, условий участия и подтверждения email"""
import re
from datetime import datetime, timezone
from aiogram import Router, F
from aiogram.types import Message, CallbackQuery
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.user import User, UserRole
from bot.keyboards.main import get_main_keyboard, get_terms_keyboard
from bot.keyboards.admin import get_admin_keyboard, get_business_keyboard
from services.errors import BiddingError
from services.notifications import deliver_otp
from services.otp import send_otp, verify_otp
from services.terms import get_active_terms
from services.user import accept_terms, ensure_email_available, update_contact
from config import settings

router = Router()

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ContactState(StatesGroup):
    """Состояния подтверждения email"""
    waiting_email = State()
    waiting_code = State()


def _keyboard_for(user: User, telegram_id: int):
    if telegram_id in settings.admin_ids_list or user.role == UserRole.ADMIN.value:
        return get_admin_keyboard()
    if user.role == UserRole.BUSINESS.value:
        return get_business_keyboard()
    return get_main_keyboard()


@router.message(Command("start"))
async def cmd_start(message: Message, user: User, state: FSMContext):
    """Обработчик команды /start"""
    await state.clear()

    welcome_text = "👋 Добро пожаловать на площадку торгов автомобилями!\n\n"
    if user.role == UserRole.BIDDER.value and not user.approved:
        welcome_text += (
            "⏳ Ваш аккаунт ожидает одобрения администратора. "
            "Пока можно смотреть машины и подтвердить email."
        )
    else:
        welcome_text += "Выберите раздел:"

    await message.answer(welcome_text, reply_markup=_keyboard_for(user, message.from_user.id))


@router.message(F.text == "📜 Условия участия")
@router.message(Command("terms"))
async def cmd_terms(message: Message, session: AsyncSession, user: User):
    """Показать действующие условия участия"""
    terms = await get_active_terms(session)
    if not terms:
        await message.answer("Условия участия пока не опубликованы")
        return

    text = f"📜 Условия участия (версия {terms.version})\n\n{terms.content}"
    if user.terms_accepted_at:
        await message.answer(text + "\n\n✅ Вы уже приняли условия")
    else:
        await message.answer(text, reply_markup=get_terms_keyboard())


@router.callback_query(F.data == "terms:accept")
async def accept_terms_callback(callback: CallbackQuery, session: AsyncSession, user: User):
    """Принять условия участия"""
    await accept_terms(session, user.id, datetime.now(timezone.utc))
    await callback.message.edit_reply_markup(reply_markup=None)
    await callback.answer("Условия приняты")


@router.message(F.text == "📧 Подтвердить email")
async def start_email_change(message: Message, state: FSMContext):
    """Начать подтверждение email"""
    await state.set_state(ContactState.waiting_email)
    await message.answer("Введите email, который хотите привязать к аккаунту:")


@router.message(ContactState.waiting_email)
async def process_email(message: Message, session: AsyncSession, state: FSMContext, user: User):
    """Отправить код на указанный email"""
    email = (message.text or "").strip().lower()
    if not EMAIL_RE.match(email):
        await message.answer("Это не похоже на email, попробуйте еще раз")
        return

    try:
        await ensure_email_available(session, email, user.id)
    except BiddingError as e:
        await state.clear()
        await message.answer(f"❌ {e}")
        return

    record = await send_otp(session, datetime.now(timezone.utc), email=email)
    deliver_otp(record)

    await state.update_data(email=email)
    await state.set_state(ContactState.waiting_code)
    await message.answer(
        f"📨 Мы отправили код на {email}.\n"
        f"Введите его здесь (код действует {settings.OTP_TTL_MINUTES} минут):"
    )


@router.message(ContactState.waiting_code)
async def process_code(message: Message, session: AsyncSession, state: FSMContext, user: User):
    """Проверить код и сохранить email"""
    data = await state.get_data()
    email = data.get("email")
    code = (message.text or "").strip()

    try:
        # Занятость email проверяется до того, как код будет израсходован
        await ensure_email_available(session, email, user.id)
        await verify_otp(session, code, datetime.now(timezone.utc), email=email)
        await update_contact(session, user.id, email=email)
    except BiddingError as e:
        await message.answer(f"❌ {e}")
        return

    await state.clear()
    await message.answer(f"✅ Email {email} подтвержден")
