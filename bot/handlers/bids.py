"""Обработчики торгов для участников"""
from datetime import datetime, timezone
from aiogram import Router, F
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.user import User
from bot.keyboards.bids import get_cars_keyboard, get_car_keyboard
from services.bids import (
    place_or_update_bid,
    delete_bid,
    get_user_bids,
    get_biddable_cars,
    get_car_with_lot,
)
from services.eligibility import ensure_utc, is_biddable
from services.errors import BiddingError
from services.questions import ask_question
from services.ranking import CarBidSummary, get_car_summary

router = Router()


class BidState(StatesGroup):
    """Состояния для ввода ставки и вопроса"""
    waiting_amount = State()
    waiting_question = State()


def _format_dt(value: datetime) -> str:
    value = ensure_utc(value)
    return value.strftime("%d.%m.%Y %H:%M UTC") if value else "—"


def _parse_amount(text: str) -> int:
    """Сумма из текста пользователя: '150 000' -> 150000"""
    cleaned = (text or "").replace(" ", "").replace(",", "").replace("_", "")
    if not cleaned.isdigit():
        raise ValueError("Введите сумму целым числом, например 150000")
    return int(cleaned)


def _car_card_text(car, summary: CarBidSummary) -> str:
    text_parts = [f"🚗 <b>{car.title}</b>"]
    if car.chassis_no:
        text_parts.append(f"Шасси: {car.chassis_no}")
    if car.km is not None:
        text_parts.append(f"Пробег: {car.km:,} км")
    if car.color:
        text_parts.append(f"Цвет: {car.color}")
    text_parts.append(f"Лот: {car.lot.lot_number}")
    text_parts.append(f"Торги до: {_format_dt(car.bidding_end_date)}")
    text_parts.append(f"👥 Участников: {summary.bid_count}")
    if summary.highest_amount is not None:
        text_parts.append(f"⚡️ Лидирующая ставка: {summary.highest_amount:,}")
    if summary.user_amount is not None:
        status = "вы лидируете" if summary.is_leading else "вас перебили"
        text_parts.append(f"💰 Ваша ставка: {summary.user_amount:,} ({status})")

    return "\n".join(text_parts)


@router.message(F.text == "🚗 Торги")
async def show_open_cars(message: Message, session: AsyncSession):
    """Показать машины, открытые для ставок"""
    cars = await get_biddable_cars(session, datetime.now(timezone.utc))
    if not cars:
        await message.answer("Сейчас нет машин, открытых для ставок")
        return

    await message.answer(
        f"🚗 Открыто для ставок: {len(cars)}",
        reply_markup=get_cars_keyboard(cars[:50])
    )


@router.callback_query(F.data.startswith("car:view:"))
async def show_car(callback: CallbackQuery, session: AsyncSession, user: User):
    """Карточка машины"""
    car_id = int(callback.data.split(":")[2])
    car = await get_car_with_lot(session, car_id)
    if not car:
        await callback.answer("Машина не найдена", show_alert=True)
        return

    summary = await get_car_summary(session, car.id, user.id)
    text = _car_card_text(car, summary)
    await callback.message.answer(
        text,
        reply_markup=get_car_keyboard(car.id, summary.user_amount is not None)
    )
    await callback.answer()


@router.callback_query(F.data.startswith("bid:new:"))
async def start_bid(callback: CallbackQuery, session: AsyncSession, state: FSMContext, user: User):
    """Запросить сумму ставки"""
    car_id = int(callback.data.split(":")[2])

    if not user.approved:
        await callback.answer("Ваш аккаунт ожидает одобрения администратора", show_alert=True)
        return

    car = await get_car_with_lot(session, car_id)
    if not car or not is_biddable(car, car.lot, datetime.now(timezone.utc)):
        await callback.answer("Торги по этой машине закрыты", show_alert=True)
        return

    await state.update_data(car_id=car_id)
    await state.set_state(BidState.waiting_amount)
    await callback.message.answer(f"Введите сумму ставки для {car.title}:")
    await callback.answer()


@router.message(BidState.waiting_amount)
async def process_bid_amount(message: Message, session: AsyncSession, state: FSMContext, user: User):
    """Сделать или изменить ставку"""
    data = await state.get_data()
    car_id = data.get("car_id")

    try:
        amount = _parse_amount(message.text)
        bid = await place_or_update_bid(
            session,
            car_id,
            user.id,
            amount,
            datetime.now(timezone.utc)
        )
    except BiddingError as e:
        await state.clear()
        await message.answer(f"❌ {e}")
        return
    except ValueError as e:
        await message.answer(str(e))
        return

    await state.clear()
    summary = await get_car_summary(session, car_id, user.id)
    text = f"✅ Ваша ставка {bid.amount:,} принята"
    if summary.is_leading:
        text += "\n🥇 Сейчас вы лидируете"
    elif summary.highest_amount is not None:
        text += f"\nЛидирующая ставка: {summary.highest_amount:,}"
    await message.answer(text)


@router.callback_query(F.data.startswith("bid:delete:"))
async def remove_bid(callback: CallbackQuery, session: AsyncSession, user: User):
    """Удалить свою ставку"""
    car_id = int(callback.data.split(":")[2])
    try:
        await delete_bid(session, car_id, user.id)
    except BiddingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.message.answer("🗑 Ставка удалена")
    await callback.answer()


@router.message(F.text == "📊 Мои ставки")
async def show_my_bids(message: Message, session: AsyncSession, user: User):
    """Список ставок пользователя"""
    bids = await get_user_bids(session, user.id)
    if not bids:
        await message.answer("У вас пока нет ставок")
        return

    lines = ["📊 <b>Ваши ставки</b>", ""]
    for bid in bids:
        summary = await get_car_summary(session, bid.car_id, user.id)
        if bid.is_winner:
            status = "🏆 победа"
        elif summary.is_leading:
            status = "🥇 лидируете"
        else:
            status = f"лидер: {summary.highest_amount:,}"
        lines.append(f"• {bid.car.title}: {bid.amount:,} ({status})")

    await message.answer("\n".join(lines))


@router.callback_query(F.data.startswith("question:ask:"))
async def start_question(callback: CallbackQuery, state: FSMContext):
    """Запросить текст вопроса по машине"""
    car_id = int(callback.data.split(":")[2])
    await state.update_data(car_id=car_id)
    await state.set_state(BidState.waiting_question)
    await callback.message.answer("Напишите ваш вопрос по машине:")
    await callback.answer()


@router.message(BidState.waiting_question)
async def process_question(message: Message, session: AsyncSession, state: FSMContext, user: User):
    """Сохранить вопрос"""
    data = await state.get_data()
    car = await get_car_with_lot(session, data.get("car_id"))
    if not car:
        await state.clear()
        await message.answer("Машина не найдена")
        return

    try:
        await ask_question(session, user.id, message.text or "", lot_id=car.lot_id, car_id=car.id)
    except ValueError as e:
        await message.answer(str(e))
        return

    await state.clear()
    await message.answer("✅ Вопрос отправлен, администратор ответит в ближайшее время")
