"""Обработчики для администраторов и бизнес-пользователей"""
from datetime import datetime, timezone
from aiogram import Router, F, Bot
from aiogram.types import Message, CallbackQuery
from aiogram.filters import Command, CommandObject
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from database.models.lot import Lot
from database.models.user import User, UserRole
from bot.keyboards.admin import (
    get_user_approval_keyboard,
    get_lots_keyboard,
    get_lot_keyboard,
    get_lot_cars_keyboard,
    get_ranking_keyboard,
)
from services.bids import mark_winner, get_car_with_lot
from services.errors import BiddingError, WindowExpired
from services.lifecycle import approve_lot, close_lot, create_lot, disable_car, reopen_car, refresh_statuses
from services.notifications import notify_winner
from services.questions import answer_question, get_questions
from services.ranking import ranked_bids, ranked_bids_for_cars
from services.terms import publish_terms
from services.user import approve_user, reject_user, get_pending_users, is_staff
from config import settings

router = Router()

WINDOW_FORMAT = "%d.%m.%Y %H:%M"


class LotApprovalState(StatesGroup):
    """Ввод окна торгов при одобрении лота"""
    waiting_window = State()


class CarReopenState(StatesGroup):
    """Ввод нового окна торгов при повторном открытии машины"""
    waiting_window = State()


def is_admin(user: User, telegram_id: int) -> bool:
    """Администратор из .env или с ролью admin в БД"""
    return telegram_id in settings.admin_ids_list or user.role == UserRole.ADMIN.value


def can_view_results(user: User, telegram_id: int) -> bool:
    """Итоги торгов видят администраторы и бизнес-пользователи"""
    return is_admin(user, telegram_id) or is_staff(user)


def _parse_window(text: str) -> tuple[datetime, datetime]:
    """'01.11.2026 10:00 - 03.11.2026 18:00' в UTC"""
    try:
        start_raw, end_raw = [part.strip() for part in text.split(" - ", 1)]
        start = datetime.strptime(start_raw, WINDOW_FORMAT).replace(tzinfo=timezone.utc)
        end = datetime.strptime(end_raw, WINDOW_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        raise ValueError(
            "Формат: ДД.ММ.ГГГГ ЧЧ:ММ - ДД.ММ.ГГГГ ЧЧ:ММ (время UTC)"
        )
    return start, end


def _parse_car_line(line: str) -> dict:
    """'Toyota Camry; 2019; 01A123BC; 85000' -> поля машины"""
    parts = [p.strip() for p in line.split(";")]
    car = {"make_model": parts[0]}
    if len(parts) > 1 and parts[1].isdigit():
        car["year"] = int(parts[1])
    if len(parts) > 2 and parts[2]:
        car["reg_no"] = parts[2]
    if len(parts) > 3 and parts[3].isdigit():
        car["km"] = int(parts[3])
    return car


# ---------- Участники ----------

@router.message(F.text == "👥 Заявки участников")
async def show_pending_users(message: Message, session: AsyncSession, user: User):
    """Участники, ожидающие одобрения"""
    if not is_admin(user, message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    pending = await get_pending_users(session)
    if not pending:
        await message.answer("Новых заявок нет")
        return

    for bidder in pending[:20]:
        text = (
            f"👤 {bidder.name or 'Без имени'} (ID {bidder.id})\n"
            f"Email: {bidder.email or '—'}\n"
            f"Телефон: {bidder.phone or '—'}\n"
            f"Тип: {bidder.user_type}"
        )
        await message.answer(text, reply_markup=get_user_approval_keyboard(bidder.id))


@router.callback_query(F.data.startswith("user:"))
async def process_user_approval(callback: CallbackQuery, session: AsyncSession, user: User):
    """Одобрить или отклонить участника"""
    if not is_admin(user, callback.from_user.id):
        await callback.answer("У вас нет прав администратора", show_alert=True)
        return

    _, action, user_id = callback.data.split(":")
    try:
        if action == "approve":
            bidder = await approve_user(session, int(user_id), user.id, datetime.now(timezone.utc))
            text = f"✅ Участник {bidder.name or bidder.id} одобрен"
        else:
            bidder = await reject_user(session, int(user_id), user.id)
            text = f"❌ Участник {bidder.name or bidder.id} отклонен"
    except BiddingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.message.edit_text(text)
    await callback.answer()


# ---------- Лоты ----------

@router.message(Command("new_lot"))
async def cmd_new_lot(message: Message, session: AsyncSession, user: User, command: CommandObject):
    """Создать лот: /new_lot НОМЕР, далее по машине на строку"""
    if not is_admin(user, message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    lines = [line for line in (command.args or "").splitlines() if line.strip()]
    if not lines:
        await message.answer(
            "Использование:\n"
            "/new_lot НОМЕР_ЛОТА\n"
            "Марка модель; год; госномер; пробег\n"
            "..."
        )
        return

    cars = [_parse_car_line(line) for line in lines[1:]]
    try:
        lot = await create_lot(session, lines[0].strip(), user.id, cars)
    except BiddingError as e:
        await message.answer(f"❌ {e}")
        return

    await message.answer(f"📦 Лот {lot.lot_number} создан, машин: {len(cars)}. Ожидает одобрения.")


@router.message(F.text == "📦 Лоты")
async def show_lots(message: Message, session: AsyncSession, user: User):
    """Список лотов"""
    if not can_view_results(user, message.from_user.id):
        await message.answer("Недостаточно прав")
        return

    result = await session.execute(
        select(Lot).order_by(Lot.created_at.desc()).limit(30)
    )
    lots = list(result.scalars().all())
    if not lots:
        await message.answer("Лотов пока нет")
        return

    await message.answer("📦 Лоты:", reply_markup=get_lots_keyboard(lots))


@router.callback_query(F.data.startswith("lot:view:"))
async def show_lot(callback: CallbackQuery, session: AsyncSession, user: User):
    """Карточка лота"""
    if not can_view_results(user, callback.from_user.id):
        await callback.answer("Недостаточно прав", show_alert=True)
        return

    lot_id = int(callback.data.split(":")[2])
    result = await session.execute(
        select(Lot).where(Lot.id == lot_id).options(selectinload(Lot.cars))
    )
    lot = result.scalar_one_or_none()
    if not lot:
        await callback.answer("Лот не найден", show_alert=True)
        return

    text = (
        f"📦 Лот <b>{lot.lot_number}</b>\n"
        f"Статус: {lot.status}\n"
        f"Одобрен: {'да' if lot.approved else 'нет'}\n"
        f"Машин: {len(lot.cars)}"
    )
    await callback.message.answer(
        text,
        reply_markup=get_lot_keyboard(lot, is_admin(user, callback.from_user.id))
    )
    await callback.answer()


@router.callback_query(F.data.startswith("lot:approve:"))
async def start_lot_approval(callback: CallbackQuery, state: FSMContext, user: User):
    """Запросить окно торгов для одобрения лота"""
    if not is_admin(user, callback.from_user.id):
        await callback.answer("У вас нет прав администратора", show_alert=True)
        return

    lot_id = int(callback.data.split(":")[2])
    await state.update_data(lot_id=lot_id)
    await state.set_state(LotApprovalState.waiting_window)
    await callback.message.answer(
        "Введите окно торгов (UTC):\n"
        "ДД.ММ.ГГГГ ЧЧ:ММ - ДД.ММ.ГГГГ ЧЧ:ММ"
    )
    await callback.answer()


@router.message(LotApprovalState.waiting_window)
async def process_lot_approval(message: Message, session: AsyncSession, state: FSMContext, user: User):
    """Одобрить лот с указанным окном торгов"""
    data = await state.get_data()
    try:
        start, end = _parse_window(message.text or "")
        lot = await approve_lot(
            session,
            data.get("lot_id"),
            user.id,
            start,
            end,
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
    await message.answer(f"✅ Лот {lot.lot_number} одобрен, статус: {lot.status}")


@router.callback_query(F.data.startswith("lot:close:"))
async def process_lot_close(callback: CallbackQuery, session: AsyncSession, user: User):
    """Досрочно закрыть лот"""
    if not is_admin(user, callback.from_user.id):
        await callback.answer("У вас нет прав администратора", show_alert=True)
        return

    lot_id = int(callback.data.split(":")[2])
    try:
        lot = await close_lot(session, lot_id, user.id, datetime.now(timezone.utc))
    except BiddingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.message.answer(f"⛔️ Лот {lot.lot_number} закрыт досрочно, торги по машинам остановлены")
    await callback.answer()


@router.callback_query(F.data.startswith("lot:results:"))
async def show_lot_results(callback: CallbackQuery, session: AsyncSession, user: User):
    """Итоги торгов по лоту"""
    if not can_view_results(user, callback.from_user.id):
        await callback.answer("Недостаточно прав", show_alert=True)
        return

    lot_id = int(callback.data.split(":")[2])
    result = await session.execute(
        select(Lot).where(Lot.id == lot_id).options(selectinload(Lot.cars))
    )
    lot = result.scalar_one_or_none()
    if not lot:
        await callback.answer("Лот не найден", show_alert=True)
        return

    rankings = await ranked_bids_for_cars(session, [car.id for car in lot.cars])
    lines = [f"📊 Итоги по лоту <b>{lot.lot_number}</b>", ""]
    for car in lot.cars:
        ranked = rankings.get(car.id, [])
        if ranked:
            lines.append(f"• {car.title}: {ranked[0].amount:,} ({len(ranked)} уч.)")
        else:
            lines.append(f"• {car.title}: ставок нет")

    await callback.message.answer("\n".join(lines), reply_markup=get_lot_cars_keyboard(lot.cars))
    await callback.answer()


# ---------- Машины и победители ----------

async def _send_ranking(message: Message, session: AsyncSession, car_id: int, admin: bool):
    car = await get_car_with_lot(session, car_id)
    if not car:
        await message.answer("Машина не найдена")
        return

    ranked = await ranked_bids(session, car_id)
    lines = [f"🚗 <b>{car.title}</b> · {car.status}", ""]
    if not ranked:
        lines.append("Ставок нет")
    for position, bid in enumerate(ranked, start=1):
        mark = " 🏆" if bid.is_winner else ""
        lines.append(f"{position}. {bid.amount:,} — участник {bid.user_id}{mark}")

    await message.answer("\n".join(lines), reply_markup=get_ranking_keyboard(car, ranked, admin))


@router.callback_query(F.data.startswith("car:ranking:"))
async def show_car_ranking(callback: CallbackQuery, session: AsyncSession, user: User):
    """Рейтинг ставок по машине"""
    if not can_view_results(user, callback.from_user.id):
        await callback.answer("Недостаточно прав", show_alert=True)
        return

    car_id = int(callback.data.split(":")[2])
    await _send_ranking(callback.message, session, car_id, is_admin(user, callback.from_user.id))
    await callback.answer()


@router.callback_query(F.data.startswith("winner:"))
async def process_mark_winner(callback: CallbackQuery, session: AsyncSession, user: User, bot: Bot):
    """Выбрать победителя"""
    if not can_view_results(user, callback.from_user.id):
        await callback.answer("Недостаточно прав", show_alert=True)
        return

    bid_id = int(callback.data.split(":")[1])
    try:
        bid = await mark_winner(session, bid_id)
    except BiddingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    notified = await notify_winner(bot, session, bid)
    await callback.message.answer(
        f"🏆 Победитель выбран: ставка {bid.amount:,}"
        + ("" if notified else "\n(участник не привязан к Telegram, уведомление не отправлено)")
    )
    await callback.answer()


@router.callback_query(F.data.startswith("car:disable:"))
async def process_car_disable(callback: CallbackQuery, session: AsyncSession, user: User):
    """Отключить торги по машине"""
    if not is_admin(user, callback.from_user.id):
        await callback.answer("У вас нет прав администратора", show_alert=True)
        return

    car_id = int(callback.data.split(":")[2])
    try:
        car = await disable_car(session, car_id, datetime.now(timezone.utc))
    except BiddingError as e:
        await callback.answer(str(e), show_alert=True)
        return

    await callback.message.answer(f"🚗 {car.title}: статус {car.status}")
    await callback.answer()


@router.callback_query(F.data.startswith("car:reopen:"))
async def start_car_reopen(callback: CallbackQuery, state: FSMContext, user: User):
    """Запросить окно торгов для повторного открытия машины"""
    if not is_admin(user, callback.from_user.id):
        await callback.answer("У вас нет прав администратора", show_alert=True)
        return

    car_id = int(callback.data.split(":")[2])
    await state.update_data(car_id=car_id)
    await state.set_state(CarReopenState.waiting_window)
    await callback.message.answer(
        "Введите новое окно торгов (UTC):\n"
        "ДД.ММ.ГГГГ ЧЧ:ММ - ДД.ММ.ГГГГ ЧЧ:ММ\n"
        "или «-», чтобы оставить текущее"
    )
    await callback.answer()


@router.message(CarReopenState.waiting_window)
async def process_car_reopen(message: Message, session: AsyncSession, state: FSMContext):
    """Снова открыть машину с указанным или прежним окном торгов"""
    data = await state.get_data()
    text = (message.text or "").strip()
    try:
        start, end = (None, None) if text == "-" else _parse_window(text)
        car = await reopen_car(
            session,
            data.get("car_id"),
            datetime.now(timezone.utc),
            start=start,
            end=end
        )
    except WindowExpired as e:
        # Машина остается в ожидании нового окна
        await message.answer(f"❌ {e}")
        return
    except BiddingError as e:
        await state.clear()
        await message.answer(f"❌ {e}")
        return
    except ValueError as e:
        await message.answer(str(e))
        return

    await state.clear()
    await message.answer(f"🚗 {car.title}: статус {car.status}")

# ---------- Вопросы, условия, статусы ----------

@router.message(F.text == "❓ Вопросы")
async def show_questions(message: Message, session: AsyncSession, user: User):
    """Неотвеченные вопросы"""
    if not is_admin(user, message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    questions = await get_questions(session, unanswered_only=True)
    if not questions:
        await message.answer("Новых вопросов нет")
        return

    lines = ["❓ Вопросы без ответа:", ""]
    for question in questions[:20]:
        lines.append(f"#{question.id} (машина {question.car_id}): {question.question_text}")
    lines.append("")
    lines.append("Ответить: /answer ID текст")
    await message.answer("\n".join(lines))


@router.message(Command("answer"))
async def cmd_answer(message: Message, session: AsyncSession, user: User, command: CommandObject, bot: Bot):
    """Ответить на вопрос: /answer ID текст"""
    if not is_admin(user, message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    args = (command.args or "").split(maxsplit=1)
    if len(args) != 2 or not args[0].isdigit():
        await message.answer("Использование: /answer ID текст ответа")
        return

    try:
        question = await answer_question(
            session,
            int(args[0]),
            user.id,
            args[1],
            datetime.now(timezone.utc)
        )
    except BiddingError as e:
        await message.answer(f"❌ {e}")
        return

    await message.answer(f"✅ Ответ на вопрос #{question.id} сохранен")

    asker = await session.get(User, question.asked_by_id)
    if asker and asker.telegram_id:
        try:
            await bot.send_message(
                asker.telegram_id,
                f"💬 Ответ на ваш вопрос:\n<i>{question.question_text}</i>\n\n{question.answer_text}"
            )
        except Exception:
            await message.answer("Не удалось отправить ответ участнику в Telegram")


@router.message(Command("publish_terms"))
async def cmd_publish_terms(message: Message, session: AsyncSession, user: User, command: CommandObject):
    """Опубликовать условия: первая строка версия, далее текст"""
    if not is_admin(user, message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    parts = (command.args or "").split("\n", 1)
    if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
        await message.answer("Использование:\n/publish_terms ВЕРСИЯ\nТекст условий")
        return

    terms = await publish_terms(session, parts[0].strip(), parts[1].strip(), user.id)
    await message.answer(f"📜 Опубликованы условия версии {terms.version}")


@router.message(F.text == "🔄 Обновить статусы")
async def cmd_refresh(message: Message, session: AsyncSession, user: User):
    """Пересчитать статусы лотов и машин вручную"""
    if not is_admin(user, message.from_user.id):
        await message.answer("У вас нет прав администратора")
        return

    changed = await refresh_statuses(session, datetime.now(timezone.utc))
    await message.answer(f"🔄 Статусы обновлены, изменено: {changed}")
