"""Клавиатуры для администраторов и бизнес-пользователей"""
from aiogram.types import ReplyKeyboardMarkup, KeyboardButton, InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from database.models.bid import Bid
from database.models.car import Car, CarStatus
from database.models.lot import Lot, LotStatus


def get_business_keyboard() -> ReplyKeyboardMarkup:
    """Клавиатура бизнес-пользователя: только просмотр итогов торгов"""
    keyboard = [
        [KeyboardButton(text="📦 Лоты")]
    ]
    return ReplyKeyboardMarkup(
        keyboard=keyboard,
        resize_keyboard=True
    )


def get_admin_keyboard() -> ReplyKeyboardMarkup:
    """Клавиатура администратора"""
    keyboard = [
        [KeyboardButton(text="👥 Заявки участников")],
        [KeyboardButton(text="📦 Лоты")],
        [KeyboardButton(text="❓ Вопросы")],
        [KeyboardButton(text="🔄 Обновить статусы")]
    ]
    return ReplyKeyboardMarkup(
        keyboard=keyboard,
        resize_keyboard=True
    )


def get_user_approval_keyboard(user_id: int) -> InlineKeyboardMarkup:
    """Одобрение участника"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text="✅ Одобрить",
        callback_data=f"user:approve:{user_id}"
    ))
    builder.add(InlineKeyboardButton(
        text="❌ Отклонить",
        callback_data=f"user:reject:{user_id}"
    ))
    return builder.as_markup()


def get_lots_keyboard(lots: list[Lot]) -> InlineKeyboardMarkup:
    """Список лотов"""
    builder = InlineKeyboardBuilder()
    for lot in lots:
        builder.add(InlineKeyboardButton(
            text=f"📦 {lot.lot_number} · {lot.status}",
            callback_data=f"lot:view:{lot.id}"
        ))
    builder.adjust(1)
    return builder.as_markup()


def get_lot_keyboard(lot: Lot, is_admin: bool) -> InlineKeyboardMarkup:
    """Действия с лотом"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text="📊 Итоги торгов",
        callback_data=f"lot:results:{lot.id}"
    ))
    if is_admin:
        if not lot.approved:
            builder.add(InlineKeyboardButton(
                text="✅ Одобрить лот",
                callback_data=f"lot:approve:{lot.id}"
            ))
        if lot.status not in (LotStatus.CLOSED.value, LotStatus.EARLY_CLOSED.value):
            builder.add(InlineKeyboardButton(
                text="⛔️ Закрыть досрочно",
                callback_data=f"lot:close:{lot.id}"
            ))
    builder.adjust(1)
    return builder.as_markup()


def get_lot_cars_keyboard(cars: list[Car]) -> InlineKeyboardMarkup:
    """Машины лота для просмотра рейтинга"""
    builder = InlineKeyboardBuilder()
    for car in cars:
        builder.add(InlineKeyboardButton(
            text=f"🚗 {car.title} · {car.status}",
            callback_data=f"car:ranking:{car.id}"
        ))
    builder.adjust(1)
    return builder.as_markup()


def get_ranking_keyboard(car: Car, ranked: list[Bid], is_admin: bool) -> InlineKeyboardMarkup:
    """Рейтинг ставок с выбором победителя"""
    builder = InlineKeyboardBuilder()
    for position, bid in enumerate(ranked[:10], start=1):
        mark = "🏆 " if bid.is_winner else ""
        builder.add(InlineKeyboardButton(
            text=f"{mark}#{position} · {bid.amount:,} — выбрать победителем",
            callback_data=f"winner:{bid.id}"
        ))
    if is_admin:
        if car.status == CarStatus.DISABLED.value:
            builder.add(InlineKeyboardButton(
                text="▶️ Открыть снова",
                callback_data=f"car:reopen:{car.id}"
            ))
        elif car.status in (CarStatus.UPCOMING.value, CarStatus.ACTIVE.value, CarStatus.REOPENED.value):
            builder.add(InlineKeyboardButton(
                text="⏸ Отключить торги",
                callback_data=f"car:disable:{car.id}"
            ))
    builder.adjust(1)
    return builder.as_markup()
