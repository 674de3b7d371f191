"""Клавиатуры для торгов"""
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder
from database.models.car import Car


def get_cars_keyboard(cars: list[Car]) -> InlineKeyboardMarkup:
    """Список машин, открытых для ставок"""
    builder = InlineKeyboardBuilder()
    for car in cars:
        builder.add(InlineKeyboardButton(
            text=f"🚗 {car.title}",
            callback_data=f"car:view:{car.id}"
        ))
    # Каждая машина в своей строке
    builder.adjust(1)
    return builder.as_markup()


def get_car_keyboard(car_id: int, has_bid: bool) -> InlineKeyboardMarkup:
    """Карточка машины"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text="✏️ Изменить ставку" if has_bid else "💰 Сделать ставку",
        callback_data=f"bid:new:{car_id}"
    ))
    if has_bid:
        builder.add(InlineKeyboardButton(
            text="🗑 Удалить ставку",
            callback_data=f"bid:delete:{car_id}"
        ))
    builder.add(InlineKeyboardButton(
        text="❓ Задать вопрос",
        callback_data=f"question:ask:{car_id}"
    ))
    builder.adjust(1)
    return builder.as_markup()
