"""Основные клавиатуры"""
from aiogram.types import ReplyKeyboardMarkup, KeyboardButton, InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder


def get_main_keyboard() -> ReplyKeyboardMarkup:
    """Главная клавиатура участника"""
    keyboard = [
        [KeyboardButton(text="🚗 Торги")],
        [KeyboardButton(text="📊 Мои ставки")],
        [KeyboardButton(text="📧 Подтвердить email")],
        [KeyboardButton(text="📜 Условия участия")]
    ]
    return ReplyKeyboardMarkup(
        keyboard=keyboard,
        resize_keyboard=True
    )


def get_terms_keyboard() -> InlineKeyboardMarkup:
    """Кнопка принятия условий"""
    builder = InlineKeyboardBuilder()
    builder.add(InlineKeyboardButton(
        text="✅ Принимаю условия",
        callback_data="terms:accept"
    ))
    return builder.as_markup()
