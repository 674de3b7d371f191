"""Клавиатуры бота"""
from .main import get_main_keyboard, get_terms_keyboard
from .bids import get_cars_keyboard, get_car_keyboard
from .admin import (
    get_admin_keyboard,
    get_business_keyboard,
    get_user_approval_keyboard,
    get_lots_keyboard,
    get_lot_keyboard,
    get_lot_cars_keyboard,
    get_ranking_keyboard,
)

__all__ = [
    "get_main_keyboard",
    "get_terms_keyboard",
    "get_cars_keyboard",
    "get_car_keyboard",
    "get_admin_keyboard",
    "get_business_keyboard",
    "get_user_approval_keyboard",
    "get_lots_keyboard",
    "get_lot_keyboard",
    "get_lot_cars_keyboard",
    "get_ranking_keyboard",
]
