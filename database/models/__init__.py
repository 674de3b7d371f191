"""Модели базы данных"""
from .user import User
from .lot import Lot
from .car import Car
from .bid import Bid
from .question import Question
from .terms import TermsAndCondition
from .otp import OtpStorage

__all__ = [
    "User",
    "Lot",
    "Car",
    "Bid",
    "Question",
    "TermsAndCondition",
    "OtpStorage",
]
