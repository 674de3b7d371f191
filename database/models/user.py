"""Модель пользователя"""
from sqlalchemy import Column, BigInteger, String, DateTime, Boolean, ForeignKey
from sqlalchemy.sql import func
import enum
from database.connection import Base, IdType


class UserRole(str, enum.Enum):
    """Роль пользователя"""
    BIDDER = "bidder"  # Участник торгов
    ADMIN = "admin"  # Администратор платформы
    BUSINESS = "business"  # Бизнес-пользователь: видит ставки, выбирает победителей


class UserType(str, enum.Enum):
    """Тип аккаунта участника"""
    INDIVIDUAL = "individual"
    ORGANIZATION = "organization"


class User(Base):
    """Модель пользователя

    Одна таблица для всех ролей, поэтому email уникален сразу
    для участников, администраторов и бизнес-пользователей.
    """
    __tablename__ = "users"

    id = Column(IdType, primary_key=True, index=True)
    telegram_id = Column(BigInteger, unique=True, nullable=True, index=True)
    email = Column(String(255), unique=True, nullable=True, index=True)
    phone = Column(String(20), nullable=True)
    secondary_contact = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    role = Column(String(50), default=UserRole.BIDDER.value, nullable=False, index=True)
    user_type = Column(String(50), default=UserType.INDIVIDUAL.value, nullable=False)
    password_hash = Column(String(255), nullable=True)
    approved = Column(Boolean, default=False, nullable=False, index=True)
    approved_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    terms_accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
