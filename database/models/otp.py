"""Модель одноразовых кодов"""
from sqlalchemy import Column, String, DateTime, Boolean, CheckConstraint
from sqlalchemy.sql import func
import enum
from database.connection import Base, IdType


class OtpMethod(str, enum.Enum):
    """Канал доставки кода"""
    EMAIL = "email"
    MOBILE = "mobile"


class OtpStorage(Base):
    """Одноразовый код для подтверждения email или телефона"""
    __tablename__ = "otp_storage"
    __table_args__ = (
        # Ровно одно из полей email / phone
        CheckConstraint(
            "(email IS NULL) <> (phone IS NULL)",
            name="ck_otp_storage_single_identity"
        ),
    )

    id = Column(IdType, primary_key=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(20), nullable=True, index=True)
    otp_code = Column(String(6), nullable=False)
    otp_method = Column(String(20), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    verified = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
