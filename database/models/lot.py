"""Модель лота"""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, IdType


class LotStatus(str, enum.Enum):
    """Статус лота"""
    UPCOMING = "Upcoming"  # Загружен, ждет одобрения или начала торгов
    APPROVED = "Approved"  # Одобрен, виден участникам
    ACTIVE = "Active"  # Идут торги
    CLOSED = "Closed"  # Торги завершены по времени
    EARLY_CLOSED = "Early Closed"  # Закрыт администратором досрочно
    DISABLED = "Disabled"  # Отключен


class Lot(Base):
    """Модель лота (партии машин)"""
    __tablename__ = "lots"

    id = Column(IdType, primary_key=True, index=True)
    lot_number = Column(String(100), unique=True, nullable=False, index=True)
    status = Column(String(50), default=LotStatus.UPCOMING.value, nullable=False, index=True)
    approved = Column(Boolean, default=False, nullable=False)
    approved_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    early_closed = Column(Boolean, default=False, nullable=False)
    early_closed_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=True)
    early_closed_at = Column(DateTime(timezone=True), nullable=True)
    uploaded_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=True)
    bidding_start_date = Column(DateTime(timezone=True), nullable=True)
    bidding_end_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Связи
    cars = relationship(
        "Car",
        back_populates="lot",
        cascade="all, delete-orphan",
        order_by="Car.id"
    )
