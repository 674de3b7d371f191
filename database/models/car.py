"""Модель машины"""
from sqlalchemy import Column, BigInteger, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base, IdType


class CarStatus(str, enum.Enum):
    """Статус машины"""
    UPCOMING = "Upcoming"  # Торги еще не начались
    ACTIVE = "Active"  # Идут торги
    CLOSED = "Closed"  # Торги завершены
    DISABLED = "Disabled"  # Торги отключены администратором
    REOPENED = "Reopened"  # Повторно открыта администратором


class Car(Base):
    """Модель машины в лоте"""
    __tablename__ = "cars"

    id = Column(IdType, primary_key=True, index=True)
    lot_id = Column(BigInteger, ForeignKey("lots.id", ondelete="CASCADE"), nullable=False, index=True)
    sr_number = Column(String(50), nullable=True)
    chassis_no = Column(String(100), nullable=True)
    reg_no = Column(String(50), nullable=True)
    fleet_no = Column(String(50), nullable=True)
    make_model = Column(String(255), nullable=True)
    year = Column(Integer, nullable=True)
    km = Column(Integer, nullable=True)
    color = Column(String(50), nullable=True)
    body_type = Column(String(100), nullable=True)
    status = Column(String(50), default=CarStatus.UPCOMING.value, nullable=False, index=True)
    bidding_enabled = Column(Boolean, default=False, nullable=False)
    bidding_start_date = Column(DateTime(timezone=True), nullable=True)
    bidding_end_date = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Связи
    lot = relationship("Lot", back_populates="cars")
    bids = relationship(
        "Bid",
        back_populates="car",
        cascade="all, delete-orphan",
        order_by="Bid.created_at.desc()"
    )
    questions = relationship("Question", back_populates="car", cascade="all, delete-orphan")

    @property
    def title(self) -> str:
        """Короткое название для сообщений"""
        parts = [self.make_model or "Машина", str(self.year) if self.year else None, self.reg_no]
        return " ".join(p for p in parts if p)
