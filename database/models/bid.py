"""Модель ставки"""
from sqlalchemy import Column, BigInteger, Integer, DateTime, ForeignKey, Boolean, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database.connection import Base, IdType


class Bid(Base):
    """Модель ставки на машину

    Одна строка на пару (машина, пользователь): повторная ставка меняет amount.
    """
    __tablename__ = "bids"
    __table_args__ = (
        UniqueConstraint("car_id", "user_id", name="uq_bids_car_user"),
        CheckConstraint("amount > 0", name="ck_bids_amount_positive"),
    )

    id = Column(IdType, primary_key=True, index=True)
    car_id = Column(BigInteger, ForeignKey("cars.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Сумма ставки
    is_winner = Column(Boolean, default=False, nullable=False)  # Выбрана победителем
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)  # Последнее изменение суммы

    # Связи
    car = relationship("Car", back_populates="bids")
    user = relationship("User", backref="bids")
