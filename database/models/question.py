"""Модель вопроса по лоту или машине"""
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, Boolean, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from database.connection import Base, IdType


class Question(Base):
    """Вопрос участника и ответ администратора"""
    __tablename__ = "questions"

    id = Column(IdType, primary_key=True, index=True)
    lot_id = Column(BigInteger, ForeignKey("lots.id", ondelete="CASCADE"), nullable=True, index=True)
    car_id = Column(BigInteger, ForeignKey("cars.id", ondelete="CASCADE"), nullable=True, index=True)
    asked_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    answered = Column(Boolean, default=False, nullable=False, index=True)
    answer_text = Column(Text, nullable=True)
    answered_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=True)
    answered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    # Связи
    car = relationship("Car", back_populates="questions")
    asked_by = relationship("User", foreign_keys=[asked_by_id])
