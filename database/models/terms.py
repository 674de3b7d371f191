"""Модель пользовательского соглашения"""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, Boolean, Text
from sqlalchemy.sql import func
from database.connection import Base, IdType


class TermsAndCondition(Base):
    """Версия условий участия; активна не более одной"""
    __tablename__ = "terms_and_conditions"

    id = Column(IdType, primary_key=True, index=True)
    version = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    active = Column(Boolean, default=False, nullable=False, index=True)
    created_by_id = Column(BigInteger, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
