"""Сервис вопросов участников"""
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database.models.question import Question
from services.errors import NotFound


async def ask_question(
    session: AsyncSession,
    asked_by_id: int,
    text: str,
    lot_id: int = None,
    car_id: int = None
) -> Question:
    """Задать вопрос по лоту или машине"""
    if lot_id is None and car_id is None:
        raise ValueError("Вопрос должен относиться к лоту или машине")
    if not text or not text.strip():
        raise ValueError("Текст вопроса не может быть пустым")

    question = Question(
        lot_id=lot_id,
        car_id=car_id,
        asked_by_id=asked_by_id,
        question_text=text.strip(),
        answered=False
    )
    session.add(question)
    await session.commit()
    await session.refresh(question)
    return question


async def answer_question(
    session: AsyncSession,
    question_id: int,
    answered_by_id: int,
    text: str,
    now: datetime
) -> Question:
    """Ответить на вопрос"""
    question = await session.get(Question, question_id, populate_existing=True)
    if not question:
        raise NotFound("Вопрос не найден")

    question.answered = True
    question.answer_text = text.strip()
    question.answered_by_id = answered_by_id
    question.answered_at = now
    await session.commit()
    return question


async def get_questions(
    session: AsyncSession,
    lot_id: int = None,
    car_id: int = None,
    asked_by_id: int = None,
    unanswered_only: bool = False
) -> list[Question]:
    """Список вопросов с фильтрами, новые сверху"""
    query = select(Question)
    if lot_id is not None:
        query = query.where(Question.lot_id == lot_id)
    if car_id is not None:
        query = query.where(Question.car_id == car_id)
    if asked_by_id is not None:
        query = query.where(Question.asked_by_id == asked_by_id)
    if unanswered_only:
        query = query.where(Question.answered == False)

    result = await session.execute(
        query.order_by(Question.created_at.desc(), Question.id.desc())
    )
    return list(result.scalars().all())
