"""Сервис условий участия"""
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from database.models.terms import TermsAndCondition

logger = logging.getLogger(__name__)


async def publish_terms(
    session: AsyncSession,
    version: str,
    content: str,
    created_by_id: int = None
) -> TermsAndCondition:
    """Опубликовать новую версию условий

    Снятие активности со старых версий и вставка новой идут одной транзакцией.
    """
    await session.execute(
        update(TermsAndCondition)
        .where(TermsAndCondition.active == True)
        .values(active=False)
    )
    terms = TermsAndCondition(
        version=version,
        content=content,
        active=True,
        created_by_id=created_by_id
    )
    session.add(terms)
    await session.commit()
    await session.refresh(terms)

    logger.info(f"Опубликованы условия версии {version}")
    return terms


async def get_active_terms(session: AsyncSession) -> Optional[TermsAndCondition]:
    """Действующая версия условий"""
    result = await session.execute(
        select(TermsAndCondition)
        .where(TermsAndCondition.active == True)
        .order_by(TermsAndCondition.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()
