"""Планировщик фоновых задач: статусы лотов и очистка OTP"""
import asyncio
import logging
from datetime import datetime, timezone
from database.connection import async_session_maker
from services.lifecycle import refresh_statuses
from services.otp import cleanup_otps
from config import settings

logger = logging.getLogger(__name__)


async def refresh_job() -> int:
    """Один проход пересчета статусов"""
    async with async_session_maker() as session:
        return await refresh_statuses(session, datetime.now(timezone.utc))


async def otp_cleanup_job() -> int:
    """Один проход очистки OTP"""
    async with async_session_maker() as session:
        return await cleanup_otps(session, datetime.now(timezone.utc))


async def scheduler_loop():
    """Основной цикл планировщика"""
    interval = settings.STATUS_REFRESH_INTERVAL_SECONDS
    cleanup_every = max(1, settings.OTP_CLEANUP_INTERVAL_MINUTES * 60 // interval)
    # Счетчик итераций для периодической очистки
    ticks = 0

    while True:
        try:
            await refresh_job()

            if ticks >= cleanup_every:
                await otp_cleanup_job()
                ticks = 0

            ticks += 1

        except Exception as e:
            logger.error(f"Ошибка в планировщике: {e}")

        await asyncio.sleep(interval)


def start_scheduler() -> asyncio.Task:
    """Запустить планировщик"""
    task = asyncio.create_task(scheduler_loop())
    logger.info("Планировщик статусов и очистки OTP запущен")
    return task
