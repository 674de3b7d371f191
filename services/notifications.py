"""Уведомления: передача кодов в канал доставки и сообщения победителям"""
import logging
from aiogram import Bot
from sqlalchemy.ext.asyncio import AsyncSession
from database.models.bid import Bid
from database.models.car import Car
from database.models.otp import OtpStorage
from database.models.user import User

logger = logging.getLogger(__name__)


def deliver_otp(record: OtpStorage) -> None:
    """Передать код в канал доставки (email или SMS)"""
    target = record.email or record.phone
    logger.info(f"OTP {record.id} передан на доставку: {record.otp_method} -> {target}")
    logger.debug(f"OTP {record.id}: {record.otp_code}")


async def notify_winner(bot: Bot, session: AsyncSession, bid: Bid) -> bool:
    """Сообщить победителю о выигранной машине, если аккаунт привязан к Telegram"""
    user = await session.get(User, bid.user_id)
    car = await session.get(Car, bid.car_id)
    if not user or not user.telegram_id:
        return False

    text = (
        "🏆 Ваша ставка выбрана победившей!\n\n"
        f"Машина: <b>{car.title if car else bid.car_id}</b>\n"
        f"Сумма: <b>{bid.amount:,}</b>\n\n"
        "С вами свяжутся для оформления сделки."
    )
    try:
        await bot.send_message(user.telegram_id, text, parse_mode="HTML")
        return True
    except Exception as e:
        logger.error(f"Ошибка отправки уведомления победителю {user.id}: {e}")
        return False
