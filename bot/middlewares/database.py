"""Middleware для работы с базой данных"""
from typing import Callable, Dict, Any, Awaitable
from aiogram import BaseMiddleware
from aiogram.types import TelegramObject
from database.connection import async_session_maker
from services.user import get_or_create_user


class DatabaseMiddleware(BaseMiddleware):
    """Middleware: сессия БД и текущий пользователь на каждый апдейт"""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any]
    ) -> Any:
        async with async_session_maker() as session:
            data["session"] = session
            from_user = data.get("event_from_user")
            if from_user is not None:
                data["user"] = await get_or_create_user(
                    session,
                    from_user.id,
                    from_user.full_name
                )
            return await handler(event, data)
