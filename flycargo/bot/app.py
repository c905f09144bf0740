# flycargo/bot/app.py
"""
Инициализация Telegram бота модераторов.
Создание Bot и Dispatcher.
"""

from __future__ import annotations

from typing import Any

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.redis import RedisStorage
import redis.asyncio as redis


def create_bot(token: str) -> Bot:
    """
    Создаёт экземпляр бота.

    Args:
        token: Токен бота

    Raises:
        ValueError: Токен не задан
    """
    if not token:
        raise ValueError("BOT_TOKEN не задан")

    return Bot(
        token=token,
        default=DefaultBotProperties(
            parse_mode=ParseMode.HTML,
        ),
    )


def create_dispatcher(redis_url: str, moderator_chat_id: int, **services: Any) -> Dispatcher:
    """
    Создаёт диспетчер с Redis storage для FSM.

    Args:
        redis_url: URL Redis
        moderator_chat_id: ID чата модераторов
        services: Сервисы, доступные хендлерам по имени аргумента
                  (gateway, disputes)

    Returns:
        Экземпляр Dispatcher
    """
    storage = RedisStorage(redis.from_url(redis_url))

    dp = Dispatcher(storage=storage, **services)

    from flycargo.bot.handlers import register_routers
    register_routers(dp)

    from flycargo.bot.middleware import register_middleware
    register_middleware(dp, moderator_chat_id)

    return dp
