# flycargo/bot/handlers/__init__.py
"""
Хендлеры Telegram бота.
"""

from aiogram import Dispatcher

from flycargo.bot.handlers.moderation import router as moderation_router


def register_routers(dp: Dispatcher) -> None:
    """
    Регистрирует все роутеры в диспетчере.

    Args:
        dp: Диспетчер
    """
    dp.include_router(moderation_router)


__all__ = [
    "register_routers",
    "moderation_router",
]
