#!/usr/bin/env python3
# main.py
"""
Главная точка входа FlyCargo.
Запускает бот модераторов, воркеры или всё вместе.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import log_error, log_info, setup_logging
from flycargo.config import settings
from flycargo.container import Container, build_container

VALID_MODES = ("bot", "worker", "all")

_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики SIGINT и SIGTERM для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def run_bot(container: Container) -> None:
    """Запускает бота чата модераторов в режиме polling."""
    from flycargo.bot.app import create_dispatcher

    if container.bot is None:
        await log_error("BOT_TOKEN не задан, бот не запущен")
        return

    dp = create_dispatcher(
        container.settings.redis.url,
        container.settings.telegram.MODERATOR_CHAT_ID,
        gateway=container.gateway,
        disputes=container.disputes,
    )

    await log_info("Бот модераторов запущен в режиме polling", type_msg=TypeMsg.INFO)
    try:
        await dp.start_polling(container.bot, handle_signals=False)
    except asyncio.CancelledError:
        await log_info("Bot (polling): получен сигнал остановки", type_msg=TypeMsg.DEBUG)
        raise
    finally:
        await dp.storage.close()


async def run_worker(container: Container) -> None:
    """Запускает воркеры. Инфраструктура уже поднята в main()."""
    from flycargo.worker.runner import run_workers

    await run_workers(container, init_infra=False)


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: bot, worker или all. Если None, берётся COMPONENT_MODE.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    mode = mode or settings.system.COMPONENT_MODE
    if mode not in VALID_MODES:
        await log_error(f"Неизвестный режим: {mode}")
        return

    await log_info(
        f"FlyCargo v{settings.system.VERSION} — запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    container = build_container(settings)

    try:
        await container.startup()

        if mode == "bot":
            _running_tasks = [asyncio.create_task(run_bot(container))]
        elif mode == "worker":
            _running_tasks = [asyncio.create_task(run_worker(container))]
        else:
            _running_tasks = [
                asyncio.create_task(run_bot(container)),
                asyncio.create_task(run_worker(container)),
            ]

        await asyncio.gather(*_running_tasks, return_exceptions=True)

    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        if _running_tasks:
            await asyncio.gather(*_running_tasks, return_exceptions=True)
            _running_tasks.clear()

        try:
            await container.shutdown()
        except Exception as e:
            await log_error(f"Ошибка при закрытии подключений: {e}")
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
FlyCargo — доставка посылок попутными рейсами

Использование:
    python main.py [mode]

    bot       — бот чата модераторов
    worker    — воркер проверки вылета рейсов
    all       — бот и воркер в одном процессе

Без аргумента режим берётся из COMPONENT_MODE.
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in VALID_MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
