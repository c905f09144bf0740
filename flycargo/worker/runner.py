# flycargo/worker/runner.py
"""
Запускалка всех воркеров.
"""

from __future__ import annotations

import asyncio
from typing import List

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import log_error, log_info
from flycargo.container import Container
from flycargo.worker.base import BaseWorker
from flycargo.worker.flight_check import FlightCheckWorker


def build_workers(container: Container) -> List[BaseWorker]:
    """Создаёт воркеры из контейнера зависимостей."""
    check = container.settings.flight_check
    return [
        FlightCheckWorker(
            container.event_bus,
            container.flights,
            max_attempts=check.FLIGHT_CHECK_MAX_ATTEMPTS,
            backoff_seconds=check.FLIGHT_CHECK_BACKOFF_SECONDS,
        ),
    ]


async def run_workers(container: Container, init_infra: bool = True) -> None:
    """
    Запускает воркеры и ждёт отмены.

    Args:
        container: Контейнер зависимостей
        init_infra: Если True, подключает и закрывает инфраструктуру сам.
                    При запуске вместе с ботом инфраструктура уже поднята.
    """
    await log_info("Запуск воркеров...", type_msg=TypeMsg.INFO)

    if init_infra:
        await container.startup()

    workers = build_workers(container)

    try:
        for worker in workers:
            await worker.start()

        await log_info(f"Запущено {len(workers)} воркеров", type_msg=TypeMsg.INFO)

        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка воркеров: {e}", exc_info=True)
    finally:
        for worker in workers:
            await worker.stop()

        if init_infra:
            await container.shutdown()

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)
