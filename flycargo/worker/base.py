# flycargo/worker/base.py
"""
Базовый класс для воркеров.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Coroutine, List

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import log_error, log_info
from flycargo.infra.event_bus import DomainEvent, EventBus


class BaseWorker(ABC):
    """
    Базовый класс для всех воркеров.
    Подписывается на события и обрабатывает их.
    """

    def __init__(self, event_bus: EventBus) -> None:
        """
        Args:
            event_bus: Шина событий
        """
        self.event_bus = event_bus
        self._running = False
        self._tasks: List[asyncio.Task] = []

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя воркера."""

    @property
    @abstractmethod
    def subscriptions(self) -> List[str]:
        """Список типов событий для подписки."""

    @abstractmethod
    async def handle_event(self, event: DomainEvent) -> None:
        """Обрабатывает событие."""

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Запускает воркер."""
        if self._running:
            return

        self._running = True
        await log_info(f"Воркер {self.name} запускается...", type_msg=TypeMsg.INFO)

        for event_type in self.subscriptions:
            await self.event_bus.subscribe(event_type=event_type, handler=self._on_event)
            await log_info(f"Воркер {self.name} подписан на {event_type}", type_msg=TypeMsg.DEBUG)

        await log_info(f"Воркер {self.name} запущен", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Останавливает воркер и отменяет отложенные задачи."""
        if not self._running:
            return

        self._running = False

        for task in self._tasks:
            task.cancel()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        self._tasks.clear()
        await log_info(f"Воркер {self.name} остановлен", type_msg=TypeMsg.INFO)

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        """Запускает фоновую задачу, которая будет отменена при остановке."""
        task = asyncio.create_task(coro)
        self._tasks.append(task)
        task.add_done_callback(self._forget_task)
        return task

    def _forget_task(self, task: asyncio.Task) -> None:
        if task in self._tasks:
            self._tasks.remove(task)

    async def _on_event(self, event: DomainEvent) -> None:
        """Обработчик события."""
        if not self._running:
            return

        try:
            await log_info(f"Воркер {self.name} получил событие {event.event_type}", type_msg=TypeMsg.DEBUG)
            await self.handle_event(event)
        except Exception as e:
            await log_error(
                f"Ошибка в воркере {self.name}: {e}",
                extra={"event_type": event.event_type, "payload": event.payload},
                exc_info=True,
            )
