# flycargo/worker/flight_check.py
"""
Воркер проверки вылета рейсов.

Запрос приходит при создании рейса и исполняется не раньше not_before.
Если рейс ещё не в воздухе (или сервис живых данных недоступен), запрос
публикуется заново с attempt + 1 и отсрочкой, пока не кончатся попытки.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List

from flycargo.common.constants import Region, TypeMsg
from flycargo.common.exceptions import ExternalServiceDegradedError, MarketError
from flycargo.common.logger import log_error, log_info, log_warning
from flycargo.core.flights.service import FlightService
from flycargo.infra.event_bus import DomainEvent, EventBus, EventTypes
from flycargo.worker.base import BaseWorker


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FlightCheckRequest:
    """Запрос проверки вылета."""

    flight_id: int
    region: Region
    attempt: int
    not_before: datetime

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "FlightCheckRequest":
        """
        Raises:
            ValueError: В payload нет обязательных полей
        """
        not_before = datetime.fromisoformat(str(payload["not_before"]))
        if not_before.tzinfo is None:
            not_before = not_before.replace(tzinfo=timezone.utc)
        return cls(
            flight_id=int(payload["flight_id"]),
            region=Region(payload["region"]),
            attempt=int(payload.get("attempt", 1)),
            not_before=not_before,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "flight_id": self.flight_id,
            "region": self.region.value,
            "attempt": self.attempt,
            "not_before": self.not_before.isoformat(),
        }


class FlightCheckWorker(BaseWorker):
    """Ждёт времени проверки и переводит вылетевший рейс в IN_PROGRESS."""

    def __init__(
        self,
        event_bus: EventBus,
        flights: FlightService,
        max_attempts: int = 3,
        backoff_seconds: int = 600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(event_bus)
        self._flights = flights
        self._max_attempts = max_attempts
        self._backoff = timedelta(seconds=backoff_seconds)
        self._clock = clock

    @property
    def name(self) -> str:
        return "FlightCheckWorker"

    @property
    def subscriptions(self) -> List[str]:
        return [EventTypes.FLIGHT_CHECK_REQUESTED]

    async def handle_event(self, event: DomainEvent) -> None:
        """Откладывает проверку до not_before, не блокируя очередь."""
        try:
            request = FlightCheckRequest.from_payload(event.payload)
        except (KeyError, ValueError, TypeError) as e:
            await log_error(f"Некорректный запрос проверки рейса: {e}", extra={"payload": event.payload})
            return

        # TODO: отложенные в памяти проверки теряются при рестарте; перенести на отложенную очередь RabbitMQ
        self.spawn(self.process(request))

    async def process(self, request: FlightCheckRequest) -> bool:
        """
        Выполняет одну попытку проверки.

        Returns:
            True если рейс переведён в IN_PROGRESS
        """
        delay = (request.not_before - self._clock()).total_seconds()
        if delay > 0:
            await asyncio.sleep(delay)

        try:
            changed = await self._flights.check_flight_status(request.flight_id, request.region)
        except ExternalServiceDegradedError as e:
            await self._retry(request, e)
            return False
        except MarketError as e:
            await log_error(f"Проверка рейса {request.flight_id} прервана: {e.message}", extra=e.to_dict())
            return False
        except Exception as e:
            await log_error(f"Ошибка проверки рейса {request.flight_id}: {e}", exc_info=True)
            return False

        if changed:
            await log_info(
                f"Рейс {request.flight_id} вылетел (попытка {request.attempt})",
                type_msg=TypeMsg.INFO,
            )
        return changed

    async def _retry(self, request: FlightCheckRequest, error: ExternalServiceDegradedError) -> None:
        if request.attempt >= self._max_attempts:
            await log_error(
                f"Рейс {request.flight_id}: попытки проверки исчерпаны ({request.attempt})",
                extra={"flight_id": request.flight_id, "region": request.region.value, "reason": error.code},
            )
            return

        retry = FlightCheckRequest(
            flight_id=request.flight_id,
            region=request.region,
            attempt=request.attempt + 1,
            not_before=self._clock() + self._backoff,
        )
        await log_warning(
            f"Рейс {request.flight_id}: {error.message}. Повтор {retry.attempt}/{self._max_attempts} "
            f"после {retry.not_before.isoformat()}"
        )
        await self.event_bus.publish(DomainEvent(
            event_type=EventTypes.FLIGHT_CHECK_REQUESTED,
            payload=retry.to_payload(),
        ))
