# flycargo/core/flights/service.py
"""
Сервис рейсов: создание, документы, поиск и проверка вылета.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from flycargo.common.constants import EntityKind, FlightStatus, Region, TypeMsg
from flycargo.common.exceptions import (
    FlightNotAirborneError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    RegionUnavailableError,
)
from flycargo.common.logger import log_degraded, log_error, log_info, log_warning
from flycargo.core.flights.models import Flight, FlightCreateDTO
from flycargo.core.flights.state_machine import FlightEvent, next_status
from flycargo.core.identity.service import Actor
from flycargo.core.moderation.models import ModerationSubmitter
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.infra.aviation import AviationEdgeClient
from flycargo.infra.event_bus import DomainEvent, EventBus, EventTypes

LIVE_STATUS_EN_ROUTE = "en-route"


def _utc_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def find_live_match(flight: Flight, live_flights: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Ищет рейс среди летящих.

    Совпадение: статус en-route, тот же маршрут и либо тот же номер рейса,
    либо (если номер не сохранён) та же дата вылета по расписанию.
    """
    flight_day = _utc_date(flight.date)

    for item in live_flights:
        if item.get("status") != LIVE_STATUS_EN_ROUTE:
            continue
        departure = item.get("departure") or {}
        arrival = item.get("arrival") or {}
        if departure.get("iataCode") != flight.departure or arrival.get("iataCode") != flight.arrival:
            continue

        if flight.iata_number:
            if (item.get("flight") or {}).get("iataNumber") == flight.iata_number:
                return item
            continue

        scheduled = departure.get("scheduledTime")
        if scheduled and str(scheduled)[:10] == flight_day:
            return item

    return None


class FlightService:
    """Сервис рейсов."""

    def __init__(
        self,
        registry: RegionStoreRegistry,
        aviation: AviationEdgeClient,
        moderation: ModerationSubmitter,
        event_bus: EventBus,
        check_delay_minutes: int = 20,
    ) -> None:
        """
        Args:
            registry: Регистр региональных хранилищ
            aviation: Клиент Aviation Edge
            moderation: Канал модерации
            event_bus: Шина событий (запросы проверки вылета)
            check_delay_minutes: Через сколько минут после вылета проверять рейс
        """
        self._registry = registry
        self._aviation = aviation
        self._moderation = moderation
        self._event_bus = event_bus
        self._check_delay = timedelta(minutes=check_delay_minutes)

    # =========================================================================
    # СОЗДАНИЕ
    # =========================================================================

    async def create_flight(self, actor: Actor, dto: FlightCreateDTO) -> Flight:
        """
        Создаёт рейс после проверки маршрута по расписанию.

        Новый рейс имеет статус PENDING, уходит на модерацию, а на время
        вылета плюс задержка ставится проверка статуса.

        Raises:
            InvalidArgumentError: Рейса нет в расписании
            ExternalServiceDegradedError: Расписание недоступно
        """
        matches = await self.flights_by_route_and_date(dto.departure, dto.arrival, dto.date.date())
        if not matches:
            raise InvalidArgumentError(
                "Рейс с такими параметрами не найден в расписании",
                details={"departure": dto.departure, "arrival": dto.arrival, "date": dto.date.isoformat()},
            )
        iata_number = (matches[0].get("flight") or {}).get("iataNumber")

        async with self._registry.get(actor.region).session() as s:
            flight = await s.flights.create(actor.id, dto, iata_number)

        await log_info(
            f"Рейс {flight.id} создан: {flight.departure} → {flight.arrival} ({actor.region.value})",
            type_msg=TypeMsg.INFO,
        )

        await self._moderation.submit(EntityKind.FLIGHT, flight.id, actor.region)
        await self.schedule_check(flight)
        return flight

    async def schedule_check(self, flight: Flight, attempt: int = 1, not_before: Optional[datetime] = None) -> bool:
        """
        Публикует запрос проверки вылета.

        Вызывается после фиксации рейса, поэтому не поднимает исключений:
        сбой брокера логируется, возвращается False.
        """
        not_before = not_before or flight.date + self._check_delay
        event = DomainEvent(
            event_type=EventTypes.FLIGHT_CHECK_REQUESTED,
            payload={
                "flight_id": flight.id,
                "region": flight.region.value,
                "attempt": attempt,
                "not_before": not_before.isoformat(),
            },
        )
        try:
            published = await self._event_bus.publish(event)
        except Exception as e:
            await log_error(f"Ошибка публикации проверки рейса {flight.id}: {e}", exc_info=True)
            published = False

        if not published:
            await log_degraded(
                "rabbitmq",
                f"Проверка вылета рейса {flight.id} не поставлена",
                extra={"flight_id": flight.id, "region": flight.region.value, "attempt": attempt},
            )
        return published

    async def attach_document(self, actor: Actor, flight_id: int, document_ref: str) -> Flight:
        """
        Прикрепляет документ маршрута и отправляет рейс на модерацию.

        Raises:
            NotFoundError: Рейса нет в регионе пользователя
            ForbiddenError: Пользователь не владелец рейса
        """
        if not document_ref:
            raise InvalidArgumentError("Ссылка на документ пуста")

        async with self._registry.get(actor.region).session() as s:
            flight = await s.flights.get(flight_id)
            if flight is None:
                raise NotFoundError("flight", flight_id, region=actor.region.value)
            if flight.user_id != actor.id:
                raise ForbiddenError("Вы не являетесь владельцем рейса")
            await s.flights.set_document(flight_id, document_ref)

        await self._moderation.submit(EntityKind.FLIGHT, flight_id, actor.region)
        return flight.model_copy(update={"document_ref": document_ref})

    # =========================================================================
    # СПИСКИ
    # =========================================================================

    async def search_confirmed(
        self,
        actor: Actor,
        departure: str,
        arrival: str,
        on_date: Optional[date] = None,
    ) -> list[Flight]:
        """Подтверждённые рейсы по маршруту в регионе пользователя."""
        async with self._registry.get(actor.region).session() as s:
            return await s.flights.search(
                departure.strip().upper(),
                arrival.strip().upper(),
                on_date,
                FlightStatus.CONFIRMED,
            )

    async def my_flights(self, actor: Actor) -> list[Flight]:
        """Рейсы пользователя."""
        async with self._registry.get(actor.region).session() as s:
            return await s.flights.list_by_owner(actor.id)

    async def flights_by_status(self, status: FlightStatus) -> list[Flight]:
        """Рейсы с указанным статусом во всех регионах. Недоступный регион пропускается."""
        result: list[Flight] = []
        for store in self._registry.in_probe_order():
            try:
                async with store.session() as s:
                    result.extend(await s.flights.list_by_status(status))
            except RegionUnavailableError:
                await log_degraded(
                    "postgres",
                    f"Регион {store.region.value} пропущен в списке рейсов {status.value}",
                    extra={"region": store.region.value},
                )
        return result

    # =========================================================================
    # ВНЕШНИЕ ДАННЫЕ О РЕЙСАХ
    # =========================================================================

    async def live_flights(self) -> list[dict[str, Any]]:
        """
        Рейсы, которые сейчас в воздухе, по данным Aviation Edge.

        Raises:
            ExternalServiceDegradedError: Сервис живых данных недоступен
        """
        flights = await self._aviation.live_flights()
        await log_info(f"Получено {len(flights)} рейсов в воздухе", type_msg=TypeMsg.DEBUG)
        return flights

    async def flights_by_route_and_date(self, departure: str, arrival: str, on_date: date) -> list[dict[str, Any]]:
        """
        Рейсы расписания по маршруту на дату.

        Дата ближе горизонта расписания подменяется тем же днём недели
        через неделю (см. AviationEdgeClient.scheduled_route).

        Raises:
            ExternalServiceDegradedError: Расписание недоступно
        """
        return await self._aviation.scheduled_route(departure.strip().upper(), arrival.strip().upper(), on_date)

    # =========================================================================
    # ПРОВЕРКА ВЫЛЕТА
    # =========================================================================

    async def check_flight_status(self, flight_id: int, region: Region) -> bool:
        """
        Проверяет, вылетел ли рейс, и переводит его в IN_PROGRESS.

        Returns:
            True если статус изменён, False если рейс пропущен
            (удалён или уже не CONFIRMED)

        Raises:
            FlightNotAirborneError: Рейс не найден среди летящих, нужен повтор
            ExternalServiceDegradedError: Сервис живых данных недоступен
        """
        store = self._registry.get(region)

        async with store.session() as s:
            flight = await s.flights.get(flight_id)
        if flight is None:
            await log_warning(f"Рейс {flight_id} не найден в регионе {region.value}, проверка пропущена")
            return False
        if flight.status != FlightStatus.CONFIRMED:
            await log_info(
                f"Рейс {flight_id} в статусе {flight.status.value}, проверка вылета не нужна",
                type_msg=TypeMsg.DEBUG,
            )
            return False

        live = await self._aviation.live_flights()
        if find_live_match(flight, live) is None:
            raise FlightNotAirborneError(flight_id)

        async with store.session() as s:
            current = await s.flights.get(flight_id, for_update=True)
            if current is None or current.status != FlightStatus.CONFIRMED:
                return False
            await s.flights.set_status(flight_id, next_status(FlightEvent.DEPARTURE_DETECTED, current.status))

        await log_info(f"Рейс {flight_id} переведён в IN_PROGRESS", type_msg=TypeMsg.INFO)
        return True
