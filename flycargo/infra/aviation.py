# flycargo/infra/aviation.py
"""
Клиент Aviation Edge API.
Расписание рейсов (flightsFuture) для проверки маршрута при создании рейса
и живые данные (flights) для фоновой проверки вылета.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any

import httpx
import redis.exceptions

from flycargo.common.constants import TypeMsg
from flycargo.common.exceptions import ExternalServiceDegradedError
from flycargo.common.logger import log_degraded, log_info, log_warning
from flycargo.infra.redis_client import RedisClient

SERVICE_NAME = "aviation_edge"


class AviationEdgeClient:
    """
    HTTP клиент Aviation Edge с кэшем расписания в Redis.

    Сбой API или неожиданный формат ответа поднимает
    ExternalServiceDegradedError; сбой кэша только логируется.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str,
        redis: RedisClient | None = None,
        cache_ttl: int = 3600,
        min_days_ahead: int = 7,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            api_url: Базовый URL API
            api_key: Ключ API
            redis: Клиент Redis для кэша (None отключает кэш)
            cache_ttl: TTL кэша в секундах
            min_days_ahead: Ближайшая дата, доступная в расписании (дни от сегодня)
            timeout: Таймаут HTTP запросов
            client: Готовый httpx клиент (для тестов)
        """
        self._api_url = api_url.rstrip("/")
        self._api_key = api_key
        self._redis = redis
        self._cache_ttl = cache_ttl
        self._min_days_ahead = min_days_ahead
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self) -> None:
        """Закрывает HTTP клиент."""
        await self._client.aclose()

    async def _get_list(self, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        try:
            response = await self._client.get(
                f"{self._api_url}/{path}",
                params={"key": self._api_key, **params},
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            await log_degraded(SERVICE_NAME, f"Ошибка запроса к Aviation Edge ({path}): {e}")
            raise ExternalServiceDegradedError(SERVICE_NAME, "Ошибка получения данных о рейсах") from e

        # API возвращает объект с error вместо списка, когда данных нет
        return data if isinstance(data, list) else []

    async def _get_cached(self, cache_key: str, path: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        if self._redis is not None:
            try:
                cached = await self._redis.get_json(cache_key)
                if isinstance(cached, list):
                    return cached
            except redis.exceptions.RedisError as e:
                await log_warning(f"Кэш Aviation Edge недоступен: {e}")

        data = await self._get_list(path, params)

        if self._redis is not None:
            try:
                await self._redis.set_json(cache_key, data, ttl=self._cache_ttl)
            except redis.exceptions.RedisError as e:
                await log_warning(f"Не удалось записать кэш Aviation Edge: {e}")

        return data

    def _schedule_date(self, requested: date, today: date | None = None) -> date:
        """
        Расписание доступно только с горизонтом min_days_ahead.
        Для более ранней даты берётся тот же день недели через неделю.
        """
        today = today or date.today()
        if requested < today + timedelta(days=self._min_days_ahead):
            return requested + timedelta(days=7)
        return requested

    async def scheduled_route(
        self,
        departure: str,
        arrival: str,
        flight_date: date,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        """
        Находит рейсы по маршруту на дату.

        Рейс попадает в результат, если номер рейса есть и в вылетах
        из departure, и в прилётах в arrival. Дубликаты по номеру убираются.

        Args:
            departure: IATA код аэропорта вылета
            arrival: IATA код аэропорта прилёта
            flight_date: Дата рейса
            today: Текущая дата (для тестов)

        Returns:
            Список рейсов расписания
        """
        query_date = self._schedule_date(flight_date, today).isoformat()
        if query_date != flight_date.isoformat():
            await log_info(
                f"Дата {flight_date} вне горизонта расписания, запрашиваем {query_date}",
                type_msg=TypeMsg.DEBUG,
            )

        cache_key = f"route:{departure}-{arrival}:{flight_date.isoformat()}"
        departures = await self._get_cached(
            f"{cache_key}:departures",
            "flightsFuture",
            {"type": "departure", "iataCode": departure, "date": query_date},
        )
        arrivals = await self._get_cached(
            f"{cache_key}:arrivals",
            "flightsFuture",
            {"type": "arrival", "iataCode": arrival, "date": query_date},
        )

        arrival_numbers = {
            (item.get("flight") or {}).get("iataNumber") for item in arrivals
        }
        result: list[dict[str, Any]] = []
        seen: set[str | None] = set()
        for item in departures:
            number = (item.get("flight") or {}).get("iataNumber")
            if number in arrival_numbers and number not in seen:
                seen.add(number)
                result.append({**item, "date": flight_date.isoformat()})

        if not result:
            await log_info(f"Нет рейсов {departure} → {arrival} на {flight_date}", type_msg=TypeMsg.WARNING)

        return result

    async def live_flights(self) -> list[dict[str, Any]]:
        """Возвращает рейсы, находящиеся сейчас в воздухе (без кэша)."""
        return await self._get_list("flights", {})
