# flycargo/core/flights/repository.py
"""
Репозиторий рейсов одного региона.
"""

from __future__ import annotations

from datetime import date as date_type
from typing import Optional

from asyncpg import Connection, Record

from flycargo.common.constants import FlightStatus, Region
from flycargo.core.flights.models import Flight, FlightCreateDTO

_COLUMNS = """
    id, user_id, departure, arrival, date, description, document_ref,
    iata_number, status, region, created_at
"""


class FlightRepository:
    """Репозиторий рейсов."""

    def __init__(self, conn: Connection, region: Region) -> None:
        self._conn = conn
        self._region = region

    @staticmethod
    def _row_to_flight(row: Record) -> Flight:
        return Flight.model_validate(dict(row))

    async def get(self, flight_id: int, *, for_update: bool = False) -> Optional[Flight]:
        """
        Получает рейс по ID.

        Args:
            flight_id: ID рейса
            for_update: Заблокировать строку до конца транзакции

        Returns:
            Рейс или None
        """
        lock = " FOR UPDATE" if for_update else ""
        row = await self._conn.fetchrow(f"SELECT {_COLUMNS} FROM flights WHERE id = $1{lock}", flight_id)
        return self._row_to_flight(row) if row else None

    async def create(self, user_id: int, dto: FlightCreateDTO, iata_number: Optional[str]) -> Flight:
        """Создаёт рейс в статусе PENDING."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO flights (user_id, departure, arrival, date, description,
                                 document_ref, iata_number, status, region)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            RETURNING {_COLUMNS}
            """,
            user_id,
            dto.departure,
            dto.arrival,
            dto.date,
            dto.description,
            dto.document_ref,
            iata_number,
            FlightStatus.PENDING.value,
            self._region.value,
        )
        return self._row_to_flight(row)

    async def set_status(self, flight_id: int, status: FlightStatus) -> None:
        """Устанавливает статус рейса."""
        await self._conn.execute("UPDATE flights SET status = $2 WHERE id = $1", flight_id, status.value)

    async def set_document(self, flight_id: int, document_ref: str) -> None:
        """Сохраняет ссылку на документ маршрута."""
        await self._conn.execute("UPDATE flights SET document_ref = $2 WHERE id = $1", flight_id, document_ref)

    async def delete(self, flight_id: int) -> bool:
        """Удаляет рейс. Возвращает True, если строка была."""
        result = await self._conn.execute("DELETE FROM flights WHERE id = $1", flight_id)
        return result.endswith(" 1")

    async def list_by_status(self, status: FlightStatus) -> list[Flight]:
        """Рейсы в указанном статусе."""
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM flights WHERE status = $1 ORDER BY created_at DESC",
            status.value,
        )
        return [self._row_to_flight(row) for row in rows]

    async def list_by_owner(self, user_id: int) -> list[Flight]:
        """Рейсы перевозчика."""
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM flights WHERE user_id = $1 ORDER BY date DESC",
            user_id,
        )
        return [self._row_to_flight(row) for row in rows]

    async def search(
        self,
        departure: str,
        arrival: str,
        on_date: Optional[date_type],
        status: FlightStatus,
    ) -> list[Flight]:
        """Поиск рейсов по маршруту и (необязательно) дате вылета."""
        rows = await self._conn.fetch(
            f"""
            SELECT {_COLUMNS} FROM flights
            WHERE departure = $1 AND arrival = $2 AND status = $3
              AND ($4::date IS NULL OR date::date = $4::date)
            ORDER BY date ASC
            """,
            departure,
            arrival,
            status.value,
            on_date,
        )
        return [self._row_to_flight(row) for row in rows]
