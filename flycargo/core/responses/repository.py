# flycargo/core/responses/repository.py
"""
Репозиторий откликов одного региона.
"""

from __future__ import annotations

from typing import Optional

from asyncpg import Connection, Record

from flycargo.common.constants import Region
from flycargo.core.responses.models import Response

_COLUMNS = "id, order_id, flight_id, carrier_id, message, price_offer, is_accepted, created_at"


class ResponseRepository:
    """Репозиторий откликов."""

    def __init__(self, conn: Connection, region: Region) -> None:
        self._conn = conn
        self._region = region

    @staticmethod
    def _row_to_response(row: Record) -> Response:
        return Response.model_validate(dict(row))

    async def get(self, response_id: int) -> Optional[Response]:
        """Получает отклик по ID."""
        row = await self._conn.fetchrow(f"SELECT {_COLUMNS} FROM responses WHERE id = $1", response_id)
        return self._row_to_response(row) if row else None

    async def create(
        self,
        order_id: int,
        flight_id: int,
        carrier_id: int,
        message: str,
        price_offer: Optional[float],
    ) -> Response:
        """Создаёт отклик."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO responses (order_id, flight_id, carrier_id, message, price_offer)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING {_COLUMNS}
            """,
            order_id,
            flight_id,
            carrier_id,
            message,
            price_offer,
        )
        return self._row_to_response(row)

    async def mark_accepted(self, response_id: int) -> bool:
        """
        Помечает отклик принятым.

        Returns:
            False если отклик уже был принят (или удалён)
        """
        row = await self._conn.fetchrow(
            "UPDATE responses SET is_accepted = TRUE WHERE id = $1 AND is_accepted = FALSE RETURNING id",
            response_id,
        )
        return row is not None

    async def delete(self, response_id: int) -> bool:
        """Удаляет отклик."""
        result = await self._conn.execute("DELETE FROM responses WHERE id = $1", response_id)
        return result.endswith(" 1")

    async def count_for_order(self, order_id: int) -> int:
        """Количество откликов на заказ."""
        return await self._conn.fetchval("SELECT COUNT(*) FROM responses WHERE order_id = $1", order_id)

    async def list_for_order(self, order_id: int) -> list[Response]:
        """Отклики на заказ (старые первыми)."""
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM responses WHERE order_id = $1 ORDER BY created_at ASC",
            order_id,
        )
        return [self._row_to_response(row) for row in rows]
