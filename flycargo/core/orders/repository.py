# flycargo/core/orders/repository.py
"""
Репозиторий заказов одного региона.
"""

from __future__ import annotations

from typing import Optional

from asyncpg import Connection, Record

from flycargo.common.constants import DeliveryStage, DisputeStatus, OrderStatus, Region
from flycargo.core.orders.models import Order, OrderCreateDTO

# Поля, которые владелец может править после создания
EDITABLE_FIELDS = ("name", "description", "departure", "arrival", "price", "reward", "weight")

_COLUMNS = """
    id, user_id, flight_id, carrier_id, name, description, departure, arrival,
    price, reward, weight, status, is_done, is_moderated, dispute_status,
    dispute_result, delivery_stage, media_refs, region, created_at
"""


class OrderRepository:
    """Репозиторий заказов."""

    def __init__(self, conn: Connection, region: Region) -> None:
        """
        Args:
            conn: Соединение в контексте транзакции
            region: Регион базы
        """
        self._conn = conn
        self._region = region

    @staticmethod
    def _row_to_order(row: Record) -> Order:
        data = dict(row)
        data["media_refs"] = list(data.get("media_refs") or [])
        return Order.model_validate(data)

    async def _fetch(self, where: str, *args) -> list[Order]:
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM orders WHERE {where} ORDER BY created_at DESC",
            *args,
        )
        return [self._row_to_order(row) for row in rows]

    async def get(self, order_id: int, *, for_update: bool = False) -> Optional[Order]:
        """
        Получает заказ по ID.

        Args:
            order_id: ID заказа
            for_update: Заблокировать строку до конца транзакции
        """
        lock = " FOR UPDATE" if for_update else ""
        row = await self._conn.fetchrow(f"SELECT {_COLUMNS} FROM orders WHERE id = $1{lock}", order_id)
        return self._row_to_order(row) if row else None

    async def create(self, user_id: int, dto: OrderCreateDTO, status: OrderStatus) -> Order:
        """Создаёт заказ с заданным начальным статусом."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO orders (user_id, flight_id, name, description, departure, arrival,
                                price, reward, weight, status, region)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
            RETURNING {_COLUMNS}
            """,
            user_id,
            dto.flight_id,
            dto.name,
            dto.description,
            dto.departure,
            dto.arrival,
            dto.price,
            dto.reward,
            dto.weight,
            status.value,
            self._region.value,
        )
        return self._row_to_order(row)

    async def set_status(self, order_id: int, status: OrderStatus) -> None:
        """Устанавливает статус заказа."""
        await self._conn.execute("UPDATE orders SET status = $2 WHERE id = $1", order_id, status.value)

    async def set_status_if(self, order_id: int, expected: OrderStatus, status: OrderStatus) -> bool:
        """Меняет статус, только если текущий равен expected."""
        result = await self._conn.execute(
            "UPDATE orders SET status = $3 WHERE id = $1 AND status = $2",
            order_id,
            expected.value,
            status.value,
        )
        return result.endswith(" 1")

    async def assign(
        self,
        order_id: int,
        status: OrderStatus,
        *,
        flight_id: Optional[int] = None,
        carrier_id: Optional[int] = None,
    ) -> None:
        """Привязывает рейс и/или перевозчика и меняет статус (None оставляет поле как есть)."""
        await self._conn.execute(
            """
            UPDATE orders
            SET status = $2,
                flight_id = COALESCE($3, flight_id),
                carrier_id = COALESCE($4, carrier_id)
            WHERE id = $1
            """,
            order_id,
            status.value,
            flight_id,
            carrier_id,
        )

    async def mark_done(self, order_id: int) -> None:
        """Отмечает заказ доставленным."""
        await self._conn.execute("UPDATE orders SET is_done = TRUE WHERE id = $1", order_id)

    async def count_undone_on_flight(self, flight_id: int) -> int:
        """Количество недоставленных заказов рейса."""
        return await self._conn.fetchval(
            "SELECT COUNT(*) FROM orders WHERE flight_id = $1 AND is_done = FALSE",
            flight_id,
        )

    async def set_moderated(self, order_id: int) -> bool:
        """Отмечает заказ прошедшим модерацию."""
        result = await self._conn.execute("UPDATE orders SET is_moderated = TRUE WHERE id = $1", order_id)
        return result.endswith(" 1")

    async def set_dispute(self, order_id: int, status: DisputeStatus, result_text: Optional[str] = None) -> None:
        """Устанавливает статус спора и (необязательно) его итог."""
        await self._conn.execute(
            "UPDATE orders SET dispute_status = $2, dispute_result = COALESCE($3, dispute_result) WHERE id = $1",
            order_id,
            status.value,
            result_text,
        )

    async def set_delivery_stage(self, order_id: int, stage: DeliveryStage) -> None:
        """Записывает подтверждённый этап передачи."""
        await self._conn.execute("UPDATE orders SET delivery_stage = $2 WHERE id = $1", order_id, stage.value)

    async def add_media(self, order_id: int, refs: list[str]) -> None:
        """Добавляет ссылки на медиа."""
        await self._conn.execute(
            "UPDATE orders SET media_refs = media_refs || $2::text[] WHERE id = $1",
            order_id,
            refs,
        )

    async def delete(self, order_id: int) -> bool:
        """Удаляет заказ."""
        result = await self._conn.execute("DELETE FROM orders WHERE id = $1", order_id)
        return result.endswith(" 1")

    async def list_pending_moderation(self) -> list[Order]:
        """Заказы, ожидающие модерации."""
        return await self._fetch("is_moderated = FALSE")

    async def list_by_flight(self, flight_id: int) -> list[Order]:
        """Все заказы рейса."""
        return await self._fetch("flight_id = $1", flight_id)

    async def list_by_customer(self, user_id: int, status: Optional[OrderStatus] = None) -> list[Order]:
        """Заказы заказчика (необязательно в статусе)."""
        if status is None:
            return await self._fetch("user_id = $1", user_id)
        return await self._fetch("user_id = $1 AND status = $2", user_id, status.value)

    async def list_by_carrier(self, carrier_id: int) -> list[Order]:
        """Заказы, закреплённые за перевозчиком."""
        return await self._fetch("carrier_id = $1", carrier_id)

    async def list_on_carrier_flights(self, carrier_id: int, status: OrderStatus) -> list[Order]:
        """Заказы в статусе на рейсах перевозчика."""
        return await self._fetch(
            "status = $2 AND flight_id IN (SELECT id FROM flights WHERE user_id = $1)",
            carrier_id,
            status.value,
        )

    async def list_done_for(self, user_id: int) -> list[Order]:
        """Доставленные заказы пользователя (как заказчика или перевозчика)."""
        return await self._fetch("is_done = TRUE AND (user_id = $1 OR carrier_id = $1)", user_id)

    async def update_details(self, order_id: int, changes: dict[str, object]) -> Optional[Order]:
        """Обновляет описательные поля заказа и снимает отметку модерации."""
        fields = [name for name in EDITABLE_FIELDS if name in changes]
        if not fields:
            return await self.get(order_id)
        assignments = ", ".join(f"{name} = ${index}" for index, name in enumerate(fields, start=2))
        row = await self._conn.fetchrow(
            f"UPDATE orders SET {assignments}, is_moderated = FALSE WHERE id = $1 RETURNING {_COLUMNS}",
            order_id,
            *(changes[name] for name in fields),
        )
        return self._row_to_order(row) if row else None

    # =========================================================================
    # ИЗБРАННОЕ
    # =========================================================================

    async def add_favorite(self, user_id: int, order_id: int) -> bool:
        """
        Добавляет заказ в избранное пользователя.

        Returns:
            False если заказ уже в избранном
        """
        result = await self._conn.execute(
            """
            INSERT INTO favorite_orders (user_id, order_id)
            VALUES ($1, $2)
            ON CONFLICT (user_id, order_id) DO NOTHING
            """,
            user_id,
            order_id,
        )
        return result.endswith(" 1")

    async def list_favorites(self, user_id: int) -> list[Order]:
        """Избранные заказы пользователя."""
        return await self._fetch("id IN (SELECT order_id FROM favorite_orders WHERE user_id = $1)", user_id)
