# flycargo/core/reviews/repository.py
"""
Репозиторий отзывов одного региона.
"""

from __future__ import annotations

from typing import Optional

from asyncpg import Connection, Record

from flycargo.common.constants import AccountKind, Region
from flycargo.core.reviews.models import Review, ReviewCreateDTO

_COLUMNS = """
    id, from_user_id, to_user_id, flight_id, order_id, rating, comment,
    reviewer_kind, is_moderated, is_disputed, created_at
"""


class ReviewRepository:
    """Репозиторий отзывов."""

    def __init__(self, conn: Connection, region: Region) -> None:
        self._conn = conn
        self._region = region

    @staticmethod
    def _row_to_review(row: Record) -> Review:
        return Review.model_validate(dict(row))

    async def get(self, review_id: int) -> Optional[Review]:
        """Получает отзыв по ID."""
        row = await self._conn.fetchrow(f"SELECT {_COLUMNS} FROM reviews WHERE id = $1", review_id)
        return self._row_to_review(row) if row else None

    async def exists_for(self, order_id: int, from_user_id: int) -> bool:
        """Оставлял ли пользователь отзыв по заказу."""
        return await self._conn.fetchval(
            "SELECT EXISTS(SELECT 1 FROM reviews WHERE order_id = $1 AND from_user_id = $2)",
            order_id,
            from_user_id,
        )

    async def create(
        self,
        from_user_id: int,
        to_user_id: int,
        flight_id: int,
        reviewer_kind: AccountKind,
        dto: ReviewCreateDTO,
    ) -> Review:
        """Создаёт отзыв."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO reviews (from_user_id, to_user_id, flight_id, order_id, rating,
                                 comment, reviewer_kind, is_disputed)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            RETURNING {_COLUMNS}
            """,
            from_user_id,
            to_user_id,
            flight_id,
            dto.order_id,
            dto.rating,
            dto.comment,
            reviewer_kind.value,
            dto.is_disputed,
        )
        return self._row_to_review(row)

    async def set_moderated(self, review_id: int) -> bool:
        """Отмечает отзыв прошедшим модерацию."""
        result = await self._conn.execute("UPDATE reviews SET is_moderated = TRUE WHERE id = $1", review_id)
        return result.endswith(" 1")

    async def delete(self, review_id: int) -> bool:
        """Удаляет отзыв."""
        result = await self._conn.execute("DELETE FROM reviews WHERE id = $1", review_id)
        return result.endswith(" 1")

    async def list_pending_moderation(self) -> list[Review]:
        """Отзывы, ожидающие модерации."""
        rows = await self._conn.fetch(
            f"SELECT {_COLUMNS} FROM reviews WHERE is_moderated = FALSE ORDER BY created_at DESC"
        )
        return [self._row_to_review(row) for row in rows]

    async def list_for_flight(self, flight_id: int) -> list[Review]:
        """Все отзывы по заказам рейса."""
        rows = await self._conn.fetch(f"SELECT {_COLUMNS} FROM reviews WHERE flight_id = $1", flight_id)
        return [self._row_to_review(row) for row in rows]
