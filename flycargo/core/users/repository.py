# flycargo/core/users/repository.py
"""
Репозиторий пользователей одного региона.
Работает на соединении текущей транзакции (см. StoreSession).
"""

from __future__ import annotations

from typing import Iterable, Optional

from asyncpg import Connection, Record

from flycargo.common.constants import Region
from flycargo.core.users.models import User, UserCreateDTO

_COLUMNS = """
    id, first_name, last_name, email, phone, account_kind,
    is_email_verified, is_phone_verified, google_id, apple_id,
    region, created_at
"""


class UserRepository:
    """Репозиторий пользователей."""

    def __init__(self, conn: Connection, region: Region) -> None:
        """
        Args:
            conn: Соединение в контексте транзакции
            region: Регион базы
        """
        self._conn = conn
        self._region = region

    @staticmethod
    def _row_to_user(row: Record) -> User:
        return User.model_validate(dict(row))

    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Получает пользователя по ID."""
        row = await self._conn.fetchrow(f"SELECT {_COLUMNS} FROM users WHERE id = $1", user_id)
        return self._row_to_user(row) if row else None

    async def get_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        """Получает пользователей по списку ID."""
        ids = list({uid for uid in user_ids if uid is not None})
        if not ids:
            return {}
        rows = await self._conn.fetch(f"SELECT {_COLUMNS} FROM users WHERE id = ANY($1::bigint[])", ids)
        return {row["id"]: self._row_to_user(row) for row in rows}

    async def find_by_contacts(self, email: Optional[str], phone: Optional[str]) -> list[User]:
        """Находит пользователей с совпадающим email или телефоном."""
        rows = await self._conn.fetch(
            f"""
            SELECT {_COLUMNS} FROM users
            WHERE ($1::text IS NOT NULL AND email = $1)
               OR ($2::text IS NOT NULL AND phone = $2)
            """,
            email,
            phone,
        )
        return [self._row_to_user(row) for row in rows]

    async def find_by_provider(
        self,
        google_id: Optional[str] = None,
        apple_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[User]:
        """Находит пользователя по ID провайдера OAuth или по email."""
        row = await self._conn.fetchrow(
            f"""
            SELECT {_COLUMNS} FROM users
            WHERE ($1::text IS NOT NULL AND google_id = $1)
               OR ($2::text IS NOT NULL AND apple_id = $2)
               OR ($3::text IS NOT NULL AND email = $3)
            ORDER BY id
            LIMIT 1
            """,
            google_id,
            apple_id,
            email,
        )
        return self._row_to_user(row) if row else None

    async def create(self, dto: UserCreateDTO) -> User:
        """Создаёт пользователя в регионе репозитория."""
        row = await self._conn.fetchrow(
            f"""
            INSERT INTO users (
                first_name, last_name, email, phone, account_kind,
                is_email_verified, is_phone_verified, google_id, apple_id, region
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
            RETURNING {_COLUMNS}
            """,
            dto.first_name,
            dto.last_name,
            dto.email,
            dto.phone,
            dto.account_kind.value,
            dto.is_email_verified,
            dto.is_phone_verified,
            dto.google_id,
            dto.apple_id,
            self._region.value,
        )
        return self._row_to_user(row)

    async def set_email_verified(self, email: str) -> Optional[User]:
        """Отмечает email как подтверждённый."""
        row = await self._conn.fetchrow(
            f"UPDATE users SET is_email_verified = TRUE WHERE email = $1 RETURNING {_COLUMNS}",
            email,
        )
        return self._row_to_user(row) if row else None

    async def update_phone(self, user_id: int, phone: str) -> None:
        """Меняет телефон и сбрасывает его подтверждение."""
        await self._conn.execute(
            "UPDATE users SET phone = $2, is_phone_verified = FALSE WHERE id = $1",
            user_id,
            phone,
        )

    async def set_phone_verified(self, user_id: int) -> None:
        """Отмечает телефон как подтверждённый."""
        await self._conn.execute("UPDATE users SET is_phone_verified = TRUE WHERE id = $1", user_id)
