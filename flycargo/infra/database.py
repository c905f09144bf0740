# flycargo/infra/database.py
"""
Менеджер базы данных PostgreSQL.
Пул соединений на один регион, retry при обрыве соединения, транзакции.
Экземпляров ровно столько, сколько регионов; создаются при старте
и передаются в RegionStoreRegistry.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncGenerator, Callable, TypeVar

import asyncpg
from asyncpg import Connection, Pool

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import log_error, log_info, log_warning

T = TypeVar("T")

# Произвольный ключ advisory lock для миграций
SCHEMA_LOCK_ID = 720394518

# Ошибки, после которых база считается недоступной
CONNECTION_ERRORS: tuple[type[Exception], ...] = (
    asyncpg.PostgresConnectionError,
    asyncpg.InterfaceError,
    ConnectionRefusedError,
    OSError,
)


def retry_on_connection_error(
    max_attempts: int = 3,
    delay: float = 1.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Декоратор для автоматического ретрая при ошибках подключения.

    Args:
        max_attempts: Максимальное количество попыток
        delay: Базовая задержка между попытками (секунды), растёт линейно
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            last_error: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except CONNECTION_ERRORS as e:
                    last_error = e
                    if attempt < max_attempts:
                        await log_info(
                            f"Ошибка подключения к БД (попытка {attempt}/{max_attempts}): {e}",
                            type_msg=TypeMsg.WARNING,
                        )
                        await asyncio.sleep(delay * attempt)
                    else:
                        await log_error(f"Не удалось подключиться к БД после {max_attempts} попыток: {e}")

            raise last_error  # type: ignore

        return wrapper  # type: ignore

    return decorator


class DatabaseManager:
    """Пул соединений к базе одного региона."""

    def __init__(
        self,
        name: str,
        dsn: str,
        min_size: int = 2,
        max_size: int = 10,
        command_timeout: int = 60,
    ) -> None:
        """
        Args:
            name: Имя базы для логов (обычно тег региона)
            dsn: DSN строка подключения
            min_size: Минимальный размер пула
            max_size: Максимальный размер пула
            command_timeout: Таймаут команд (секунды)
        """
        self.name = name
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._command_timeout = command_timeout
        self._pool: Pool | None = None

    @property
    def pool(self) -> Pool:
        """Возвращает пул соединений."""
        if self._pool is None:
            raise RuntimeError(f"Пул {self.name} не инициализирован. Вызовите connect() сначала.")
        return self._pool

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @retry_on_connection_error(max_attempts=3, delay=1.0)
    async def connect(self) -> None:
        """Создаёт пул соединений."""
        if self._pool is not None:
            return

        await log_info(f"Подключение к PostgreSQL [{self.name}]...", type_msg=TypeMsg.INFO)

        self._pool = await asyncpg.create_pool(
            dsn=self._dsn,
            min_size=self._min_size,
            max_size=self._max_size,
            command_timeout=self._command_timeout,
        )

        await log_info(f"Подключение к PostgreSQL [{self.name}] установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пул соединений."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            await log_info(f"Соединение с PostgreSQL [{self.name}] закрыто", type_msg=TypeMsg.INFO)

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для получения соединения из пула.

        Example:
            async with db.acquire() as conn:
                version = await conn.fetchval("SELECT version()")
        """
        async with self.pool.acquire() as connection:
            yield connection

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[Connection, None]:
        """
        Контекстный менеджер для транзакции.
        Commit при успехе, rollback при любом исключении.

        Example:
            async with db.transaction() as conn:
                await conn.execute("UPDATE responses ...")
                await conn.execute("UPDATE orders ...")
        """
        async with self.pool.acquire() as connection:
            async with connection.transaction():
                yield connection

    @retry_on_connection_error()
    async def fetchval(self, query: str, *args: Any) -> Any:
        """Выполняет запрос и возвращает одно значение."""
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к БД.

        Returns:
            True если подключение работает
        """
        try:
            return await self.fetchval("SELECT 1") == 1
        except Exception as e:
            await log_error(f"Health check PostgreSQL [{self.name}] failed: {e}")
            return False

    async def apply_schema(self, schema_sql: str) -> None:
        """
        Применяет SQL схему под advisory lock, чтобы параллельно
        стартующие процессы не мигрировали одну базу одновременно.
        """
        try:
            async with self.transaction() as conn:
                await conn.execute("SELECT pg_advisory_xact_lock($1)", SCHEMA_LOCK_ID)
                await conn.execute(schema_sql)
            await log_info(f"Схема БД [{self.name}] применена", type_msg=TypeMsg.INFO)
        except asyncpg.exceptions.DuplicateObjectError as e:
            await log_warning(f"Схема БД [{self.name}] уже существует: {e}")

    async def align_user_ids(self, offset: int, stride: int) -> int:
        """
        Переводит последовательность users.id на шаг stride так, чтобы
        следующие id давали остаток offset по модулю stride.

        У каждого региона своё смещение, поэтому id пользователей
        в разных базах не совпадают. Повторный вызов безопасен:
        следующий id всегда больше уже выданных.

        Returns:
            Следующий id, который выдаст последовательность
        """
        async with self.transaction() as conn:
            await conn.execute("SELECT pg_advisory_xact_lock($1)", SCHEMA_LOCK_ID)
            sequence = await conn.fetchval("SELECT pg_get_serial_sequence('users', 'id')")
            await conn.execute(f"ALTER SEQUENCE {sequence} INCREMENT BY {int(stride)}")
            next_id = await conn.fetchval(
                f"""
                SELECT m + 1 + ((($1::bigint - (m + 1)) % $2::bigint) + $2::bigint) % $2::bigint
                FROM (
                    SELECT GREATEST(
                        (SELECT COALESCE(MAX(id), 0) FROM users),
                        (SELECT last_value FROM {sequence})
                    ) AS m
                ) AS bounds
                """,
                offset,
                stride,
            )
            await conn.execute(f"SELECT setval('{sequence}', $1, false)", next_id)

        await log_info(
            f"ID пользователей [{self.name}]: следующий {next_id}, шаг {stride}",
            type_msg=TypeMsg.DEBUG,
        )
        return next_id
