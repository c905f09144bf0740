# flycargo/infra/redis_client.py
"""
Клиент Redis: коды подтверждения и кэш ответов внешних API.
Все ключи автоматически получают префикс пространства имён.
"""

from __future__ import annotations

import json

import redis.asyncio as redis

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import log_error, log_info

# Удаляет ключ, только если его значение совпало с ожидаемым.
# Выполняется атомарно, поэтому код нельзя погасить дважды.
_COMPARE_AND_DELETE = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisClient:
    """Асинхронный клиент Redis с пространством имён."""

    def __init__(self, namespace: str = "flycargo") -> None:
        self._client: redis.Redis | None = None
        self._namespace = namespace

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(self, url: str, max_connections: int = 50) -> None:
        """
        Подключается к Redis.

        Args:
            url: URL Redis
            max_connections: Максимальное количество соединений
        """
        if self._client is not None:
            return

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )
        await self._client.ping()

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # БАЗОВЫЕ ОПЕРАЦИИ
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """Получает значение по ключу."""
        return await self.client.get(self._make_key(key))

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """
        Устанавливает значение, перезаписывая предыдущее.

        Args:
            key: Ключ
            value: Значение
            ttl: Время жизни в секундах
        """
        return await self.client.set(self._make_key(key), value, ex=ttl)

    async def delete_if_equals(self, key: str, expected: str) -> bool:
        """
        Атомарно удаляет ключ, если его значение равно expected.

        Returns:
            True если значение совпало и ключ удалён
        """
        deleted = await self.client.eval(_COMPARE_AND_DELETE, 1, self._make_key(key), expected)
        return int(deleted) == 1

    # =========================================================================
    # JSON ОПЕРАЦИИ
    # =========================================================================

    async def get_json(self, key: str) -> dict | list | None:
        """Получает и парсит JSON."""
        data = await self.get(key)
        if data is None:
            return None

        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, data: dict | list, ttl: int | None = None) -> bool:
        """Сериализует и сохраняет JSON."""
        return await self.set(key, json.dumps(data, ensure_ascii=False), ttl=ttl)

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к Redis.

        Returns:
            True если подключение работает
        """
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False
