# flycargo/core/confirmation/store.py
"""
Одноразовые числовые коды подтверждения в Redis.

Коды верификации контактов имеют 6 цифр, коды этапов передачи посылки 4.
Недоступность Redis поднимается как ConfirmationStoreUnavailableError и
никогда не выдаётся за неверный код.
"""

from __future__ import annotations

import secrets

from redis.exceptions import RedisError

from flycargo.common.constants import DeliveryStage, TypeMsg, VERIFICATION_CODE_DIGITS
from flycargo.common.exceptions import ConfirmationStoreUnavailableError
from flycargo.common.logger import log_degraded, log_info
from flycargo.infra.redis_client import RedisClient


# =============================================================================
# КЛЮЧИ
# =============================================================================

def email_verification_key(email: str) -> str:
    """Ключ кода подтверждения email."""
    return f"email_verification:{email}"


def phone_verification_key(identifier: str | int) -> str:
    """
    Ключ кода подтверждения телефона.

    При регистрации identifier это номер телефона, при смене номера
    в профиле это ID пользователя.
    """
    return f"phone_verification:{identifier}"


def delivery_stage_key(order_id: int, stage: DeliveryStage) -> str:
    """Ключ кода подтверждения этапа передачи посылки."""
    return f"order:{order_id}:statusChange:{stage.value}"


def generate_code(digits: int) -> str:
    """Случайный код из digits цифр (ведущие нули сохраняются)."""
    return "".join(secrets.choice("0123456789") for _ in range(digits))


class ConfirmationCodeStore:
    """Выдача и проверка одноразовых кодов."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def issue(self, key: str, ttl_seconds: int, digits: int = VERIFICATION_CODE_DIGITS) -> str:
        """
        Создаёт код и сохраняет его под ключом, перезаписывая прежний.

        Args:
            key: Ключ кода
            ttl_seconds: Время жизни кода
            digits: Длина кода

        Returns:
            Выданный код

        Raises:
            ConfirmationStoreUnavailableError: Redis недоступен
        """
        code = generate_code(digits)
        try:
            await self._redis.set(key, code, ttl=ttl_seconds)
        except RedisError as e:
            await log_degraded("confirmation_store", f"Не удалось сохранить код {key}: {e}")
            raise ConfirmationStoreUnavailableError() from e

        await log_info(f"Выдан код подтверждения {key}", type_msg=TypeMsg.DEBUG)
        return code

    async def verify(self, key: str, candidate: str) -> bool:
        """
        Проверяет код. Совпадение гасит код, несовпадение оставляет его.

        Returns:
            True если код совпал

        Raises:
            ConfirmationStoreUnavailableError: Redis недоступен
        """
        if not candidate:
            return False
        try:
            return await self._redis.delete_if_equals(key, str(candidate).strip())
        except RedisError as e:
            await log_degraded("confirmation_store", f"Не удалось проверить код {key}: {e}")
            raise ConfirmationStoreUnavailableError() from e

    async def matches(self, key: str, candidate: str) -> bool:
        """
        Сравнивает код, не гася его.

        Нужен там, где код можно погасить только после записи в базу.

        Raises:
            ConfirmationStoreUnavailableError: Redis недоступен
        """
        if not candidate:
            return False
        try:
            stored = await self._redis.get(key)
        except RedisError as e:
            await log_degraded("confirmation_store", f"Не удалось прочитать код {key}: {e}")
            raise ConfirmationStoreUnavailableError() from e
        return stored is not None and secrets.compare_digest(stored.encode(), str(candidate).strip().encode())
