# flycargo/core/identity/service.py
"""
Определение пользователя по учётным данным запроса.

Токен выпускается внешним аутентификатором, здесь он только проверяется.
Домашний регион из токена не известен, поэтому пользователь ищется
по шардам в фиксированном порядке.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Callable, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from flycargo.common.constants import FINAL_REGIONS, Region, TypeMsg
from flycargo.common.exceptions import NotFoundError, RegionUnavailableError, UnauthenticatedError
from flycargo.common.logger import log_degraded, log_info
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.users.models import User

# Политика выбора региона для новых OAuth пользователей
RegionPolicy = Callable[[], Region]


def random_final_region() -> Region:
    """Выбирает RU или OTHER с равной вероятностью."""
    return random.choice(FINAL_REGIONS)


@dataclass(frozen=True)
class Actor:
    """Аутентифицированный пользователь и его домашний регион."""

    user: User
    region: Region

    @property
    def id(self) -> int:
        return self.user.id


class TokenDecoder:
    """Проверяет подпись и срок действия JWT."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    def subject(self, credential: Optional[str]) -> int:
        """
        Извлекает ID пользователя из токена.

        Args:
            credential: Токен, допускается префикс "Bearer "

        Returns:
            Значение claim `sub` как целое число

        Raises:
            UnauthenticatedError: Токена нет, он повреждён или просрочен
        """
        if not credential:
            raise UnauthenticatedError("Токен не передан")

        token = credential.strip()
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        if not token:
            raise UnauthenticatedError("Токен не передан")

        try:
            payload: dict[str, Any] = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise UnauthenticatedError("Срок действия токена истёк", code="token_expired")
        except JWTError as e:
            raise UnauthenticatedError(f"Некорректный токен: {e}")

        sub = payload.get("sub")
        try:
            return int(sub)
        except (TypeError, ValueError):
            raise UnauthenticatedError("В токене нет корректного sub")


class IdentityResolver:
    """Превращает токен в пользователя и регион."""

    def __init__(self, registry: RegionStoreRegistry, decoder: TokenDecoder) -> None:
        self._registry = registry
        self._decoder = decoder

    async def authenticate(self, credential: Optional[str]) -> Actor:
        """
        Определяет пользователя по токену.

        Порядок поиска: PENDING, RU, OTHER. Побеждает первое совпадение.

        Raises:
            UnauthenticatedError: Токен отсутствует или недействителен
            NotFoundError: Пользователя нет ни в одном регионе
            RegionUnavailableError: Пользователь не найден, а часть регионов не ответила
        """
        user_id = self._decoder.subject(credential)
        actor = await self.find(user_id)
        if actor is None:
            raise NotFoundError("user", user_id)
        return actor

    async def find(self, user_id: int) -> Optional[Actor]:
        """
        Ищет пользователя по всем регионам.

        Недоступный регион пропускается. None возвращается, только если
        ответили все регионы, иначе поднимается RegionUnavailableError.
        """
        unavailable: list[str] = []
        for store in self._registry.in_probe_order():
            try:
                async with store.session() as s:
                    user = await s.users.get_by_id(user_id)
            except RegionUnavailableError:
                unavailable.append(store.region.value)
                await log_degraded(
                    "postgres",
                    f"Регион {store.region.value} не ответил при поиске пользователя {user_id}",
                    extra={"region": store.region.value, "user_id": user_id},
                )
                continue
            if user is not None:
                await log_info(
                    f"Пользователь {user_id} найден в регионе {store.region.value}",
                    type_msg=TypeMsg.DEBUG,
                )
                return Actor(user=user, region=store.region)
        if unavailable:
            raise RegionUnavailableError(*unavailable)
        return None
