# flycargo/core/regions/registry.py
"""
Регистр региональных хранилищ.

Создаётся один раз при старте процесса и передаётся сервисам через
конструктор. Глобального состояния нет.
"""

from __future__ import annotations

from typing import Optional

from flycargo.common.constants import (
    REGION_PROBE_ORDER,
    USER_ID_OFFSETS,
    USER_ID_STRIDE,
    Region,
    TypeMsg,
)
from flycargo.common.logger import log_error, log_info
from flycargo.config.loader import DatabaseSettings
from flycargo.core.regions.store import RegionStore, StoreHandle
from flycargo.infra.database import DatabaseManager


def region_for_tag(tag: Optional[str]) -> Region:
    """
    Переводит тег региона в регион.

    "RU" (без учёта регистра) → RU, "PENDING" → PENDING, пустой или
    отсутствующий тег → PENDING, любое другое непустое значение → OTHER.
    Тег не валидируется: опечатка молча уходит в OTHER.
    """
    if not tag:
        return Region.PENDING
    upper = str(tag.value if isinstance(tag, Region) else tag).upper()
    if upper == Region.RU.value:
        return Region.RU
    if upper == Region.PENDING.value:
        return Region.PENDING
    return Region.OTHER


class RegionStoreRegistry:
    """Ровно три хранилища: PENDING, RU, OTHER."""

    def __init__(self, pending: StoreHandle, ru: StoreHandle, other: StoreHandle) -> None:
        self._stores: dict[Region, StoreHandle] = {
            Region.PENDING: pending,
            Region.RU: ru,
            Region.OTHER: other,
        }

    @classmethod
    def from_settings(cls, db_settings: DatabaseSettings) -> "RegionStoreRegistry":
        """Создаёт хранилища с отдельным пулом на каждый регион."""
        stores = {
            region: RegionStore(
                region,
                DatabaseManager(
                    name=region.value,
                    dsn=db_settings.dsn_for(region),
                    min_size=db_settings.DB_MIN_POOL_SIZE,
                    max_size=db_settings.DB_MAX_POOL_SIZE,
                    command_timeout=db_settings.DB_COMMAND_TIMEOUT,
                ),
            )
            for region in Region
        }
        return cls(stores[Region.PENDING], stores[Region.RU], stores[Region.OTHER])

    def resolve(self, tag: Optional[str]) -> StoreHandle:
        """Возвращает хранилище по тегу региона (см. region_for_tag)."""
        return self._stores[region_for_tag(tag)]

    def get(self, region: Region) -> StoreHandle:
        """Возвращает хранилище по региону."""
        return self._stores[region]

    def in_probe_order(self) -> list[StoreHandle]:
        """Хранилища в порядке поиска пользователя: PENDING, RU, OTHER."""
        return [self._stores[region] for region in REGION_PROBE_ORDER]

    async def connect(self, schema_sql: Optional[str] = None) -> None:
        """
        Подключает пулы всех регионов и выравнивает последовательность
        users.id под смещение региона.
        Недоступный регион логируется и не мешает остальным.
        """
        for store in self._stores.values():
            db: DatabaseManager | None = getattr(store, "db", None)
            if db is None:
                continue
            try:
                await db.connect()
                if schema_sql:
                    await db.apply_schema(schema_sql)
                await db.align_user_ids(USER_ID_OFFSETS[store.region], USER_ID_STRIDE)
            except Exception as e:
                await log_error(f"Регион {store.region.value} недоступен при старте: {e}", exc_info=True)

        await log_info("Регистр региональных хранилищ готов", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает пулы всех регионов."""
        for store in self._stores.values():
            db: DatabaseManager | None = getattr(store, "db", None)
            if db is not None:
                await db.disconnect()

    async def health_check(self) -> dict[Region, bool]:
        """Состояние базы каждого региона. Хранилища без пула считаются живыми."""
        result: dict[Region, bool] = {}
        for region, store in self._stores.items():
            db: DatabaseManager | None = getattr(store, "db", None)
            result[region] = await db.health_check() if db is not None else True
        return result
