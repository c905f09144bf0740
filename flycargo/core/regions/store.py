# flycargo/core/regions/store.py
"""
Хранилище одного региона и сессия работы с ним.

Сессия открывает транзакцию и отдаёт репозитории, привязанные к её
соединению: всё, что сделано внутри `async with store.session()`,
фиксируется или откатывается целиком.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncGenerator, Protocol

from asyncpg import Connection

from flycargo.common.constants import Region
from flycargo.common.exceptions import RegionUnavailableError
from flycargo.core.flights.repository import FlightRepository
from flycargo.core.orders.repository import OrderRepository
from flycargo.core.responses.repository import ResponseRepository
from flycargo.core.reviews.repository import ReviewRepository
from flycargo.core.users.repository import UserRepository
from flycargo.infra.database import CONNECTION_ERRORS, DatabaseManager


class StoreSession:
    """Репозитории одного региона на соединении одной транзакции."""

    def __init__(self, region: Region, conn: Connection) -> None:
        self.region = region
        self.users = UserRepository(conn, region)
        self.flights = FlightRepository(conn, region)
        self.orders = OrderRepository(conn, region)
        self.responses = ResponseRepository(conn, region)
        self.reviews = ReviewRepository(conn, region)


class StoreHandle(Protocol):
    """То, что регистр возвращает по тегу региона."""

    region: Region

    def session(self) -> AsyncContextManager[StoreSession]: ...


class RegionStore:
    """Хранилище региона поверх пула PostgreSQL."""

    def __init__(self, region: Region, db: DatabaseManager) -> None:
        self.region = region
        self.db = db

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[StoreSession, None]:
        """
        Открывает транзакцию в базе региона.
        Обрыв соединения превращается в RegionUnavailableError.

        Example:
            async with store.session() as s:
                order = await s.orders.get(order_id, for_update=True)
                await s.orders.mark_done(order.id)
        """
        if not self.db.is_connected:
            raise RegionUnavailableError(self.region.value)
        try:
            async with self.db.transaction() as conn:
                yield StoreSession(self.region, conn)
        except CONNECTION_ERRORS as e:
            raise RegionUnavailableError(self.region.value) from e

    def __repr__(self) -> str:
        return f"RegionStore({self.region.value})"
