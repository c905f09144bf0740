# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock

import pytest

# Переменные окружения до импорта модулей приложения
os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("BOT_TOKEN", "")
os.environ.setdefault("MODERATOR_CHAT_ID", "-100500")

from fakes import FakeRedis, FakeRegionStore, make_registry  # noqa: E402

from flycargo.common.constants import (  # noqa: E402
    AccountKind,
    FlightStatus,
    NotificationChannel,
    OrderStatus,
    Region,
)
from flycargo.core.confirmation.store import ConfirmationCodeStore  # noqa: E402
from flycargo.core.flights.models import Flight  # noqa: E402
from flycargo.core.identity.service import Actor  # noqa: E402
from flycargo.core.notifications.senders import DispatchResult  # noqa: E402
from flycargo.core.orders.models import Order  # noqa: E402
from flycargo.core.responses.models import Response  # noqa: E402
from flycargo.core.users.models import User  # noqa: E402


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок config.json для тестов загрузчика."""
    return {
        "PROJECT_NAME": "flycargo_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "json",
        "LOG_TO_FILE": False,
        "DATABASE_URL_PENDING": "postgresql://u:p@localhost:5432/pending_test",
        "DATABASE_URL_RU": "postgresql://u:p@localhost:5432/ru_test",
        "DATABASE_URL_OTHER": "postgresql://u:p@localhost:5432/other_test",
        "REDIS_NAMESPACE": "flycargo_test",
        "EMAIL_CODE_TTL": 120,
        "DELIVERY_CODE_TTL": 900,
        "RABBITMQ_EXCHANGE": "flycargo.test",
        "SCHEDULE_MIN_DAYS_AHEAD": 7,
        "FLIGHT_CHECK_DELAY_MINUTES": 30,
        "FLIGHT_CHECK_MAX_ATTEMPTS": 5,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ХРАНИЛИЩ
# =============================================================================

@pytest.fixture
def registry_and_stores():
    return make_registry()


@pytest.fixture
def registry(registry_and_stores):
    """Регистр трёх регионов в памяти."""
    return registry_and_stores[0]


@pytest.fixture
def stores(registry_and_stores) -> dict[Region, FakeRegionStore]:
    """Хранилища по регионам (для проверки состояния и подстановки ошибок)."""
    return registry_and_stores[1]


class Seeder:
    """Записывает строки прямо в таблицы хранилищ."""

    def __init__(self, stores: dict[Region, FakeRegionStore]) -> None:
        self._stores = stores

    def user(self, region: Region = Region.RU, **fields: Any) -> User:
        store = self._stores[region]
        data = {
            "first_name": "Иван",
            "email": None,
            "account_kind": AccountKind.CUSTOMER,
            "is_email_verified": region is not Region.PENDING,
        }
        data.update(fields)
        user = User(id=store.next_user_id(), region=region, **data)
        store.tables["users"][user.id] = user
        return user

    def actor(self, region: Region = Region.RU, **fields: Any) -> Actor:
        return Actor(user=self.user(region, **fields), region=region)

    def flight(
        self,
        owner: Actor,
        status: FlightStatus = FlightStatus.CONFIRMED,
        **fields: Any,
    ) -> Flight:
        store = self._stores[owner.region]
        data = {
            "departure": "SVO",
            "arrival": "LED",
            "date": datetime.now(timezone.utc) + timedelta(days=10),
            "iata_number": "SU6",
        }
        data.update(fields)
        flight = Flight(id=store.next_id(), user_id=owner.id, status=status, region=owner.region, **data)
        store.tables["flights"][flight.id] = flight
        return flight

    def order(
        self,
        owner: Actor,
        status: OrderStatus = OrderStatus.RAW,
        flight: Optional[Flight] = None,
        carrier: Optional[Actor] = None,
        **fields: Any,
    ) -> Order:
        store = self._stores[owner.region]
        data = {
            "name": "Документы",
            "departure": "Москва",
            "arrival": "Санкт-Петербург",
            "price": 1000.0,
            "reward": 300.0,
        }
        data.update(fields)
        order = Order(
            id=store.next_id(),
            user_id=owner.id,
            flight_id=flight.id if flight else None,
            carrier_id=carrier.id if carrier else None,
            status=status,
            region=owner.region,
            **data,
        )
        store.tables["orders"][order.id] = order
        return order

    def response(self, order: Order, flight: Flight, carrier: Actor, **fields: Any) -> Response:
        store = self._stores[order.region]
        response = Response(
            id=store.next_id(),
            order_id=order.id,
            flight_id=flight.id,
            carrier_id=carrier.id,
            message=fields.pop("message", "Возьму"),
            **fields,
        )
        store.tables["responses"][response.id] = response
        return response

    def get(self, region: Region, table: str, row_id: int) -> Any:
        return self._stores[region].tables[table].get(row_id)


@pytest.fixture
def seed(stores) -> Seeder:
    """Наполнение хранилищ тестовыми данными."""
    return Seeder(stores)


# =============================================================================
# ФИКСТУРЫ ВНЕШНИХ СЕРВИСОВ (МОКИ)
# =============================================================================

@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def codes(fake_redis: FakeRedis) -> ConfirmationCodeStore:
    """Хранилище кодов поверх Redis в памяти."""
    return ConfirmationCodeStore(fake_redis)


@pytest.fixture
def email_sender() -> AsyncMock:
    sender = AsyncMock()
    sender.send_verification_code = AsyncMock(
        side_effect=lambda destination, code: DispatchResult.success(NotificationChannel.EMAIL, destination)
    )
    return sender


@pytest.fixture
def sms_sender() -> AsyncMock:
    sender = AsyncMock()
    sender.send_verification_code = AsyncMock(
        side_effect=lambda destination, code: DispatchResult.success(NotificationChannel.SMS, destination)
    )
    return sender


@pytest.fixture
def moderation() -> AsyncMock:
    """Мок канала модерации."""
    channel = AsyncMock()
    channel.submit = AsyncMock(return_value=DispatchResult.success(NotificationChannel.TELEGRAM, "-100500"))
    return channel


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=True)
    event_bus.subscribe = AsyncMock(return_value=None)
    event_bus.is_connected = True
    return event_bus


@pytest.fixture
def mock_aviation() -> AsyncMock:
    """Мок клиента Aviation Edge."""
    aviation = AsyncMock()
    aviation.scheduled_route = AsyncMock(return_value=[{"flight": {"iataNumber": "SU6"}}])
    aviation.live_flights = AsyncMock(return_value=[])
    return aviation
