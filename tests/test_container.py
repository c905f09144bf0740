# tests/test_container.py
"""
Тесты сборки контейнера зависимостей.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from flycargo.common.constants import Region
from flycargo.config.loader import DatabaseSettings, Settings, TelegramSettings
from flycargo.container import Container, build_container


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database=DatabaseSettings(DATABASE_URL_RU="postgresql://u:p@db/ru"),
        telegram=TelegramSettings(BOT_TOKEN="", MODERATOR_CHAT_ID=-100500),
    )


@pytest.fixture
def container(settings: Settings) -> Container:
    built = build_container(settings)
    built.registry = AsyncMock()
    built.redis = AsyncMock()
    built.event_bus = AsyncMock()
    built.aviation = AsyncMock()
    built.registry.health_check.return_value = {region: True for region in Region}
    built.redis.health_check.return_value = True
    built.event_bus.health_check.return_value = True
    return built


class TestBuildContainer:
    """Тесты build_container."""

    def test_without_bot_token(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("BOT_TOKEN", raising=False)

        built = build_container(Settings(telegram=TelegramSettings(BOT_TOKEN="")))

        assert built.bot is None

    def test_regions_use_own_dsn(self, settings: Settings) -> None:
        built = build_container(settings)

        assert built.registry.get(Region.RU).db._dsn == "postgresql://u:p@db/ru"
        assert built.registry.get(Region.PENDING).db.name == "PENDING"


class TestLifecycle:
    """Тесты startup и shutdown."""

    @pytest.mark.asyncio
    async def test_startup_applies_schema(self, container: Container) -> None:
        await container.startup()

        schema_sql = container.registry.connect.await_args.args[0]
        assert "CREATE TABLE" in schema_sql
        container.redis.connect.assert_awaited_once_with("redis://localhost:6379/0", 50)
        container.event_bus.connect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_startup_without_schema(self, container: Container) -> None:
        await container.startup(apply_schema=False)

        container.registry.connect.assert_awaited_once_with(None)

    @pytest.mark.asyncio
    async def test_shutdown(self, container: Container) -> None:
        await container.shutdown()

        container.event_bus.disconnect.assert_awaited_once()
        container.aviation.close.assert_awaited_once()
        container.redis.disconnect.assert_awaited_once()
        container.registry.disconnect.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_check(self, container: Container) -> None:
        container.registry.health_check.return_value = {Region.PENDING: True, Region.RU: False, Region.OTHER: True}

        status = await container.health_check()

        assert status == {
            "postgres:PENDING": True,
            "postgres:RU": False,
            "postgres:OTHER": True,
            "redis": True,
            "rabbitmq": True,
        }

    @pytest.mark.asyncio
    async def test_startup_reports_unhealthy_components(self, container: Container) -> None:
        """Упавший после старта компонент попадает в лог деградации."""
        container.redis.health_check.return_value = False

        with patch("flycargo.container.log_degraded", new_callable=AsyncMock) as mock_degraded:
            await container.startup(apply_schema=False)

        mock_degraded.assert_awaited_once()
        assert mock_degraded.await_args.args[0] == "redis"

    @pytest.mark.asyncio
    async def test_startup_all_healthy(self, container: Container) -> None:
        with patch("flycargo.container.log_degraded", new_callable=AsyncMock) as mock_degraded:
            await container.startup(apply_schema=False)

        mock_degraded.assert_not_called()
