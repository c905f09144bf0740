# tests/bot/test_channel.py
"""
Тесты канала модерации.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.exceptions import TelegramNetworkError

from flycargo.bot.channel import ModerationChannel
from flycargo.common.constants import EntityKind, FlightStatus, NotificationChannel, Region
from flycargo.core.moderation.gateway import ModerationGateway

CHAT_ID = -100500


@pytest.fixture
def bot() -> MagicMock:
    bot = MagicMock()
    bot.send_message = AsyncMock()
    return bot


@pytest.fixture
def gateway(registry) -> ModerationGateway:
    return ModerationGateway(registry)


class TestModerationChannel:
    """Тесты отправки карточек в чат модераторов."""

    @pytest.mark.asyncio
    async def test_submit(self, bot, gateway, seed) -> None:
        flight = seed.flight(seed.actor(), status=FlightStatus.PENDING)
        channel = ModerationChannel(bot, CHAT_ID, gateway)

        result = await channel.submit(EntityKind.FLIGHT, flight.id, Region.RU)

        assert result.ok
        assert result.channel is NotificationChannel.TELEGRAM
        kwargs = bot.send_message.await_args.kwargs
        assert kwargs["chat_id"] == CHAT_ID
        assert f"Рейс #{flight.id}" in kwargs["text"]
        assert kwargs["reply_markup"].inline_keyboard[0][1].callback_data == f"reject_flight_{flight.id}_RU"

    @pytest.mark.asyncio
    async def test_not_configured(self, gateway) -> None:
        channel = ModerationChannel(None, CHAT_ID, gateway)

        with patch("flycargo.bot.channel.log_degraded", new_callable=AsyncMock) as mock_log:
            result = await channel.submit(EntityKind.ORDER, 1, Region.RU)

        assert not result.ok
        mock_log.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_entity(self, bot, gateway) -> None:
        channel = ModerationChannel(bot, CHAT_ID, gateway)

        result = await channel.submit(EntityKind.ORDER, 404, Region.OTHER)

        assert not result.ok
        bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_telegram_failure_degrades(self, bot, gateway, seed) -> None:
        order = seed.order(seed.actor())
        bot.send_message.side_effect = TelegramNetworkError(method=MagicMock(), message="timeout")
        channel = ModerationChannel(bot, CHAT_ID, gateway)

        with patch("flycargo.bot.channel.log_degraded", new_callable=AsyncMock) as mock_log:
            result = await channel.submit(EntityKind.ORDER, order.id, Region.RU)

        assert not result.ok
        assert mock_log.await_args.args[0] == "telegram"
        assert seed.get(Region.RU, "orders", order.id) is not None

    @pytest.mark.asyncio
    async def test_card_lookup_failure_degrades(self, bot, gateway, seed) -> None:
        """База не отдала карточку: результат с ошибкой, без исключения."""
        order = seed.order(seed.actor())
        channel = ModerationChannel(bot, CHAT_ID, gateway)

        with patch.object(gateway, "card", AsyncMock(side_effect=ConnectionResetError("reset by peer"))), \
             patch("flycargo.bot.channel.log_degraded", new_callable=AsyncMock) as mock_log:
            result = await channel.submit(EntityKind.ORDER, order.id, Region.RU)

        assert not result.ok
        assert "reset by peer" in result.error
        bot.send_message.assert_not_awaited()
        mock_log.assert_awaited_once()
