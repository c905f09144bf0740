# tests/bot/test_middleware.py
"""
Тесты middleware бота модераторов.
"""

from __future__ import annotations

from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.types import CallbackQuery, Chat, Message, User

from flycargo.bot.middleware.logging import LoggingMiddleware
from flycargo.bot.middleware.moderators import ModeratorChatMiddleware

CHAT_ID = -100500


@pytest.fixture
def mock_handler() -> AsyncMock:
    handler = AsyncMock()
    handler.return_value = "result"
    return handler


def _message(chat_id: int) -> Message:
    message = MagicMock(spec=Message)
    message.from_user = MagicMock(spec=User)
    message.from_user.id = 1
    message.chat = MagicMock(spec=Chat)
    message.chat.id = chat_id
    message.text = "/start"
    return message


def _callback(chat_id: int) -> CallbackQuery:
    callback = MagicMock(spec=CallbackQuery)
    callback.from_user = MagicMock(spec=User)
    callback.from_user.id = 1
    callback.message = _message(chat_id)
    callback.data = "moderate_menu"
    callback.answer = AsyncMock()
    return callback


class TestModeratorChatMiddleware:
    """Тесты фильтра чата модераторов."""

    @pytest.mark.asyncio
    async def test_moderator_chat_passes(self, mock_handler) -> None:
        data: Dict[str, Any] = {}
        result = await ModeratorChatMiddleware(CHAT_ID)(mock_handler, _message(CHAT_ID), data)

        assert result == "result"
        mock_handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_chat_dropped(self, mock_handler) -> None:
        with patch("flycargo.bot.middleware.moderators.log_warning", new_callable=AsyncMock) as mock_log:
            result = await ModeratorChatMiddleware(CHAT_ID)(mock_handler, _message(42), {})

        assert result is None
        mock_handler.assert_not_awaited()
        mock_log.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_chat_callback_answered(self, mock_handler) -> None:
        callback = _callback(42)

        with patch("flycargo.bot.middleware.moderators.log_warning", new_callable=AsyncMock):
            await ModeratorChatMiddleware(CHAT_ID)(mock_handler, callback, {})

        callback.answer.assert_awaited_once_with("Недоступно")
        mock_handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_callback_from_moderator_chat(self, mock_handler) -> None:
        await ModeratorChatMiddleware(CHAT_ID)(mock_handler, _callback(CHAT_ID), {})

        mock_handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unconfigured_chat_blocks_everything(self, mock_handler) -> None:
        with patch("flycargo.bot.middleware.moderators.log_warning", new_callable=AsyncMock):
            await ModeratorChatMiddleware(0)(mock_handler, _message(0), {})

        mock_handler.assert_not_awaited()


class TestLoggingMiddleware:
    """Тесты LoggingMiddleware."""

    @pytest.mark.asyncio
    async def test_logs_message(self, mock_handler) -> None:
        with patch("flycargo.bot.middleware.logging.log_info", new_callable=AsyncMock) as mock_log:
            result = await LoggingMiddleware()(mock_handler, _message(CHAT_ID), {})

        assert result == "result"
        first = mock_log.await_args_list[0]
        assert "/start" in first.args[0]
        assert first.kwargs["extra"]["chat_id"] == CHAT_ID
        assert mock_log.await_count == 2

    @pytest.mark.asyncio
    async def test_logs_menu_callback(self, mock_handler) -> None:
        with patch("flycargo.bot.middleware.logging.log_info", new_callable=AsyncMock) as mock_log:
            await LoggingMiddleware()(mock_handler, _callback(CHAT_ID), {})

        first = mock_log.await_args_list[0]
        assert "moderate_menu" in first.args[0]
        assert "kind" not in first.kwargs["extra"]

    @pytest.mark.asyncio
    async def test_decision_callback_extra(self, mock_handler) -> None:
        callback = _callback(CHAT_ID)
        callback.data = "approve_flight_12_RU"

        with patch("flycargo.bot.middleware.logging.log_info", new_callable=AsyncMock) as mock_log:
            await LoggingMiddleware()(mock_handler, callback, {})

        extra = mock_log.await_args_list[0].kwargs["extra"]
        assert extra["verb"] == "approve"
        assert extra["kind"] == "flight"
        assert extra["entity_id"] == 12
        assert extra["region"] == "RU"

    @pytest.mark.asyncio
    async def test_handler_error_reraised(self, mock_handler) -> None:
        mock_handler.side_effect = ValueError("boom")

        with patch("flycargo.bot.middleware.logging.log_info", new_callable=AsyncMock), \
                patch("flycargo.bot.middleware.logging.log_error", new_callable=AsyncMock) as mock_log:
            with pytest.raises(ValueError):
                await LoggingMiddleware()(mock_handler, _message(CHAT_ID), {})

        mock_log.assert_awaited_once()
        assert mock_log.await_args.kwargs["exc_info"] is True
