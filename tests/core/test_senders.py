# tests/core/test_senders.py
"""
Тесты отправителей кодов подтверждения.
"""

from __future__ import annotations

import base64
import json
import smtplib
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from flycargo.common.constants import NotificationChannel
from flycargo.config.loader import SmsSettings, SmtpSettings
from flycargo.core.notifications.senders import DispatchResult, EmailSender, SmsSender


class TestEmailSender:
    """Тесты отправки email."""

    @pytest.fixture
    def smtp_config(self) -> SmtpSettings:
        return SmtpSettings(SMTP_HOST="smtp.test", SMTP_PORT=2525, SMTP_USER="bot", SMTP_PASSWORD="pw")

    @pytest.mark.asyncio
    async def test_success(self, smtp_config: SmtpSettings) -> None:
        smtp = MagicMock()
        with patch("flycargo.core.notifications.senders.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.__enter__.return_value = smtp

            result = await EmailSender(smtp_config).send_verification_code("user@example.com", "123456")

        assert result == DispatchResult.success(NotificationChannel.EMAIL, "user@example.com")
        mock_smtp.assert_called_once_with("smtp.test", 2525, timeout=10.0)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("bot", "pw")
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "user@example.com"
        assert "123456" in message.get_content()

    @pytest.mark.asyncio
    async def test_no_tls_no_login(self) -> None:
        smtp = MagicMock()
        config = SmtpSettings(SMTP_USE_TLS=False)
        with patch("flycargo.core.notifications.senders.smtplib.SMTP") as mock_smtp:
            mock_smtp.return_value.__enter__.return_value = smtp

            await EmailSender(config).send_verification_code("user@example.com", "123456")

        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        smtplib.SMTPAuthenticationError(535, b"bad credentials"),
        ConnectionRefusedError("refused"),
    ])
    async def test_failure_is_result(self, smtp_config: SmtpSettings, error: Exception) -> None:
        with patch("flycargo.core.notifications.senders.smtplib.SMTP", side_effect=error), \
                patch("flycargo.core.notifications.senders.log_degraded", new_callable=AsyncMock) as mock_degraded:
            result = await EmailSender(smtp_config).send_verification_code("user@example.com", "123456")

        assert result.ok is False
        assert result.channel is NotificationChannel.EMAIL
        assert result.error
        assert mock_degraded.await_args.args[0] == "email"


class TestSmsSender:
    """Тесты отправки SMS."""

    @pytest.fixture
    def sms_config(self) -> SmsSettings:
        return SmsSettings(SMS_API_URL="https://sms.test/send", SMS_LOGIN="login", SMS_PASSWORD="secret")

    @pytest.mark.asyncio
    async def test_success(self, sms_config: SmsSettings) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"status": "ok"})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        result = await SmsSender(sms_config, client=client).send_verification_code("+79990001122", "654321")

        assert result.ok is True
        assert json.loads(seen[0].content) == {"to": "+79990001122", "txt": "Ваш код подтверждения: 654321"}
        expected_auth = base64.b64encode(b"login:secret").decode()
        assert seen[0].headers["Authorization"] == f"Basic {expected_auth}"

    @pytest.mark.asyncio
    async def test_gateway_error(self, sms_config: SmsSettings) -> None:
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(502)))

        with patch("flycargo.core.notifications.senders.log_degraded", new_callable=AsyncMock) as mock_degraded:
            result = await SmsSender(sms_config, client=client).send_verification_code("+79990001122", "654321")

        assert result.ok is False
        assert result.channel is NotificationChannel.SMS
        mock_degraded.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_configured(self) -> None:
        with patch("flycargo.core.notifications.senders.log_degraded", new_callable=AsyncMock):
            result = await SmsSender(SmsSettings()).send_verification_code("+79990001122", "654321")

        assert result == DispatchResult.failure(
            NotificationChannel.SMS, "+79990001122", "SMS gateway is not configured",
        )
