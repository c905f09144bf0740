# flycargo/core/notifications/senders.py
"""
Отправка кодов подтверждения по email и SMS.

Отправители не бросают исключений при сбое транспорта: результат
возвращается как DispatchResult, и вызывающий сам решает, блокирует ли
неудача пользовательскую операцию. Каждый сбой логируется сигналом
деградации внешнего сервиса.
"""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

import httpx

from flycargo.common.constants import NotificationChannel, TypeMsg
from flycargo.common.logger import log_degraded, log_info
from flycargo.config.loader import SmsSettings, SmtpSettings


@dataclass(frozen=True)
class DispatchResult:
    """Результат попытки доставки уведомления."""

    ok: bool
    channel: NotificationChannel
    destination: str
    error: Optional[str] = None

    @classmethod
    def success(cls, channel: NotificationChannel, destination: str) -> "DispatchResult":
        return cls(ok=True, channel=channel, destination=destination)

    @classmethod
    def failure(cls, channel: NotificationChannel, destination: str, error: str) -> "DispatchResult":
        return cls(ok=False, channel=channel, destination=destination, error=error)


class CodeSender(Protocol):
    """Канал доставки кода подтверждения."""

    async def send_verification_code(self, destination: str, code: str) -> DispatchResult: ...


class EmailSender:
    """Отправка писем через SMTP."""

    def __init__(self, config: SmtpSettings) -> None:
        self._config = config

    def _build_message(self, destination: str, code: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.SMTP_FROM
        message["To"] = destination
        message["Subject"] = "Код подтверждения"
        message.set_content(f"Ваш код подтверждения: {code}")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(
            self._config.SMTP_HOST,
            self._config.SMTP_PORT,
            timeout=self._config.SMTP_TIMEOUT,
        ) as smtp:
            if self._config.SMTP_USE_TLS:
                smtp.starttls()
            if self._config.SMTP_USER:
                smtp.login(self._config.SMTP_USER, self._config.SMTP_PASSWORD)
            smtp.send_message(message)

    async def send_verification_code(self, destination: str, code: str) -> DispatchResult:
        """
        Отправляет код на email.

        Args:
            destination: Адрес получателя
            code: Код подтверждения

        Returns:
            DispatchResult
        """
        message = self._build_message(destination, code)
        try:
            # smtplib блокирующий
            await asyncio.to_thread(self._send_sync, message)
        except (smtplib.SMTPException, OSError) as e:
            await log_degraded("email", f"Не удалось отправить письмо на {destination}: {e}")
            return DispatchResult.failure(NotificationChannel.EMAIL, destination, str(e))

        await log_info(f"Код отправлен на {destination}", type_msg=TypeMsg.DEBUG)
        return DispatchResult.success(NotificationChannel.EMAIL, destination)


class SmsSender:
    """Отправка SMS через HTTP шлюз с basic авторизацией."""

    def __init__(self, config: SmsSettings, client: Optional[httpx.AsyncClient] = None) -> None:
        self._config = config
        self._client = client

    async def send_verification_code(self, destination: str, code: str) -> DispatchResult:
        """Отправляет код на номер телефона."""
        if not self._config.SMS_API_URL:
            await log_degraded("sms", "SMS шлюз не настроен")
            return DispatchResult.failure(NotificationChannel.SMS, destination, "SMS gateway is not configured")

        payload = {"to": destination, "txt": f"Ваш код подтверждения: {code}"}
        auth = (self._config.SMS_LOGIN, self._config.SMS_PASSWORD)
        try:
            if self._client is not None:
                response = await self._client.post(self._config.SMS_API_URL, json=payload, auth=auth)
            else:
                async with httpx.AsyncClient(timeout=self._config.SMS_TIMEOUT) as client:
                    response = await client.post(self._config.SMS_API_URL, json=payload, auth=auth)
            response.raise_for_status()
        except httpx.HTTPError as e:
            await log_degraded("sms", f"Не удалось отправить SMS на {destination}: {e}")
            return DispatchResult.failure(NotificationChannel.SMS, destination, str(e))

        await log_info(f"SMS отправлено на {destination}", type_msg=TypeMsg.DEBUG)
        return DispatchResult.success(NotificationChannel.SMS, destination)
