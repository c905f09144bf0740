# flycargo/container.py
"""
Контейнер зависимостей.

Все сервисы собираются один раз при старте процесса и получают
зависимости через конструктор.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from aiogram import Bot

from flycargo.bot.app import create_bot
from flycargo.bot.channel import ModerationChannel
from flycargo.common.constants import TypeMsg
from flycargo.common.logger import log_degraded, log_info, log_warning
from flycargo.config.loader import Settings, get_project_root
from flycargo.core.confirmation.store import ConfirmationCodeStore
from flycargo.core.disputes.service import DisputeService
from flycargo.core.flights.service import FlightService
from flycargo.core.identity.service import IdentityResolver, TokenDecoder
from flycargo.core.moderation.gateway import ModerationGateway
from flycargo.core.notifications.senders import EmailSender, SmsSender
from flycargo.core.orders.delivery import DeliveryStageService
from flycargo.core.orders.service import OrderService
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.responses.service import ResponseService
from flycargo.core.reviews.service import ReviewService
from flycargo.core.users.service import UserService
from flycargo.infra.aviation import AviationEdgeClient
from flycargo.infra.event_bus import EventBus
from flycargo.infra.redis_client import RedisClient

SCHEMA_PATH = "migrations/init.sql"


@dataclass
class Container:
    """Собранные сервисы одного процесса."""

    settings: Settings
    registry: RegionStoreRegistry
    redis: RedisClient
    event_bus: EventBus
    aviation: AviationEdgeClient
    bot: Optional[Bot]
    codes: ConfirmationCodeStore
    email_sender: EmailSender
    sms_sender: SmsSender
    gateway: ModerationGateway
    channel: ModerationChannel
    identity: IdentityResolver
    users: UserService
    flights: FlightService
    orders: OrderService
    delivery: DeliveryStageService
    responses: ResponseService
    reviews: ReviewService
    disputes: DisputeService

    async def startup(self, apply_schema: bool = True) -> None:
        """
        Подключает базы регионов, Redis и RabbitMQ.

        Args:
            apply_schema: Применить migrations/init.sql к каждому региону
        """
        await log_info("Инициализация инфраструктуры...", type_msg=TypeMsg.INFO)

        schema_sql = None
        if apply_schema:
            schema_file = get_project_root() / SCHEMA_PATH
            if schema_file.exists():
                schema_sql = schema_file.read_text(encoding="utf-8")
            else:
                await log_warning(f"Файл схемы {schema_file} не найден, миграции пропущены")

        await self.registry.connect(schema_sql)
        await self.redis.connect(self.settings.redis.url, self.settings.redis.REDIS_MAX_CONNECTIONS)
        await self.event_bus.connect(self.settings.rabbitmq.url, self.settings.rabbitmq.RABBITMQ_PREFETCH_COUNT)

        for component, healthy in (await self.health_check()).items():
            if not healthy:
                await log_degraded(component, "Компонент недоступен после старта")

        await log_info("Инфраструктура инициализирована", type_msg=TypeMsg.INFO)

    async def health_check(self) -> dict[str, bool]:
        """Состояние баз регионов и брокеров."""
        status = {
            f"postgres:{region.value}": healthy
            for region, healthy in (await self.registry.health_check()).items()
        }
        status["redis"] = await self.redis.health_check()
        status["rabbitmq"] = await self.event_bus.health_check()
        return status

    async def shutdown(self) -> None:
        """Закрывает все подключения."""
        await log_info("Закрытие подключений...", type_msg=TypeMsg.INFO)

        await self.event_bus.disconnect()
        await self.aviation.close()
        await self.redis.disconnect()
        await self.registry.disconnect()
        if self.bot is not None:
            await self.bot.session.close()

        await log_info("Подключения закрыты", type_msg=TypeMsg.INFO)


def build_container(settings: Settings) -> Container:
    """Собирает сервисы по настройкам. Подключения не открывает."""
    registry = RegionStoreRegistry.from_settings(settings.database)
    redis = RedisClient(namespace=settings.redis.REDIS_NAMESPACE)
    event_bus = EventBus(exchange_name=settings.rabbitmq.RABBITMQ_EXCHANGE)
    aviation = AviationEdgeClient(
        api_url=settings.aviation.AVIATION_EDGE_API_URL,
        api_key=settings.aviation.AVIATION_EDGE_API_KEY,
        redis=redis,
        cache_ttl=settings.redis_ttl.LIVE_FLIGHTS_CACHE_TTL,
        min_days_ahead=settings.aviation.SCHEDULE_MIN_DAYS_AHEAD,
        timeout=settings.aviation.AVIATION_TIMEOUT,
    )

    bot = create_bot(settings.telegram.BOT_TOKEN) if settings.telegram.BOT_TOKEN else None

    codes = ConfirmationCodeStore(redis)
    email_sender = EmailSender(settings.smtp)
    sms_sender = SmsSender(settings.sms)

    gateway = ModerationGateway(registry)
    channel = ModerationChannel(bot, settings.telegram.MODERATOR_CHAT_ID, gateway)

    return Container(
        settings=settings,
        registry=registry,
        redis=redis,
        event_bus=event_bus,
        aviation=aviation,
        bot=bot,
        codes=codes,
        email_sender=email_sender,
        sms_sender=sms_sender,
        gateway=gateway,
        channel=channel,
        identity=IdentityResolver(
            registry,
            TokenDecoder(settings.jwt.JWT_SECRET, settings.jwt.JWT_ALGORITHM),
        ),
        users=UserService(
            registry,
            codes,
            email_sender,
            sms_sender,
            email_code_ttl=settings.redis_ttl.EMAIL_CODE_TTL,
            phone_code_ttl=settings.redis_ttl.PHONE_CODE_TTL,
        ),
        flights=FlightService(
            registry,
            aviation,
            channel,
            event_bus,
            check_delay_minutes=settings.flight_check.FLIGHT_CHECK_DELAY_MINUTES,
        ),
        orders=OrderService(registry, channel),
        delivery=DeliveryStageService(
            registry,
            codes,
            email_sender,
            code_ttl=settings.redis_ttl.DELIVERY_CODE_TTL,
        ),
        responses=ResponseService(registry),
        reviews=ReviewService(registry, channel),
        disputes=DisputeService(registry),
    )
