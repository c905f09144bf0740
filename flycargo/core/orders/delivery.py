# flycargo/core/orders/delivery.py
"""
Этапы передачи посылки подтверждённого заказа.

Каждый этап запрашивает его участник, код уходит ему на почту, этап
записывается только после ввода кода. Этапы идут строго по порядку.
"""

from __future__ import annotations

from typing import Optional

from flycargo.common.constants import (
    DELIVERY_CODE_DIGITS,
    AccountKind,
    DeliveryStage,
    NotificationChannel,
    OrderStatus,
    TypeMsg,
)
from flycargo.common.exceptions import (
    ConfirmationStoreUnavailableError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateTransitionError,
)
from flycargo.common.logger import log_info, log_warning
from flycargo.core.confirmation.store import ConfirmationCodeStore, delivery_stage_key
from flycargo.core.identity.service import Actor
from flycargo.core.notifications.senders import CodeSender, DispatchResult
from flycargo.core.orders.models import Order
from flycargo.core.orders.service import require_order
from flycargo.core.regions.registry import RegionStoreRegistry

STAGE_SEQUENCE: tuple[DeliveryStage, ...] = tuple(DeliveryStage)

STAGE_OWNER: dict[DeliveryStage, AccountKind] = {
    DeliveryStage.TRANSFERRED_BY_CUSTOMER: AccountKind.CUSTOMER,
    DeliveryStage.RECEIVED_BY_CARRIER: AccountKind.CARRIER,
    DeliveryStage.TRANSFERRED_BY_CARRIER: AccountKind.CARRIER,
    DeliveryStage.RECEIVED_BY_CUSTOMER: AccountKind.CUSTOMER,
}


def next_stage(current: Optional[DeliveryStage]) -> Optional[DeliveryStage]:
    """Следующий этап или None, если передача завершена."""
    if current is None:
        return STAGE_SEQUENCE[0]
    index = STAGE_SEQUENCE.index(current)
    return STAGE_SEQUENCE[index + 1] if index + 1 < len(STAGE_SEQUENCE) else None


def check_stage(order: Order, actor_id: int, stage: DeliveryStage) -> None:
    """
    Проверяет, что этап можно записать.

    Raises:
        InvalidStateTransitionError: Заказ не подтверждён или этап не по порядку
        ForbiddenError: Этап принадлежит другой стороне
    """
    if order.status != OrderStatus.CONFIRMED:
        raise InvalidStateTransitionError(
            "Этапы передачи доступны только для подтверждённого заказа",
            details={"status": order.status.value},
        )

    expected = next_stage(order.delivery_stage)
    if stage != expected:
        raise InvalidStateTransitionError(
            "Этап передачи не по порядку",
            details={"stage": stage.value, "expected": expected.value if expected else None},
        )

    owner_id = order.user_id if STAGE_OWNER[stage] is AccountKind.CUSTOMER else order.carrier_id
    if owner_id != actor_id:
        raise ForbiddenError("Вы не можете изменять статус этого заказа")


class DeliveryStageService:
    """Подтверждение этапов передачи кодом."""

    def __init__(
        self,
        registry: RegionStoreRegistry,
        codes: ConfirmationCodeStore,
        email_sender: CodeSender,
        code_ttl: int = 3600,
    ) -> None:
        self._registry = registry
        self._codes = codes
        self._email_sender = email_sender
        self._code_ttl = code_ttl

    async def request_stage(self, actor: Actor, order_id: int, stage: DeliveryStage) -> DispatchResult:
        """
        Выдаёт код подтверждения этапа и отправляет его на почту участника.

        Returns:
            Результат отправки кода
        """
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id)
        check_stage(order, actor.id, stage)

        code = await self._codes.issue(delivery_stage_key(order_id, stage), self._code_ttl, DELIVERY_CODE_DIGITS)

        email = actor.user.email
        if not email:
            return DispatchResult.failure(NotificationChannel.EMAIL, "", "У пользователя нет email")
        return await self._email_sender.send_verification_code(email, code)

    async def confirm_stage(self, actor: Actor, order_id: int, stage: DeliveryStage, code: str) -> Order:
        """
        Записывает этап после проверки кода.

        Код гасится только после фиксации этапа: если запись не удалась,
        тот же код можно ввести ещё раз.

        Raises:
            InvalidArgumentError: Неверный код
        """
        key = delivery_stage_key(order_id, stage)
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            check_stage(order, actor.id, stage)

            if not await self._codes.matches(key, code):
                raise InvalidArgumentError("Неверный код подтверждения")

            await s.orders.set_delivery_stage(order_id, stage)

        try:
            await self._codes.verify(key, code)
        except ConfirmationStoreUnavailableError:
            # этап уже записан, повторно его не подтвердить, код истечёт сам
            await log_warning(f"Код этапа {stage.value} заказа {order_id} не погашен")

        await log_info(f"Заказ {order_id}: этап передачи {stage.value}", type_msg=TypeMsg.INFO)
        return order.model_copy(update={"delivery_stage": stage})
