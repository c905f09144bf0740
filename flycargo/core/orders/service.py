# flycargo/core/orders/service.py
"""
Сервис заказов.

Все изменения статуса идут через таблицу переходов из state_machine.
Каждая операция выполняется в одной транзакции региона пользователя.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flycargo.common.constants import EntityKind, FlightStatus, OrderStatus, TypeMsg
from flycargo.common.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateTransitionError,
    NotFoundError,
)
from flycargo.common.logger import log_info
from flycargo.core.flights.models import Flight
from flycargo.core.flights.state_machine import FlightEvent, next_status
from flycargo.core.identity.service import Actor
from flycargo.core.moderation.models import ModerationSubmitter
from flycargo.core.orders.models import Order, OrderCreateDTO, OrderUpdateDTO
from flycargo.core.orders.state_machine import (
    ALREADY_CONFIRMED,
    ActorRelation,
    OrderEvent,
    SideEffect,
    accept_relation,
    next_transition,
)
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.regions.store import StoreSession


@dataclass(frozen=True)
class DeliveryResult:
    """Итог отметки о доставке."""
    order: Order
    flight_completed: bool


async def require_order(s: StoreSession, order_id: int, *, for_update: bool = False) -> Order:
    order = await s.orders.get(order_id, for_update=for_update)
    if order is None:
        raise NotFoundError("order", order_id, region=s.region.value)
    return order


async def require_confirmed_flight(s: StoreSession, flight_id: int, owner_id: Optional[int] = None) -> Flight:
    """
    Рейс должен существовать, быть CONFIRMED и (если указан owner_id)
    принадлежать этому пользователю. Чужой рейс не раскрывается.
    """
    flight = await s.flights.get(flight_id)
    if flight is None or (owner_id is not None and flight.user_id != owner_id):
        raise NotFoundError("flight", flight_id, region=s.region.value)
    if flight.status != FlightStatus.CONFIRMED:
        raise InvalidArgumentError(
            "Рейс ещё не подтверждён",
            details={"flight_id": flight_id, "status": flight.status.value},
        )
    return flight


class OrderService:
    """Сервис заказов."""

    def __init__(self, registry: RegionStoreRegistry, moderation: ModerationSubmitter) -> None:
        """
        Args:
            registry: Регистр региональных хранилищ
            moderation: Канал модерации
        """
        self._registry = registry
        self._moderation = moderation

    async def create_order(self, actor: Actor, dto: OrderCreateDTO) -> Order:
        """
        Создаёт заказ.

        С указанным рейсом заказ сразу ждёт подтверждения перевозчика
        (PROCESSED_BY_CUSTOMER), без рейса ждёт откликов (RAW).

        Raises:
            InvalidArgumentError: Рейс не найден или не подтверждён
        """
        async with self._registry.get(actor.region).session() as s:
            status = OrderStatus.RAW
            if dto.flight_id is not None:
                flight = await s.flights.get(dto.flight_id)
                if flight is None or flight.status != FlightStatus.CONFIRMED:
                    raise InvalidArgumentError(
                        "Рейс не найден или не подтверждён",
                        details={"flight_id": dto.flight_id},
                    )
                status = OrderStatus.PROCESSED_BY_CUSTOMER
            order = await s.orders.create(actor.id, dto, status)

        await log_info(f"Заказ {order.id} создан в статусе {order.status.value}", type_msg=TypeMsg.INFO)
        await self._moderation.submit(EntityKind.ORDER, order.id, actor.region)
        return order

    async def get_order(self, actor: Actor, order_id: int) -> Order:
        """Заказ из региона пользователя."""
        async with self._registry.get(actor.region).session() as s:
            return await require_order(s, order_id)

    async def accept_order(self, actor: Actor, order_id: int, flight_id: Optional[int] = None) -> Order:
        """
        Принятие заказа.

        - владелец привязанного рейса подтверждает заказ PROCESSED_BY_CUSTOMER;
        - владелец заказа подтверждает заказ PROCESSED_BY_CARRIER
          (рейс и перевозчик остаются те, что уже записаны в заказе);
        - перевозчик с подтверждённым рейсом берёт заказ RAW.

        Args:
            actor: Пользователь
            order_id: ID заказа
            flight_id: Рейс перевозчика (только для заказа RAW)

        Raises:
            NotFoundError: Нет заказа или рейса перевозчика
            InvalidStateTransitionError: Заказ уже подтверждён или переход недопустим
            InvalidArgumentError: Рейс перевозчика не подтверждён
        """
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            linked = await s.flights.get(order.flight_id) if order.flight_id is not None else None

            relation = accept_relation(order, actor.id, linked, flight_id)
            transition = next_transition(OrderEvent.ACCEPT, order.status, relation)

            attach_id: Optional[int] = None
            if relation is ActorRelation.PROSPECTIVE_CARRIER:
                attach_id = (await require_confirmed_flight(s, flight_id, owner_id=actor.id)).id

            carrier_id = actor.id if SideEffect.ASSIGN_CARRIER in transition.effects else None
            if SideEffect.ATTACH_FLIGHT not in transition.effects:
                attach_id = None

            await s.orders.assign(order.id, transition.next_status, flight_id=attach_id, carrier_id=carrier_id)

        await log_info(
            f"Заказ {order.id}: {order.status.value} → {transition.next_status.value} ({relation.value})",
            type_msg=TypeMsg.INFO,
        )
        return order.model_copy(update={
            "status": transition.next_status,
            "flight_id": attach_id if attach_id is not None else order.flight_id,
            "carrier_id": carrier_id if carrier_id is not None else order.carrier_id,
        })

    async def edit_order(self, actor: Actor, order_id: int, dto: OrderUpdateDTO) -> Order:
        """
        Правка описания заказа владельцем.

        Подтверждённый заказ не правится: условия уже приняты перевозчиком.
        Изменённый заказ снова уходит в канал модерации.

        Raises:
            InvalidArgumentError: Нет ни одного изменения
            NotFoundError: Нет заказа в регионе пользователя
            ForbiddenError: Заказ чужой
            InvalidStateTransitionError: Заказ уже подтверждён
        """
        changes = dto.changes()
        if not changes:
            raise InvalidArgumentError("Нет изменений")

        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            if order.user_id != actor.id:
                raise ForbiddenError("Вы не можете редактировать этот заказ")
            if order.status is OrderStatus.CONFIRMED:
                raise InvalidStateTransitionError(ALREADY_CONFIRMED, details={"order_id": order_id})
            updated = await s.orders.update_details(order.id, changes)

        fields = ", ".join(sorted(changes))
        await log_info(f"Заказ {order_id} изменён: {fields}", type_msg=TypeMsg.INFO)
        await self._moderation.submit(EntityKind.ORDER, order_id, actor.region)
        return updated

    async def attach_to_flight(self, actor: Actor, order_id: int, flight_id: int) -> Order:
        """
        Заказчик сам выбирает подтверждённый рейс для заказа RAW.

        Raises:
            ForbiddenError: Заказ чужой
        """
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            if order.user_id != actor.id:
                raise ForbiddenError("Вы не можете редактировать этот заказ")

            transition = next_transition(OrderEvent.ATTACH_FLIGHT, order.status, ActorRelation.ORDER_OWNER)
            flight = await require_confirmed_flight(s, flight_id)
            await s.orders.assign(order.id, transition.next_status, flight_id=flight.id)

        return order.model_copy(update={"status": transition.next_status, "flight_id": flight.id})

    async def mark_delivered(self, actor: Actor, order_id: int) -> DeliveryResult:
        """
        Отмечает заказ доставленным.

        Строка рейса блокируется на время пересчёта, поэтому параллельные
        отметки по одному рейсу выполняются по очереди и переход рейса в
        COMPLETED делает ровно последняя из них.

        Raises:
            ForbiddenError: Пользователь не владелец рейса заказа
        """
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id)
            if order.flight_id is None:
                raise ForbiddenError("Вы не владелец этого рейса")

            flight = await s.flights.get(order.flight_id, for_update=True)
            if flight is None or flight.user_id != actor.id:
                raise ForbiddenError("Вы не владелец этого рейса")

            await s.orders.mark_done(order.id)
            undone = await s.orders.count_undone_on_flight(flight.id)

            completed = False
            if undone == 0:
                target = next_status(FlightEvent.ORDERS_COMPLETED, flight.status)
                if target != flight.status:
                    await s.flights.set_status(flight.id, target)
                    completed = True

        if completed:
            await log_info(f"Все заказы рейса {flight.id} доставлены, рейс завершён", type_msg=TypeMsg.INFO)

        return DeliveryResult(order=order.model_copy(update={"is_done": True}), flight_completed=completed)

    async def attach_media(self, actor: Actor, order_id: int, refs: list[str]) -> Order:
        """Добавляет ссылки на медиа к своему заказу и отправляет заказ на модерацию."""
        refs = [ref for ref in refs if ref]
        if not refs:
            raise InvalidArgumentError("Нет ссылок на медиа")

        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            if order.user_id != actor.id:
                raise ForbiddenError("Вы не владелец этого заказа")
            await s.orders.add_media(order.id, refs)

        await self._moderation.submit(EntityKind.ORDER, order.id, actor.region)
        return order.model_copy(update={"media_refs": [*order.media_refs, *refs]})

    # =========================================================================
    # ИЗБРАННОЕ
    # =========================================================================

    async def add_favorite_order(self, actor: Actor, order_id: int) -> None:
        """
        Добавляет заказ из региона пользователя в избранное.

        Raises:
            NotFoundError: Нет заказа
            ConflictError: Заказ уже в избранном
        """
        async with self._registry.get(actor.region).session() as s:
            await require_order(s, order_id)
            if not await s.orders.add_favorite(actor.id, order_id):
                raise ConflictError("Этот заказ уже в избранном", details={"order_id": order_id})

    async def get_favorite_orders(self, actor: Actor) -> list[Order]:
        async with self._registry.get(actor.region).session() as s:
            return await s.orders.list_favorites(actor.id)

    # =========================================================================
    # СПИСКИ
    # =========================================================================

    async def orders_by_customer(self, actor: Actor) -> list[Order]:
        async with self._registry.get(actor.region).session() as s:
            return await s.orders.list_by_customer(actor.id)

    async def orders_waiting_for_customer(self, actor: Actor) -> list[Order]:
        """Заказы пользователя, на которые откликнулись перевозчики."""
        async with self._registry.get(actor.region).session() as s:
            return await s.orders.list_by_customer(actor.id, OrderStatus.PROCESSED_BY_CARRIER)

    async def orders_by_carrier(self, actor: Actor) -> list[Order]:
        async with self._registry.get(actor.region).session() as s:
            return await s.orders.list_by_carrier(actor.id)

    async def orders_waiting_for_carrier(self, actor: Actor) -> list[Order]:
        """Заказы на рейсах перевозчика, ожидающие его подтверждения."""
        async with self._registry.get(actor.region).session() as s:
            return await s.orders.list_on_carrier_flights(actor.id, OrderStatus.PROCESSED_BY_CUSTOMER)

    async def archived_orders(self, actor: Actor) -> list[Order]:
        """Доставленные заказы, где пользователь заказчик или перевозчик."""
        async with self._registry.get(actor.region).session() as s:
            return await s.orders.list_done_for(actor.id)
