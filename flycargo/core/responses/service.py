# flycargo/core/responses/service.py
"""
Отклики перевозчиков на заказы.

Принятие отклика и подтверждение заказа выполняются в одной транзакции:
либо записаны оба изменения, либо ни одного.
"""

from __future__ import annotations

from typing import Optional

from flycargo.common.constants import FlightStatus, OrderStatus, Region, TypeMsg
from flycargo.common.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateTransitionError,
    NotFoundError,
)
from flycargo.common.logger import log_info
from flycargo.core.identity.service import Actor
from flycargo.core.orders.models import Order
from flycargo.core.orders.service import require_order
from flycargo.core.orders.state_machine import ActorRelation, OrderEvent, next_transition
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.responses.models import Response, ResponseDetails


class ResponseService:
    """Сервис откликов."""

    def __init__(self, registry: RegionStoreRegistry) -> None:
        self._registry = registry

    async def create_response(
        self,
        actor: Actor,
        order_id: int,
        flight_id: int,
        message: str,
        price_offer: Optional[float] = None,
        order_region: Optional[Region] = None,
    ) -> Response:
        """
        Перевозчик откликается на заказ своим подтверждённым рейсом.

        Первый отклик переводит заказ RAW в PROCESSED_BY_CARRIER,
        последующие статус не меняют.

        Args:
            actor: Перевозчик
            order_id: ID заказа
            flight_id: ID рейса перевозчика
            message: Сообщение (обязательно)
            price_offer: Предложенная цена
            order_region: Регион заказа, если известен вызывающему

        Raises:
            InvalidArgumentError: Пустое сообщение, чужой регион, рейс не подтверждён
            NotFoundError: Нет заказа или рейс не принадлежит перевозчику
            InvalidStateTransitionError: Заказ уже подтверждён
        """
        message = (message or "").strip()
        if not message:
            raise InvalidArgumentError("Сообщение обязательно")
        if order_region is not None and order_region != actor.region:
            raise InvalidArgumentError("Нельзя откликаться на заказ из другого региона")

        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)

            flight = await s.flights.get(flight_id)
            if flight is None or flight.user_id != actor.id:
                raise NotFoundError("flight", flight_id, region=actor.region.value)
            if flight.status != FlightStatus.CONFIRMED:
                raise InvalidArgumentError(
                    "Можно откликаться только подтверждёнными рейсами",
                    details={"flight_id": flight_id, "status": flight.status.value},
                )

            transition = next_transition(OrderEvent.RESPONSE_RECEIVED, order.status, ActorRelation.SYSTEM)
            existing = await s.responses.count_for_order(order.id)

            response = await s.responses.create(order.id, flight.id, actor.id, message, price_offer)

            if existing == 0 and transition.next_status != order.status:
                await s.orders.set_status_if(order.id, order.status, transition.next_status)

        await log_info(f"Отклик {response.id} на заказ {order_id} от {actor.id}", type_msg=TypeMsg.INFO)
        return response

    async def accept_response(self, actor: Actor, response_id: int) -> Order:
        """
        Владелец заказа принимает отклик.

        Отклик помечается принятым условным обновлением, поэтому из
        параллельных запросов успешен ровно один.

        Raises:
            NotFoundError: Нет отклика или заказа
            ForbiddenError: Пользователь не владелец заказа
            InvalidStateTransitionError: Заказ уже подтверждён или отклик уже принят
        """
        async with self._registry.get(actor.region).session() as s:
            response = await s.responses.get(response_id)
            if response is None:
                raise NotFoundError("response", response_id, region=actor.region.value)

            order = await require_order(s, response.order_id, for_update=True)
            if order.user_id != actor.id:
                raise ForbiddenError("Вы не владелец заказа")

            transition = next_transition(OrderEvent.RESPONSE_ACCEPTED, order.status, ActorRelation.ORDER_OWNER)

            if not await s.responses.mark_accepted(response.id):
                raise InvalidStateTransitionError("Отклик уже принят", details={"response_id": response.id})

            await s.orders.assign(
                order.id,
                transition.next_status,
                flight_id=response.flight_id,
                carrier_id=response.carrier_id,
            )

        await log_info(f"Отклик {response_id} принят, заказ {order.id} подтверждён", type_msg=TypeMsg.INFO)
        return order.model_copy(update={
            "status": transition.next_status,
            "flight_id": response.flight_id,
            "carrier_id": response.carrier_id,
        })

    async def reject_response(self, actor: Actor, response_id: int) -> Order:
        """
        Владелец заказа отклоняет (удаляет) отклик.
        Если откликов не осталось, заказ PROCESSED_BY_CARRIER возвращается в RAW.

        Raises:
            InvalidStateTransitionError: Отклик уже принят
        """
        async with self._registry.get(actor.region).session() as s:
            response = await s.responses.get(response_id)
            if response is None:
                raise NotFoundError("response", response_id, region=actor.region.value)

            order = await require_order(s, response.order_id, for_update=True)
            if order.user_id != actor.id:
                raise ForbiddenError("Вы не владелец заказа")
            if response.is_accepted:
                raise InvalidStateTransitionError("Принятый отклик нельзя отклонить")

            await s.responses.delete(response.id)
            remaining = await s.responses.count_for_order(order.id)

            status = order.status
            if remaining == 0 and order.status != OrderStatus.CONFIRMED:
                transition = next_transition(OrderEvent.RESPONSES_EXHAUSTED, order.status, ActorRelation.SYSTEM)
                if transition.next_status != order.status:
                    await s.orders.set_status_if(order.id, order.status, transition.next_status)
                    status = transition.next_status

        await log_info(
            f"Отклик {response_id} отклонён, осталось {remaining}, заказ {order.id} в {status.value}",
            type_msg=TypeMsg.DEBUG,
        )
        return order.model_copy(update={"status": status})

    async def responses_for_order(self, actor: Actor, order_id: int) -> list[ResponseDetails]:
        """Отклики на заказ вместе с перевозчиками и рейсами (для владельца заказа)."""
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id)
            if order.user_id != actor.id:
                raise ForbiddenError("Вы не владелец заказа")

            responses = await s.responses.list_for_order(order.id)
            carriers = await s.users.get_many(r.carrier_id for r in responses)
            flights = {}
            for flight_id in {r.flight_id for r in responses}:
                flights[flight_id] = await s.flights.get(flight_id)

        return [
            ResponseDetails(response=r, carrier=carriers.get(r.carrier_id), flight=flights.get(r.flight_id))
            for r in responses
        ]
