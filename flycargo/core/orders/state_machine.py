# flycargo/core/orders/state_machine.py
"""
Машина состояний заказа.

Явная таблица (событие, текущий статус, отношение актора) → (новый статус,
побочные эффекты). Модуль не знает о хранилище: сервис определяет
отношение актора, спрашивает таблицу и применяет результат.
Любая комбинация, которой нет в таблице, даёт InvalidStateTransitionError.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from flycargo.common.constants import OrderStatus
from flycargo.common.exceptions import InvalidStateTransitionError
from flycargo.core.flights.models import Flight
from flycargo.core.orders.models import Order


class OrderEvent(str, Enum):
    """События, меняющие статус заказа."""
    ACCEPT = "accept"
    ATTACH_FLIGHT = "attach_flight"
    RESPONSE_RECEIVED = "response_received"
    RESPONSE_ACCEPTED = "response_accepted"
    RESPONSES_EXHAUSTED = "responses_exhausted"


class ActorRelation(str, Enum):
    """Отношение актора к заказу и его рейсу."""
    ORDER_OWNER = "order_owner"
    FLIGHT_OWNER = "flight_owner"
    PROSPECTIVE_CARRIER = "prospective_carrier"
    STRANGER = "stranger"
    # внутренние события (отклики) инициирует сам сервис
    SYSTEM = "system"


class SideEffect(str, Enum):
    """Что ещё нужно записать в заказ вместе со статусом."""
    ATTACH_FLIGHT = "attach_flight"
    ASSIGN_CARRIER = "assign_carrier"


@dataclass(frozen=True)
class Transition:
    next_status: OrderStatus
    effects: frozenset[SideEffect] = frozenset()


ALREADY_CONFIRMED = "Заказ уже подтверждён"

_S = OrderStatus
_R = ActorRelation
_E = OrderEvent

TRANSITIONS: dict[tuple[OrderEvent, OrderStatus, ActorRelation], Transition] = {
    # принятие заказа
    (_E.ACCEPT, _S.PROCESSED_BY_CUSTOMER, _R.FLIGHT_OWNER): Transition(
        _S.CONFIRMED, frozenset({SideEffect.ASSIGN_CARRIER}),
    ),
    (_E.ACCEPT, _S.PROCESSED_BY_CARRIER, _R.ORDER_OWNER): Transition(_S.CONFIRMED),
    (_E.ACCEPT, _S.RAW, _R.PROSPECTIVE_CARRIER): Transition(
        _S.PROCESSED_BY_CARRIER, frozenset({SideEffect.ATTACH_FLIGHT, SideEffect.ASSIGN_CARRIER}),
    ),
    # заказчик сам выбирает рейс
    (_E.ATTACH_FLIGHT, _S.RAW, _R.ORDER_OWNER): Transition(
        _S.PROCESSED_BY_CUSTOMER, frozenset({SideEffect.ATTACH_FLIGHT}),
    ),
    # отклики перевозчиков
    (_E.RESPONSE_RECEIVED, _S.RAW, _R.SYSTEM): Transition(_S.PROCESSED_BY_CARRIER),
    (_E.RESPONSE_RECEIVED, _S.PROCESSED_BY_CARRIER, _R.SYSTEM): Transition(_S.PROCESSED_BY_CARRIER),
    (_E.RESPONSE_RECEIVED, _S.PROCESSED_BY_CUSTOMER, _R.SYSTEM): Transition(_S.PROCESSED_BY_CUSTOMER),
    (_E.RESPONSE_ACCEPTED, _S.RAW, _R.ORDER_OWNER): Transition(
        _S.CONFIRMED, frozenset({SideEffect.ATTACH_FLIGHT, SideEffect.ASSIGN_CARRIER}),
    ),
    (_E.RESPONSE_ACCEPTED, _S.PROCESSED_BY_CARRIER, _R.ORDER_OWNER): Transition(
        _S.CONFIRMED, frozenset({SideEffect.ATTACH_FLIGHT, SideEffect.ASSIGN_CARRIER}),
    ),
    (_E.RESPONSE_ACCEPTED, _S.PROCESSED_BY_CUSTOMER, _R.ORDER_OWNER): Transition(
        _S.CONFIRMED, frozenset({SideEffect.ATTACH_FLIGHT, SideEffect.ASSIGN_CARRIER}),
    ),
    (_E.RESPONSES_EXHAUSTED, _S.PROCESSED_BY_CARRIER, _R.SYSTEM): Transition(_S.RAW),
    (_E.RESPONSES_EXHAUSTED, _S.PROCESSED_BY_CUSTOMER, _R.SYSTEM): Transition(_S.PROCESSED_BY_CUSTOMER),
    (_E.RESPONSES_EXHAUSTED, _S.RAW, _R.SYSTEM): Transition(_S.RAW),
}

# События, для которых CONFIRMED отвечает "уже подтверждён" любому актору
_CONFIRMED_IS_FINAL = {_E.ACCEPT, _E.ATTACH_FLIGHT, _E.RESPONSE_RECEIVED, _E.RESPONSE_ACCEPTED}


def next_transition(event: OrderEvent, status: OrderStatus, relation: ActorRelation) -> Transition:
    """
    Возвращает переход для события.

    Args:
        event: Событие
        status: Текущий статус заказа
        relation: Отношение актора к заказу

    Returns:
        Переход (новый статус и побочные эффекты)

    Raises:
        InvalidStateTransitionError: комбинации нет в таблице
    """
    if status is OrderStatus.CONFIRMED and event in _CONFIRMED_IS_FINAL:
        raise InvalidStateTransitionError(
            ALREADY_CONFIRMED,
            details={"event": event.value, "status": status.value},
        )

    transition = TRANSITIONS.get((event, status, relation))
    if transition is None:
        raise InvalidStateTransitionError(
            f"Недопустимый переход для заказа в статусе {status.value}",
            details={"event": event.value, "status": status.value, "relation": relation.value},
        )
    return transition


def accept_relation(
    order: Order,
    actor_id: int,
    linked_flight: Optional[Flight],
    supplied_flight_id: Optional[int],
) -> ActorRelation:
    """
    Определяет отношение актора для события ACCEPT.

    Владелец привязанного рейса важнее владельца заказа; перевозчик
    без привязки считается потенциальным, только если указал свой рейс.
    """
    if linked_flight is not None and linked_flight.user_id == actor_id:
        return ActorRelation.FLIGHT_OWNER
    if order.user_id == actor_id:
        return ActorRelation.ORDER_OWNER
    if supplied_flight_id is not None:
        return ActorRelation.PROSPECTIVE_CARRIER
    return ActorRelation.STRANGER
