# flycargo/core/flights/state_machine.py
"""
Машина состояний рейса.

Каждый переход рейса вызывается только своим источником:
модерация, проверка вылета, завершение заказов, полнота отзывов.
"""

from __future__ import annotations

from enum import Enum

from flycargo.common.constants import FlightStatus
from flycargo.common.exceptions import InvalidStateTransitionError


class FlightEvent(str, Enum):
    """События, меняющие статус рейса."""
    MODERATION_APPROVED = "moderation_approved"
    DEPARTURE_DETECTED = "departure_detected"
    ORDERS_COMPLETED = "orders_completed"
    REVIEWS_COMPLETED = "reviews_completed"


_S = FlightStatus
_E = FlightEvent

TRANSITIONS: dict[tuple[FlightEvent, FlightStatus], FlightStatus] = {
    (_E.MODERATION_APPROVED, _S.PENDING): _S.CONFIRMED,
    # повторное нажатие кнопки модератором
    (_E.MODERATION_APPROVED, _S.CONFIRMED): _S.CONFIRMED,

    (_E.DEPARTURE_DETECTED, _S.CONFIRMED): _S.IN_PROGRESS,

    (_E.ORDERS_COMPLETED, _S.CONFIRMED): _S.COMPLETED,
    (_E.ORDERS_COMPLETED, _S.IN_PROGRESS): _S.COMPLETED,
    (_E.ORDERS_COMPLETED, _S.COMPLETED): _S.COMPLETED,
    (_E.ORDERS_COMPLETED, _S.ARCHIVED): _S.ARCHIVED,

    (_E.REVIEWS_COMPLETED, _S.PENDING): _S.ARCHIVED,
    (_E.REVIEWS_COMPLETED, _S.CONFIRMED): _S.ARCHIVED,
    (_E.REVIEWS_COMPLETED, _S.IN_PROGRESS): _S.ARCHIVED,
    (_E.REVIEWS_COMPLETED, _S.COMPLETED): _S.ARCHIVED,
    (_E.REVIEWS_COMPLETED, _S.ARCHIVED): _S.ARCHIVED,
}


def next_status(event: FlightEvent, status: FlightStatus) -> FlightStatus:
    """
    Возвращает новый статус рейса.

    Raises:
        InvalidStateTransitionError: переход не предусмотрен
    """
    target = TRANSITIONS.get((event, status))
    if target is None:
        raise InvalidStateTransitionError(
            f"Недопустимый переход рейса из статуса {status.value}",
            details={"event": event.value, "status": status.value},
        )
    return target
