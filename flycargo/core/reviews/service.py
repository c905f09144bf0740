# flycargo/core/reviews/service.py
"""
Сервис отзывов и архивация рейса по полноте отзывов.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from flycargo.common.constants import AccountKind, EntityKind, TypeMsg
from flycargo.common.exceptions import ConflictError, ForbiddenError, InvalidArgumentError
from flycargo.common.logger import log_info
from flycargo.core.flights.state_machine import FlightEvent, next_status
from flycargo.core.identity.service import Actor
from flycargo.core.moderation.models import ModerationSubmitter
from flycargo.core.orders.models import Order
from flycargo.core.orders.service import require_order
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.reviews.models import Review, ReviewCreateDTO


@dataclass(frozen=True)
class ReviewResult:
    """Созданный отзыв и признак архивации рейса."""
    review: Review
    flight_archived: bool


def reviews_complete(orders: Iterable[Order], reviews: Iterable[Review]) -> bool:
    """
    У каждого заказа есть неоспоренный отзыв заказчика и неоспоренный
    отзыв перевозчика. Рейс без заказов полным не считается.
    """
    covered: set[tuple[int, AccountKind]] = {
        (r.order_id, r.reviewer_kind) for r in reviews if not r.is_disputed
    }
    order_ids = [o.id for o in orders]
    if not order_ids:
        return False
    return all(
        (order_id, AccountKind.CUSTOMER) in covered and (order_id, AccountKind.CARRIER) in covered
        for order_id in order_ids
    )


class ReviewService:
    """Сервис отзывов."""

    def __init__(self, registry: RegionStoreRegistry, moderation: ModerationSubmitter) -> None:
        self._registry = registry
        self._moderation = moderation

    async def create_review(self, actor: Actor, dto: ReviewCreateDTO) -> ReviewResult:
        """
        Оставляет отзыв по заказу.

        Заказчик пишет отзыв о владельце рейса, владелец рейса о заказчике.
        После записи рейс архивируется, если отзывы по всем его заказам
        собраны. Проверка идёт под блокировкой строки рейса.

        Raises:
            NotFoundError: Нет заказа
            InvalidArgumentError: У заказа нет рейса
            ForbiddenError: Пользователь не участник заказа
            ConflictError: Отзыв по заказу уже оставлен
        """
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, dto.order_id)
            if order.flight_id is None:
                raise InvalidArgumentError("У заказа нет рейса, отзыв оставить нельзя")

            flight = await s.flights.get(order.flight_id, for_update=True)
            if flight is None:
                raise InvalidArgumentError("Рейс заказа не найден")

            if actor.id == order.user_id:
                reviewer_kind, target_id = AccountKind.CUSTOMER, flight.user_id
            elif actor.id == flight.user_id:
                reviewer_kind, target_id = AccountKind.CARRIER, order.user_id
            else:
                raise ForbiddenError("Вы не можете оставлять отзыв на этот заказ")

            if await s.reviews.exists_for(order.id, actor.id):
                raise ConflictError("Вы уже оставили отзыв на этот заказ")

            review = await s.reviews.create(actor.id, target_id, flight.id, reviewer_kind, dto)

            orders = await s.orders.list_by_flight(flight.id)
            reviews = await s.reviews.list_for_flight(flight.id)
            archived = False
            if reviews_complete(orders, reviews):
                target = next_status(FlightEvent.REVIEWS_COMPLETED, flight.status)
                if target != flight.status:
                    await s.flights.set_status(flight.id, target)
                    archived = True

        if archived:
            await log_info(f"Рейс {flight.id} архивирован: отзывы по всем заказам собраны", type_msg=TypeMsg.INFO)

        await self._moderation.submit(EntityKind.REVIEW, review.id, actor.region)
        return ReviewResult(review=review, flight_archived=archived)
