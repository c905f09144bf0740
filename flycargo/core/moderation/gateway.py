# flycargo/core/moderation/gateway.py
"""
Очереди модерации и применение решений модератора.

Вид объекта закрытый: flight, order, review. Ветвление по нему
исчерпывающее, новый вид без ветки в approve/reject не пройдёт проверку
типов (assert_never).
"""

from __future__ import annotations

from typing import Optional, assert_never

from flycargo.common.constants import EntityKind, FlightStatus, Region, TypeMsg
from flycargo.common.exceptions import NotFoundError, RegionUnavailableError
from flycargo.common.logger import log_degraded, log_info
from flycargo.core.flights.state_machine import FlightEvent, next_status
from flycargo.core.moderation.models import (
    FlightCard,
    ModerationAction,
    ModerationCard,
    ModerationVerb,
    OrderCard,
    PendingCounts,
    ReviewCard,
)
from flycargo.core.regions.registry import RegionStoreRegistry
from flycargo.core.regions.store import StoreSession


async def _skip_region(region: Region, what: str) -> None:
    await log_degraded(
        "postgres",
        f"Регион {region.value} пропущен: {what}",
        extra={"region": region.value},
    )


class ModerationGateway:
    """Очереди модерации по регионам и решения модератора."""

    def __init__(self, registry: RegionStoreRegistry) -> None:
        self._registry = registry

    # =========================================================================
    # ОЧЕРЕДИ
    # =========================================================================

    async def pending_flights(self, region: Region) -> list[FlightCard]:
        """Рейсы в статусе PENDING с владельцами."""
        async with self._registry.get(region).session() as s:
            flights = await s.flights.list_by_status(FlightStatus.PENDING)
            users = await s.users.get_many(f.user_id for f in flights)
        return [FlightCard(flight=f, owner=users.get(f.user_id)) for f in flights]

    async def pending_orders(self, region: Region) -> list[OrderCard]:
        """Непромодерированные заказы с заказчиками."""
        async with self._registry.get(region).session() as s:
            orders = await s.orders.list_pending_moderation()
            users = await s.users.get_many(o.user_id for o in orders)
        return [OrderCard(order=o, customer=users.get(o.user_id)) for o in orders]

    async def pending_reviews(self, region: Region) -> list[ReviewCard]:
        """Непромодерированные отзывы с автором и адресатом."""
        async with self._registry.get(region).session() as s:
            reviews = await s.reviews.list_pending_moderation()
            users = await s.users.get_many(
                uid for r in reviews for uid in (r.from_user_id, r.to_user_id)
            )
        return [
            ReviewCard(review=r, author=users.get(r.from_user_id), target=users.get(r.to_user_id), region=region)
            for r in reviews
        ]

    async def pending(self, kind: EntityKind) -> list[ModerationCard]:
        """Очередь одного вида по всем регионам. Недоступный регион пропускается."""
        cards: list[ModerationCard] = []
        for store in self._registry.in_probe_order():
            try:
                match kind:
                    case EntityKind.FLIGHT:
                        cards.extend(await self.pending_flights(store.region))
                    case EntityKind.ORDER:
                        cards.extend(await self.pending_orders(store.region))
                    case EntityKind.REVIEW:
                        cards.extend(await self.pending_reviews(store.region))
                    case _:
                        assert_never(kind)
            except RegionUnavailableError:
                await _skip_region(store.region, f"очередь {kind.value}")
        return cards

    async def pending_counts(self) -> PendingCounts:
        """Сколько объектов ждёт модерации во всех регионах."""
        total = PendingCounts()
        for store in self._registry.in_probe_order():
            try:
                async with store.session() as s:
                    total = total + PendingCounts(
                        orders=len(await s.orders.list_pending_moderation()),
                        flights=len(await s.flights.list_by_status(FlightStatus.PENDING)),
                        reviews=len(await s.reviews.list_pending_moderation()),
                    )
            except RegionUnavailableError:
                await _skip_region(store.region, "счётчики очередей")
        return total

    async def card(self, kind: EntityKind, entity_id: int, region: Region) -> Optional[ModerationCard]:
        """Карточка одного объекта или None, если его уже нет."""
        async with self._registry.get(region).session() as s:
            match kind:
                case EntityKind.FLIGHT:
                    flight = await s.flights.get(entity_id)
                    if flight is None:
                        return None
                    return FlightCard(flight=flight, owner=await s.users.get_by_id(flight.user_id))
                case EntityKind.ORDER:
                    order = await s.orders.get(entity_id)
                    if order is None:
                        return None
                    return OrderCard(order=order, customer=await s.users.get_by_id(order.user_id))
                case EntityKind.REVIEW:
                    review = await s.reviews.get(entity_id)
                    if review is None:
                        return None
                    users = await s.users.get_many([review.from_user_id, review.to_user_id])
                    return ReviewCard(
                        review=review,
                        author=users.get(review.from_user_id),
                        target=users.get(review.to_user_id),
                        region=region,
                    )
                case _:
                    assert_never(kind)

    # =========================================================================
    # РЕШЕНИЯ
    # =========================================================================

    async def approve(self, kind: EntityKind, entity_id: int, region: Region) -> None:
        """
        Одобряет объект: рейс → CONFIRMED, заказ и отзыв → is_moderated.

        Raises:
            NotFoundError: Объекта нет в регионе
            InvalidStateTransitionError: Рейс уже не ожидает модерации
        """
        async with self._registry.get(region).session() as s:
            match kind:
                case EntityKind.FLIGHT:
                    await self._approve_flight(s, entity_id)
                case EntityKind.ORDER:
                    if not await s.orders.set_moderated(entity_id):
                        raise NotFoundError("order", entity_id, region=region.value)
                case EntityKind.REVIEW:
                    if not await s.reviews.set_moderated(entity_id):
                        raise NotFoundError("review", entity_id, region=region.value)
                case _:
                    assert_never(kind)

        await log_info(f"{kind.value} {entity_id} одобрен ({region.value})", type_msg=TypeMsg.INFO)

    @staticmethod
    async def _approve_flight(s: StoreSession, flight_id: int) -> None:
        flight = await s.flights.get(flight_id, for_update=True)
        if flight is None:
            raise NotFoundError("flight", flight_id, region=s.region.value)
        target = next_status(FlightEvent.MODERATION_APPROVED, flight.status)
        if target != flight.status:
            await s.flights.set_status(flight_id, target)

    async def reject(self, kind: EntityKind, entity_id: int, region: Region) -> None:
        """
        Отклоняет объект (удаляет его).

        Raises:
            NotFoundError: Объекта нет в регионе
        """
        async with self._registry.get(region).session() as s:
            match kind:
                case EntityKind.FLIGHT:
                    deleted = await s.flights.delete(entity_id)
                case EntityKind.ORDER:
                    deleted = await s.orders.delete(entity_id)
                case EntityKind.REVIEW:
                    deleted = await s.reviews.delete(entity_id)
                case _:
                    assert_never(kind)
            if not deleted:
                raise NotFoundError(kind.value, entity_id, region=region.value)

        await log_info(f"{kind.value} {entity_id} отклонён и удалён ({region.value})", type_msg=TypeMsg.INFO)

    async def apply(self, action: ModerationAction) -> None:
        """Применяет действие модератора из канала."""
        match action.verb:
            case ModerationVerb.APPROVE:
                await self.approve(action.kind, action.entity_id, action.region)
            case ModerationVerb.REJECT:
                await self.reject(action.kind, action.entity_id, action.region)
            case _:
                assert_never(action.verb)
