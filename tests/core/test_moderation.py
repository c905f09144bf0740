# tests/core/test_moderation.py
"""
Тесты очередей модерации и решений модератора.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from flycargo.common.constants import EntityKind, FlightStatus, OrderStatus, Region
from flycargo.common.exceptions import InvalidArgumentError, InvalidStateTransitionError, NotFoundError
from flycargo.core.moderation.gateway import ModerationGateway
from flycargo.core.moderation.models import (
    FlightCard,
    ModerationAction,
    ModerationVerb,
    OrderCard,
    PendingCounts,
    ReviewCard,
)
from flycargo.core.reviews.models import Review


@pytest.fixture
def gateway(registry) -> ModerationGateway:
    return ModerationGateway(registry)


def _seed_review(seed, region: Region = Region.RU) -> Review:
    customer, carrier = seed.actor(region), seed.actor(region)
    flight = seed.flight(carrier)
    order = seed.order(customer, OrderStatus.CONFIRMED, flight=flight, carrier=carrier, is_moderated=True)
    store = seed._stores[region]
    review = Review(
        id=store.next_id(),
        from_user_id=customer.id,
        to_user_id=carrier.id,
        flight_id=flight.id,
        order_id=order.id,
        rating=5,
        reviewer_kind="CUSTOMER",
    )
    store.tables["reviews"][review.id] = review
    return review


class TestModerationAction:
    """Тесты кодирования действий модератора."""

    def test_encode(self) -> None:
        action = ModerationAction(ModerationVerb.APPROVE, EntityKind.FLIGHT, 42, Region.OTHER)

        assert action.encode() == "approve_flight_42_OTHER"

    def test_parse(self) -> None:
        action = ModerationAction.parse("reject_review_7_RU")

        assert action == ModerationAction(ModerationVerb.REJECT, EntityKind.REVIEW, 7, Region.RU)

    def test_parse_region_case_insensitive(self) -> None:
        assert ModerationAction.parse("approve_order_1_other").region is Region.OTHER

    @pytest.mark.parametrize("data", [
        "",
        "approve_order_1",
        "delete_order_1_RU",
        "approve_user_1_RU",
        "approve_order_x_RU",
        "approve_order_1_MARS",
    ])
    def test_parse_invalid(self, data: str) -> None:
        with pytest.raises(InvalidArgumentError):
            ModerationAction.parse(data)


class TestQueues:
    """Тесты очередей модерации."""

    @pytest.mark.asyncio
    async def test_pending_across_regions(self, gateway, seed) -> None:
        ru_owner = seed.actor(Region.RU, first_name="Ру")
        other_owner = seed.actor(Region.OTHER, first_name="Другой")
        ru_flight = seed.flight(ru_owner, status=FlightStatus.PENDING)
        other_flight = seed.flight(other_owner, status=FlightStatus.PENDING)
        seed.flight(ru_owner)

        cards = await gateway.pending(EntityKind.FLIGHT)

        assert all(isinstance(c, FlightCard) for c in cards)
        assert {(c.region, c.entity_id) for c in cards} == {
            (Region.RU, ru_flight.id), (Region.OTHER, other_flight.id),
        }
        assert {c.owner.first_name for c in cards} == {"Ру", "Другой"}

    @pytest.mark.asyncio
    async def test_pending_orders_and_reviews(self, gateway, seed) -> None:
        customer = seed.actor()
        order = seed.order(customer)
        review = _seed_review(seed)

        orders = await gateway.pending(EntityKind.ORDER)
        reviews = await gateway.pending(EntityKind.REVIEW)

        assert [c.entity_id for c in orders] == [order.id]
        assert isinstance(orders[0], OrderCard) and orders[0].customer.id == customer.id
        assert [c.entity_id for c in reviews] == [review.id]
        assert isinstance(reviews[0], ReviewCard) and reviews[0].author.id == review.from_user_id

    @pytest.mark.asyncio
    async def test_counts(self, gateway, seed) -> None:
        seed.order(seed.actor(Region.RU))
        seed.order(seed.actor(Region.OTHER))
        seed.flight(seed.actor(Region.OTHER), status=FlightStatus.PENDING)
        _seed_review(seed, Region.OTHER)

        assert await gateway.pending_counts() == PendingCounts(orders=2, flights=1, reviews=1)

    @pytest.mark.asyncio
    async def test_pending_skips_dead_region(self, gateway, seed, stores) -> None:
        ru_order = seed.order(seed.actor(Region.RU))
        seed.order(seed.actor(Region.OTHER))
        stores[Region.OTHER].fail_on["orders.list_pending_moderation"] = OSError("no route to host")

        with patch("flycargo.core.moderation.gateway.log_degraded", new_callable=AsyncMock) as mock_degraded:
            cards = await gateway.pending(EntityKind.ORDER)

        assert [(c.region, c.entity_id) for c in cards] == [(Region.RU, ru_order.id)]
        assert mock_degraded.await_args.kwargs["extra"] == {"region": "OTHER"}

    @pytest.mark.asyncio
    async def test_counts_skip_dead_region(self, gateway, seed, stores) -> None:
        seed.order(seed.actor(Region.RU))
        seed.flight(seed.actor(Region.PENDING), status=FlightStatus.PENDING)
        stores[Region.PENDING].fail_on["orders.list_pending_moderation"] = ConnectionResetError("reset")

        with patch("flycargo.core.moderation.gateway.log_degraded", new_callable=AsyncMock):
            counts = await gateway.pending_counts()

        assert counts == PendingCounts(orders=1, flights=0, reviews=0)

    @pytest.mark.asyncio
    async def test_card_missing(self, gateway) -> None:
        assert await gateway.card(EntityKind.ORDER, 5, Region.RU) is None


class TestDecisions:
    """Тесты решений модератора."""

    @pytest.mark.asyncio
    async def test_approve_flight(self, gateway, seed) -> None:
        flight = seed.flight(seed.actor(Region.OTHER), status=FlightStatus.PENDING)

        await gateway.apply(ModerationAction(ModerationVerb.APPROVE, EntityKind.FLIGHT, flight.id, Region.OTHER))

        assert seed.get(Region.OTHER, "flights", flight.id).status is FlightStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_approve_flight_twice(self, gateway, seed) -> None:
        flight = seed.flight(seed.actor())

        await gateway.approve(EntityKind.FLIGHT, flight.id, Region.RU)

        assert seed.get(Region.RU, "flights", flight.id).status is FlightStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_approve_departed_flight(self, gateway, seed) -> None:
        flight = seed.flight(seed.actor(), status=FlightStatus.IN_PROGRESS)

        with pytest.raises(InvalidStateTransitionError):
            await gateway.approve(EntityKind.FLIGHT, flight.id, Region.RU)

    @pytest.mark.asyncio
    async def test_approve_order_and_review(self, gateway, seed) -> None:
        order = seed.order(seed.actor())
        review = _seed_review(seed)

        await gateway.approve(EntityKind.ORDER, order.id, Region.RU)
        await gateway.approve(EntityKind.REVIEW, review.id, Region.RU)

        assert seed.get(Region.RU, "orders", order.id).is_moderated is True
        assert seed.get(Region.RU, "reviews", review.id).is_moderated is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(EntityKind))
    async def test_approve_missing(self, gateway, kind) -> None:
        with pytest.raises(NotFoundError):
            await gateway.approve(kind, 99, Region.RU)

    @pytest.mark.asyncio
    async def test_reject_deletes(self, gateway, seed) -> None:
        order = seed.order(seed.actor(Region.OTHER))

        await gateway.apply(ModerationAction(ModerationVerb.REJECT, EntityKind.ORDER, order.id, Region.OTHER))

        assert seed.get(Region.OTHER, "orders", order.id) is None

    @pytest.mark.asyncio
    async def test_reject_uses_given_region(self, gateway, seed) -> None:
        order = seed.order(seed.actor(Region.RU))

        with pytest.raises(NotFoundError):
            await gateway.reject(EntityKind.ORDER, order.id, Region.OTHER)
        assert seed.get(Region.RU, "orders", order.id) is not None
