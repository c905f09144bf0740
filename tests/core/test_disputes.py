# tests/core/test_disputes.py
"""
Тесты споров по заказам.
"""

from __future__ import annotations

import pytest

from flycargo.common.constants import DisputeStatus, OrderStatus, Region
from flycargo.common.exceptions import ForbiddenError, NotFoundError
from flycargo.core.disputes.service import DisputeService


@pytest.fixture
def service(registry) -> DisputeService:
    return DisputeService(registry)


class TestDisputes:
    """Тесты открытия и закрытия спора."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("side", ["customer", "carrier"])
    async def test_participant_opens(self, service, seed, side) -> None:
        customer, carrier = seed.actor(), seed.actor()
        order = seed.order(customer, OrderStatus.CONFIRMED, flight=seed.flight(carrier), carrier=carrier)
        actor = customer if side == "customer" else carrier

        result = await service.open_dispute(actor, order.id)

        assert result.dispute_status is DisputeStatus.OPEN
        assert seed.get(Region.RU, "orders", order.id).dispute_status is DisputeStatus.OPEN

    @pytest.mark.asyncio
    async def test_stranger_cannot_open(self, service, seed) -> None:
        order = seed.order(seed.actor())

        with pytest.raises(ForbiddenError):
            await service.open_dispute(seed.actor(), order.id)

    @pytest.mark.asyncio
    async def test_close_with_result(self, service, seed) -> None:
        customer = seed.actor(Region.OTHER)
        order = seed.order(customer, dispute_status=DisputeStatus.OPEN)

        result = await service.close_dispute(order.id, Region.OTHER, "  Возврат средств ")

        assert result.dispute_status is DisputeStatus.RESOLVED
        assert result.dispute_result == "Возврат средств"
        stored = seed.get(Region.OTHER, "orders", order.id)
        assert (stored.dispute_status, stored.dispute_result) == (DisputeStatus.RESOLVED, "Возврат средств")

    @pytest.mark.asyncio
    async def test_close_keeps_previous_result(self, service, seed) -> None:
        order = seed.order(seed.actor(), dispute_status=DisputeStatus.OPEN, dispute_result="Частичный возврат")

        result = await service.close_dispute(order.id, Region.RU, "   ")

        assert result.dispute_result == "Частичный возврат"
        assert seed.get(Region.RU, "orders", order.id).dispute_result == "Частичный возврат"

    @pytest.mark.asyncio
    async def test_close_in_wrong_region(self, service, seed) -> None:
        order = seed.order(seed.actor(Region.RU))

        with pytest.raises(NotFoundError):
            await service.close_dispute(order.id, Region.OTHER)
