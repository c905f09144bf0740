# flycargo/core/disputes/service.py
"""
Споры по заказам.
"""

from __future__ import annotations

from typing import Optional

from flycargo.common.constants import DisputeStatus, Region, TypeMsg
from flycargo.common.exceptions import ForbiddenError
from flycargo.common.logger import log_info
from flycargo.core.identity.service import Actor
from flycargo.core.orders.models import Order
from flycargo.core.orders.service import require_order
from flycargo.core.regions.registry import RegionStoreRegistry


class DisputeService:
    """Открытие и закрытие спора по заказу."""

    def __init__(self, registry: RegionStoreRegistry) -> None:
        self._registry = registry

    async def open_dispute(self, actor: Actor, order_id: int) -> Order:
        """
        Открывает спор. Доступно заказчику и назначенному перевозчику.

        Raises:
            NotFoundError: Нет заказа
            ForbiddenError: Пользователь не участник заказа
        """
        async with self._registry.get(actor.region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            if actor.id not in (order.user_id, order.carrier_id):
                raise ForbiddenError("Вы не участник этого заказа")
            await s.orders.set_dispute(order.id, DisputeStatus.OPEN)

        await log_info(f"Открыт спор по заказу {order_id}", type_msg=TypeMsg.INFO)
        return order.model_copy(update={"dispute_status": DisputeStatus.OPEN})

    async def close_dispute(self, order_id: int, region: Region, result: Optional[str] = None) -> Order:
        """
        Закрывает спор.

        Проверки прав здесь нет: вызывающий (чат модераторов) сам
        отвечает за то, кто может закрывать споры.
        """
        result = result.strip() if result else None
        async with self._registry.get(region).session() as s:
            order = await require_order(s, order_id, for_update=True)
            await s.orders.set_dispute(order.id, DisputeStatus.RESOLVED, result or None)

        await log_info(f"Спор по заказу {order_id} закрыт ({region.value})", type_msg=TypeMsg.INFO)
        return order.model_copy(update={
            "dispute_status": DisputeStatus.RESOLVED,
            "dispute_result": result or order.dispute_result,
        })
