# flycargo/core/responses/models.py
"""
Модели откликов перевозчиков.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from flycargo.core.flights.models import Flight
from flycargo.core.users.models import User


class Response(BaseModel):
    """Отклик перевозчика на заказ через конкретный рейс."""

    id: int = Field(..., description="ID отклика")
    order_id: int = Field(..., description="ID заказа")
    flight_id: int = Field(..., description="ID рейса перевозчика")
    carrier_id: int = Field(..., description="ID перевозчика")
    message: str = Field(..., description="Сообщение перевозчика")
    price_offer: Optional[float] = Field(None, ge=0.0, description="Предложенная цена")
    is_accepted: bool = Field(False, description="Отклик принят")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        from_attributes = True


class ResponseDetails(BaseModel):
    """Отклик вместе с перевозчиком и рейсом (для заказчика)."""

    response: Response
    carrier: Optional[User] = None
    flight: Optional[Flight] = None
