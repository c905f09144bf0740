# flycargo/core/orders/models.py
"""
Модели данных заказов.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from flycargo.common.constants import DeliveryStage, DisputeStatus, OrderStatus, Region


class Order(BaseModel):
    """Модель заказа на доставку."""

    id: int = Field(..., description="ID заказа")
    user_id: int = Field(..., description="ID заказчика (владельца)")
    flight_id: Optional[int] = Field(None, description="ID рейса")
    carrier_id: Optional[int] = Field(None, description="ID перевозчика")

    name: str = Field(..., description="Что везём")
    description: str = Field("", description="Описание")
    departure: str = Field(..., description="Откуда")
    arrival: str = Field(..., description="Куда")
    price: float = Field(0.0, ge=0.0, description="Стоимость товара")
    reward: float = Field(0.0, ge=0.0, description="Вознаграждение перевозчику")
    weight: Optional[float] = Field(None, ge=0.0, description="Вес, кг")

    status: OrderStatus = Field(OrderStatus.RAW, description="Статус заказа")
    is_done: bool = Field(False, description="Доставлен")
    is_moderated: bool = Field(False, description="Прошёл модерацию")
    dispute_status: DisputeStatus = Field(DisputeStatus.NONE, description="Статус спора")
    dispute_result: Optional[str] = Field(None, description="Итог спора")
    delivery_stage: Optional[DeliveryStage] = Field(None, description="Последний подтверждённый этап передачи")
    media_refs: list[str] = Field(default_factory=list, description="Ссылки на медиа")

    region: Region = Field(..., description="Регион хранения")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        from_attributes = True


class OrderCreateDTO(BaseModel):
    """DTO для создания заказа."""

    name: str = Field(..., min_length=1)
    description: str = ""
    departure: str
    arrival: str
    price: float = Field(0.0, ge=0.0)
    reward: float = Field(0.0, ge=0.0)
    weight: Optional[float] = Field(None, ge=0.0)
    flight_id: Optional[int] = None


class OrderUpdateDTO(BaseModel):
    """Правка описания заказа владельцем. Рейс и статус так не меняются."""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    departure: Optional[str] = None
    arrival: Optional[str] = None
    price: Optional[float] = Field(None, ge=0.0)
    reward: Optional[float] = Field(None, ge=0.0)
    weight: Optional[float] = Field(None, ge=0.0)

    def changes(self) -> dict[str, object]:
        """Только явно переданные поля."""
        return self.model_dump(exclude_unset=True, exclude_none=True)
