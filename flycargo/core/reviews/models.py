# flycargo/core/reviews/models.py
"""
Модели отзывов.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from flycargo.common.constants import AccountKind


class Review(BaseModel):
    """Отзыв одного участника заказа о другом."""

    id: int = Field(..., description="ID отзыва")
    from_user_id: int = Field(..., description="Автор")
    to_user_id: int = Field(..., description="О ком отзыв")
    flight_id: int = Field(..., description="ID рейса")
    order_id: int = Field(..., description="ID заказа")
    rating: int = Field(..., ge=1, le=5, description="Оценка 1-5")
    comment: str = Field("", description="Комментарий")
    reviewer_kind: AccountKind = Field(..., description="Роль автора в заказе")
    is_moderated: bool = Field(False, description="Прошёл модерацию")
    is_disputed: bool = Field(False, description="Оспорен")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        from_attributes = True


class ReviewCreateDTO(BaseModel):
    """DTO для создания отзыва."""

    order_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    is_disputed: bool = False
