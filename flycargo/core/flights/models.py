# flycargo/core/flights/models.py
"""
Модели данных рейсов.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from flycargo.common.constants import FlightStatus, Region


class Flight(BaseModel):
    """Модель рейса перевозчика."""

    id: int = Field(..., description="ID рейса")
    user_id: int = Field(..., description="ID перевозчика (владельца)")
    departure: str = Field(..., description="IATA код вылета")
    arrival: str = Field(..., description="IATA код прилёта")
    date: datetime = Field(..., description="Время вылета")
    description: str = Field("", description="Описание")
    document_ref: Optional[str] = Field(None, description="Ссылка на документ маршрута")
    iata_number: Optional[str] = Field(None, description="Номер рейса из расписания")
    status: FlightStatus = Field(FlightStatus.PENDING, description="Статус рейса")
    region: Region = Field(..., description="Регион хранения")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        from_attributes = True


class FlightCreateDTO(BaseModel):
    """DTO для создания рейса."""

    departure: str = Field(..., min_length=3, max_length=4)
    arrival: str = Field(..., min_length=3, max_length=4)
    date: datetime
    description: str = ""
    document_ref: Optional[str] = None

    @field_validator("departure", "arrival")
    @classmethod
    def normalize_iata(cls, v: str) -> str:
        """IATA коды храним в верхнем регистре."""
        return v.strip().upper()
