# flycargo/core/users/models.py
"""
Модели данных пользователей.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

from flycargo.common.constants import AccountKind, Region


class User(BaseModel):
    """Модель пользователя (живёт ровно в одном регионе)."""

    id: int = Field(..., description="ID пользователя, не пересекается между регионами")
    first_name: str = Field(..., description="Имя")
    last_name: str = Field("", description="Фамилия")
    email: Optional[str] = Field(None, description="Email")
    phone: Optional[str] = Field(None, description="Номер телефона")
    account_kind: AccountKind = Field(AccountKind.CUSTOMER, description="Тип аккаунта")

    is_email_verified: bool = Field(False, description="Email подтверждён")
    is_phone_verified: bool = Field(False, description="Телефон подтверждён")

    google_id: Optional[str] = Field(None, description="ID аккаунта Google")
    apple_id: Optional[str] = Field(None, description="ID аккаунта Apple")

    region: Region = Field(..., description="Домашний регион")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        from_attributes = True

    @property
    def full_name(self) -> str:
        """Полное имя пользователя."""
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name


class UserCreateDTO(BaseModel):
    """DTO для создания пользователя."""

    first_name: str
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    account_kind: AccountKind = AccountKind.CUSTOMER
    is_email_verified: bool = False
    is_phone_verified: bool = False
    google_id: Optional[str] = None
    apple_id: Optional[str] = None


class OAuthProfile(BaseModel):
    """Проверенный внешним провайдером профиль."""

    provider: Literal["google", "apple"]
    provider_id: str
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
