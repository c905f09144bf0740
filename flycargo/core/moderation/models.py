# flycargo/core/moderation/models.py
"""
Типы модерации: действие модератора, карточки объектов, счётчики.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Union

from flycargo.common.constants import EntityKind, Region
from flycargo.common.exceptions import InvalidArgumentError
from flycargo.core.flights.models import Flight
from flycargo.core.orders.models import Order
from flycargo.core.reviews.models import Review
from flycargo.core.users.models import User


class ModerationVerb(str, Enum):
    """Решение модератора."""
    APPROVE = "approve"
    REJECT = "reject"


# approve_<kind>_<id>_<region>
_ACTION_RE = re.compile(r"^(approve|reject)_(flight|order|review)_(\d+)_([A-Za-z]+)$")


@dataclass(frozen=True)
class ModerationAction:
    """Действие модератора над объектом."""

    verb: ModerationVerb
    kind: EntityKind
    entity_id: int
    region: Region

    def encode(self) -> str:
        """Идентификатор действия для кнопки канала модерации."""
        return f"{self.verb.value}_{self.kind.value}_{self.entity_id}_{self.region.value}"

    @classmethod
    def parse(cls, data: str) -> "ModerationAction":
        """
        Разбирает идентификатор действия.

        Raises:
            InvalidArgumentError: Строка не является действием модерации
        """
        match = _ACTION_RE.match(data or "")
        if match is None:
            raise InvalidArgumentError(f"Некорректное действие модерации: {data!r}")
        verb, kind, entity_id, region = match.groups()
        try:
            parsed_region = Region(region.upper())
        except ValueError:
            raise InvalidArgumentError(f"Неизвестный регион в действии модерации: {region!r}")
        return cls(ModerationVerb(verb), EntityKind(kind), int(entity_id), parsed_region)


# =============================================================================
# КАРТОЧКИ
# =============================================================================

@dataclass(frozen=True)
class FlightCard:
    """Рейс на модерации и его владелец."""
    flight: Flight
    owner: Optional[User]

    kind = EntityKind.FLIGHT

    @property
    def entity_id(self) -> int:
        return self.flight.id

    @property
    def region(self) -> Region:
        return self.flight.region


@dataclass(frozen=True)
class OrderCard:
    """Заказ на модерации и заказчик."""
    order: Order
    customer: Optional[User]

    kind = EntityKind.ORDER

    @property
    def entity_id(self) -> int:
        return self.order.id

    @property
    def region(self) -> Region:
        return self.order.region


@dataclass(frozen=True)
class ReviewCard:
    """Отзыв на модерации, его автор и адресат."""
    review: Review
    author: Optional[User]
    target: Optional[User]
    region: Region

    kind = EntityKind.REVIEW

    @property
    def entity_id(self) -> int:
        return self.review.id


ModerationCard = Union[FlightCard, OrderCard, ReviewCard]


@dataclass(frozen=True)
class PendingCounts:
    """Количество объектов, ожидающих модерации."""
    orders: int = 0
    flights: int = 0
    reviews: int = 0

    def __add__(self, other: "PendingCounts") -> "PendingCounts":
        return PendingCounts(
            orders=self.orders + other.orders,
            flights=self.flights + other.flights,
            reviews=self.reviews + other.reviews,
        )


class ModerationSubmitter(Protocol):
    """Отправка нового объекта в канал модерации."""

    async def submit(self, kind: EntityKind, entity_id: int, region: Region): ...
