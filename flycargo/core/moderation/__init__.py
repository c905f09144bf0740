# flycargo/core/moderation/__init__.py
"""
Модерация рейсов, заказов и отзывов.
"""

from flycargo.core.moderation.gateway import ModerationGateway
from flycargo.core.moderation.models import (
    FlightCard,
    ModerationAction,
    ModerationCard,
    ModerationSubmitter,
    ModerationVerb,
    OrderCard,
    PendingCounts,
    ReviewCard,
)

__all__ = [
    "FlightCard",
    "ModerationAction",
    "ModerationCard",
    "ModerationGateway",
    "ModerationSubmitter",
    "ModerationVerb",
    "OrderCard",
    "PendingCounts",
    "ReviewCard",
]
