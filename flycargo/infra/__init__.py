# flycargo/infra/__init__.py
"""
Инфраструктурный слой.
PostgreSQL (по пулу на регион), Redis, RabbitMQ, Aviation Edge.
"""

from flycargo.infra.aviation import AviationEdgeClient
from flycargo.infra.database import DatabaseManager
from flycargo.infra.event_bus import DomainEvent, EventBus, EventTypes
from flycargo.infra.redis_client import RedisClient

__all__ = [
    "AviationEdgeClient",
    "DatabaseManager",
    "DomainEvent",
    "EventBus",
    "EventTypes",
    "RedisClient",
]
