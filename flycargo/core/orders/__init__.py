# flycargo/core/orders/__init__.py
"""
Домен заказов.
Сервисы импортируются напрямую из flycargo.core.orders.service и .delivery.
"""

from flycargo.core.orders.models import Order, OrderCreateDTO
from flycargo.core.orders.repository import OrderRepository

__all__ = ["Order", "OrderCreateDTO", "OrderRepository"]
