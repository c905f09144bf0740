# flycargo/core/flights/__init__.py
"""
Домен рейсов.
Сервис импортируется напрямую из flycargo.core.flights.service.
"""

from flycargo.core.flights.models import Flight, FlightCreateDTO
from flycargo.core.flights.repository import FlightRepository

__all__ = ["Flight", "FlightCreateDTO", "FlightRepository"]
