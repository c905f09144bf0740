# flycargo/worker/__init__.py
"""
Фоновые воркеры.
"""

from flycargo.worker.base import BaseWorker
from flycargo.worker.flight_check import FlightCheckRequest, FlightCheckWorker

__all__ = ["BaseWorker", "FlightCheckRequest", "FlightCheckWorker"]
