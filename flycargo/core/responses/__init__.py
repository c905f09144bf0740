# flycargo/core/responses/__init__.py
"""
Отклики перевозчиков.
"""

from flycargo.core.responses.models import Response, ResponseDetails
from flycargo.core.responses.repository import ResponseRepository

__all__ = ["Response", "ResponseDetails", "ResponseRepository"]
