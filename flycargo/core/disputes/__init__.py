# flycargo/core/disputes/__init__.py
"""
Споры по заказам.
"""

from flycargo.core.disputes.service import DisputeService

__all__ = ["DisputeService"]
