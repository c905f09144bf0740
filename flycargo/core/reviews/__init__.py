# flycargo/core/reviews/__init__.py
"""
Отзывы.
"""

from flycargo.core.reviews.models import Review, ReviewCreateDTO
from flycargo.core.reviews.repository import ReviewRepository

__all__ = ["Review", "ReviewCreateDTO", "ReviewRepository"]
