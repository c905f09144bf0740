# flycargo/core/users/__init__.py
"""
Домен пользователей.
"""

from flycargo.core.users.models import OAuthProfile, User, UserCreateDTO
from flycargo.core.users.repository import UserRepository

__all__ = ["OAuthProfile", "User", "UserCreateDTO", "UserRepository"]
