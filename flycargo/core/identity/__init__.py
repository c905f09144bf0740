# flycargo/core/identity/__init__.py
"""
Аутентификация и поиск пользователя по регионам.
"""

from flycargo.core.identity.service import (
    Actor,
    IdentityResolver,
    RegionPolicy,
    TokenDecoder,
    random_final_region,
)

__all__ = [
    "Actor",
    "IdentityResolver",
    "RegionPolicy",
    "TokenDecoder",
    "random_final_region",
]
