# flycargo/core/regions/__init__.py
"""
Региональные хранилища и их регистр.
"""

from flycargo.core.regions.registry import RegionStoreRegistry, region_for_tag
from flycargo.core.regions.store import RegionStore, StoreHandle, StoreSession

__all__ = [
    "RegionStore",
    "RegionStoreRegistry",
    "StoreHandle",
    "StoreSession",
    "region_for_tag",
]
