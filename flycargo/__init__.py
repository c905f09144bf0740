# flycargo/__init__.py
"""
Ядро маркетплейса попутной доставки посылок.
"""

__version__ = "0.1.0"
