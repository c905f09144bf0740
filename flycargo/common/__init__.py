# flycargo/common/__init__.py
"""
Общие утилиты, константы, ошибки и логгер.
"""

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import (
    get_logger,
    log_debug,
    log_degraded,
    log_error,
    log_info,
    log_warning,
)

__all__ = [
    "TypeMsg",
    "get_logger",
    "log_debug",
    "log_degraded",
    "log_error",
    "log_info",
    "log_warning",
]
