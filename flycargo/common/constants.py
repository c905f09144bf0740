# flycargo/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Region(str, Enum):
    """Регионы хранения данных (шарды)."""
    PENDING = "PENDING"
    RU = "RU"
    OTHER = "OTHER"


class AccountKind(str, Enum):
    """Тип аккаунта пользователя."""
    CUSTOMER = "CUSTOMER"
    CARRIER = "CARRIER"
    ADMIN = "ADMIN"


class FlightStatus(str, Enum):
    """Статусы рейса."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class OrderStatus(str, Enum):
    """Статусы заказа."""
    RAW = "RAW"
    PROCESSED_BY_CUSTOMER = "PROCESSED_BY_CUSTOMER"
    PROCESSED_BY_CARRIER = "PROCESSED_BY_CARRIER"
    CONFIRMED = "CONFIRMED"


class DisputeStatus(str, Enum):
    """Статус спора по заказу."""
    NONE = "NONE"
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class DeliveryStage(str, Enum):
    """Этапы передачи посылки (по порядку)."""
    TRANSFERRED_BY_CUSTOMER = "TRANSFERRED_BY_CUSTOMER"
    RECEIVED_BY_CARRIER = "RECEIVED_BY_CARRIER"
    TRANSFERRED_BY_CARRIER = "TRANSFERRED_BY_CARRIER"
    RECEIVED_BY_CUSTOMER = "RECEIVED_BY_CUSTOMER"


class EntityKind(str, Enum):
    """Виды сущностей, проходящих модерацию."""
    FLIGHT = "flight"
    ORDER = "order"
    REVIEW = "review"


class NotificationChannel(str, Enum):
    """Каналы доставки уведомлений."""
    EMAIL = "email"
    SMS = "sms"
    TELEGRAM = "telegram"


# Порядок обхода шардов при поиске пользователя по id
REGION_PROBE_ORDER: tuple[Region, ...] = (Region.PENDING, Region.RU, Region.OTHER)

# Регионы, в которые может попасть подтверждённый пользователь
FINAL_REGIONS: tuple[Region, ...] = (Region.RU, Region.OTHER)

# Длина кодов подтверждения
VERIFICATION_CODE_DIGITS = 6
DELIVERY_CODE_DIGITS = 4

# ID пользователей не пересекаются между регионами:
# в базе региона id ≡ USER_ID_OFFSETS[region] (mod USER_ID_STRIDE)
USER_ID_STRIDE = len(Region)
USER_ID_OFFSETS: dict[Region, int] = {Region.PENDING: 1, Region.RU: 2, Region.OTHER: 3}
