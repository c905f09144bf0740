# flycargo/common/exceptions.py
"""
Иерархия бизнес-ошибок.

Каждая ошибка несёт машиночитаемый код и словарь деталей, чтобы внешний
слой (бот, API) мог сформировать ответ без разбора текста сообщения.
"""

from __future__ import annotations

from typing import Any


class MarketError(Exception):
    """Базовая ошибка доменного слоя."""

    code: str = "market_error"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Сериализует ошибку для логов и ответов."""
        return {"code": self.code, "message": self.message, "details": self.details}


class UnauthenticatedError(MarketError):
    """Учётные данные отсутствуют, повреждены или просрочены."""
    code = "unauthenticated"


class NotFoundError(MarketError):
    """Сущность не найдена в выбранном регионе."""
    code = "not_found"

    def __init__(self, entity: str, entity_id: Any, region: str | None = None) -> None:
        details: dict[str, Any] = {"entity": entity, "id": entity_id}
        if region is not None:
            details["region"] = region
        super().__init__(f"{entity} {entity_id} не найден", details=details)


class ForbiddenError(MarketError):
    """У пользователя нет нужного отношения к сущности."""
    code = "forbidden"


class InvalidArgumentError(MarketError):
    """Некорректные входные данные запроса."""
    code = "invalid_argument"


class InvalidStateTransitionError(MarketError):
    """Переход не предусмотрен для текущего состояния."""
    code = "invalid_state_transition"


class ConflictError(MarketError):
    """Повторная регистрация или дублирующая запись."""
    code = "conflict"


class ExternalServiceDegradedError(MarketError):
    """Внешний сервис недоступен или ответил ошибкой."""
    code = "external_service_degraded"
    retryable: bool = False

    def __init__(self, service: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details={"service": service, **(details or {})})
        self.service = service


class ConfirmationStoreUnavailableError(ExternalServiceDegradedError):
    """Хранилище кодов подтверждения недоступно."""
    code = "confirmation_store_unavailable"

    def __init__(self, message: str = "Хранилище кодов подтверждения недоступно") -> None:
        super().__init__("confirmation_store", message)


class FlightNotAirborneError(ExternalServiceDegradedError):
    """Рейс ещё не найден среди летящих, проверку нужно повторить."""
    code = "flight_not_airborne"
    retryable = True

    def __init__(self, flight_id: int) -> None:
        super().__init__(
            "live_flights",
            f"Рейс {flight_id} не найден в живых данных, будет повтор",
            details={"flight_id": flight_id},
        )
        self.flight_id = flight_id


class RegionUnavailableError(ExternalServiceDegradedError):
    """База региона не отвечает."""
    code = "region_unavailable"
    retryable = True

    def __init__(self, *regions: str) -> None:
        super().__init__(
            "postgres",
            f"Недоступны базы регионов: {', '.join(regions)}",
            details={"regions": list(regions)},
        )
        self.regions = regions
