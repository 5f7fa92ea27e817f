"""Domain error codes for the lifepass module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    PRICING_UNAVAILABLE = "PRICING_UNAVAILABLE"
    LINE_INELIGIBLE = "LINE_INELIGIBLE"
    DEVICE_UNAVAILABLE = "DEVICE_UNAVAILABLE"
    RESORT_NOT_FOUND = "RESORT_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    DEVICE_NOT_FOUND = "DEVICE_NOT_FOUND"
    KIOSK_NOT_FOUND = "KIOSK_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"


@dataclass(eq=False)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class PricingUnavailableError(DomainError):
    """Raised when the pricing authority cannot be reached or answers garbage."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.PRICING_UNAVAILABLE,
            message="Pricing authority unavailable",
        )
        self.reason = reason


class LineIneligibleError(DomainError):
    """A line item was rejected by a business rule. Never retried."""

    def __init__(self, reason: str) -> None:
        super().__init__(code=ErrorCode.LINE_INELIGIBLE, message=reason)
        self.reason = reason


class DeviceUnavailableError(DomainError):
    """Raised when a device or slot is occupied, faulty or already claimed."""

    def __init__(self, device: str, status: str) -> None:
        super().__init__(
            code=ErrorCode.DEVICE_UNAVAILABLE,
            message=f"Device is not available ({status})",
        )
        self.device = device
        self.status = status


class NotFoundError(DomainError):
    """Base for lookups of resort-scoped entities that do not exist."""


class ResortNotFoundError(NotFoundError):
    def __init__(self, resort_id: int) -> None:
        super().__init__(code=ErrorCode.RESORT_NOT_FOUND, message="Resort not found")
        self.resort_id = resort_id


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int) -> None:
        super().__init__(code=ErrorCode.ORDER_NOT_FOUND, message="Order not found")
        self.order_id = order_id


class DeviceNotFoundError(NotFoundError):
    def __init__(self, device_code: str) -> None:
        super().__init__(code=ErrorCode.DEVICE_NOT_FOUND, message="Device not found")
        self.device_code = device_code


class KioskNotFoundError(NotFoundError):
    def __init__(self, kiosk_id: str) -> None:
        super().__init__(code=ErrorCode.KIOSK_NOT_FOUND, message="Kiosk not found")
        self.kiosk_id = kiosk_id


class ValidationError(DomainError):
    """Raised for malformed input before any external call is made."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)


class InvalidStateTransitionError(DomainError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_STATE_TRANSITION,
            message=f"Cannot move order from {current} to {target}",
        )
        self.current = current
        self.target = target


PricingError = PricingUnavailableError | LineIneligibleError
