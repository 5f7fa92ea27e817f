"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Self


class SalesChannelType(Enum):
    WEB = "web"
    KIOSK = "kiosk"


class SlotStatus(Enum):
    """Occupancy of a kiosk slot or a device's allocation state."""

    OCCUPIED = "occupied"
    EMPTY = "empty"
    FAULT = "fault"


class OrderStatus(Enum):
    DRAFT = "draft"
    PRICED = "priced"
    FULFILLED = "fulfilled"
    PARTIALLY_FAILED = "partially_failed"


class DeviceEvent(Enum):
    ORDER_DEVICE_ASSIGNED = "order_device_assigned"
    ORDER_DEVICE_REMOVED = "order_device_removed"
    DEVICE_STATUS_CHANGED = "device_status_changed"


@dataclass(frozen=True)
class DateRange:
    """Validity window of an order. A missing end date means a single day."""

    start: date
    end: date | None = None

    def __post_init__(self) -> None:
        if self.end is not None and self.end < self.start:
            raise ValueError("End date cannot be before start date")

    @property
    def days(self) -> int:
        if self.end is None:
            return 1
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class AgeRange:
    """Inclusive age band. Either bound may be open."""

    minimum: int | None = None
    maximum: int | None = None

    def __post_init__(self) -> None:
        if self.minimum is not None and self.minimum < 0:
            raise ValueError("Minimum age cannot be negative")
        if (
            self.minimum is not None
            and self.maximum is not None
            and self.minimum > self.maximum
        ):
            raise ValueError("Minimum age cannot exceed maximum age")

    def contains(self, age: int) -> bool:
        if self.minimum is not None and age < self.minimum:
            return False
        if self.maximum is not None and age > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class LocalizedText:
    """Text keyed by language code. Any language code is kept."""

    texts: dict[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "texts", dict(self.texts))

    @classmethod
    def from_mapping(cls, data: dict | None) -> Self:
        data = data or {}
        return cls(
            {
                str(code): text
                for code, text in data.items()
                if isinstance(text, str)
            }
        )

    def to_mapping(self) -> dict[str, str]:
        return dict(self.texts)
