"""Data models for mintop."""

from dataclasses import dataclass, field
from enum import Enum


class BatteryState(Enum):
    """Charging state of a single battery."""

    UNKNOWN = "Unknown"
    EMPTY = "Empty"
    FULL = "Full"
    CHARGING = "Charging"
    DISCHARGING = "Discharging"
    IDLE = "Idle"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True, frozen=True)
class CpuSample:
    """Aggregate CPU usage over all cores."""

    usage: int  # 0 - 100
    cores: int


@dataclass(slots=True, frozen=True)
class MemorySample:
    """Virtual memory usage, sizes in decimal gigabytes."""

    percent: int
    used_gb: float
    total_gb: float


@dataclass(slots=True, frozen=True)
class Battery:
    """Raw reading of one battery as reported by the enumerator."""

    current: float  # Same unit as full (Wh, mAh, or percent)
    full: float
    state: BatteryState = BatteryState.UNKNOWN


@dataclass(slots=True, frozen=True)
class BatteryReport:
    """
    Result of a single battery enumeration.

    ``errors`` is either empty or holds one slot per battery; a non-None slot
    means that battery could not be read and its entry in ``batteries`` is a
    zeroed placeholder.
    """

    batteries: list[Battery] = field(default_factory=list)
    errors: list[Exception | None] = field(default_factory=list)

    def error_for(self, index: int) -> Exception | None:
        """Return the partial error recorded for a battery slot, if any."""
        if index < len(self.errors):
            return self.errors[index]
        return None


@dataclass(slots=True, frozen=True)
class BatterySample:
    """Charge and state of the last readable battery."""

    percent: int
    state: BatteryState | None  # None when no battery could be read
