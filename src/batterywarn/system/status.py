from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from batterywarn.common.enums import PowerLevel
from batterywarn.power import PowerLevelClassifier

if TYPE_CHECKING:
    from batterywarn.system.battery import BatteryDevice


@dataclass(frozen=True)
class BatteryTelemetry:
    """Snapshot of the watched battery.

    Delivered to the notifier on every percentage or state change:
    - percentage in [0, 100]
    - whether the battery is currently discharging
    """

    percentage: float
    is_discharging: bool

    def __post_init__(self) -> None:
        if not 0.0 <= self.percentage <= 100.0:
            raise ValueError(f"percentage out of range: {self.percentage}")

    @classmethod
    def from_device(cls, device: BatteryDevice) -> BatteryTelemetry:
        """Take a snapshot of *device*'s current values."""
        return cls(percentage=device.percentage, is_discharging=device.is_discharging)

    @property
    def level(self) -> PowerLevel:
        """Power level for this snapshot."""
        return PowerLevelClassifier.classify(self.percentage)

    @property
    def formatted_percentage(self) -> str:
        """Return the percentage rounded to a whole number, e.g. ``8%``."""
        return f"{self.percentage:.0f}%"
