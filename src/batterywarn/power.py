"""Power-level classification."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from batterywarn.common.enums import DeviceKind, PowerLevel
from batterywarn.constants import PERCENT_CRITICAL, PERCENT_LOW, PERCENT_VERY_LOW
from batterywarn.errors import NotABatteryError

if TYPE_CHECKING:
    from batterywarn.system.battery import BatteryDevice

logger: Final = logging.getLogger(__name__)


class PowerLevelClassifier:
    """Maps a battery percentage onto a :class:`PowerLevel` band."""

    @staticmethod
    def classify(percentage: float) -> PowerLevel:
        """Classify a charge percentage.

        Boundary values belong to the worse band, so 10.0 is LOW and
        2.0 is CRITICAL.

        Args:
            percentage: Battery charge in percent (0-100)

        Returns:
            The matching power level
        """
        if percentage <= PERCENT_CRITICAL:
            return PowerLevel.CRITICAL
        elif percentage <= PERCENT_VERY_LOW:
            return PowerLevel.VERY_LOW
        elif percentage <= PERCENT_LOW:
            return PowerLevel.LOW
        return PowerLevel.OK

    @classmethod
    def classify_device(cls, device: BatteryDevice) -> PowerLevel:
        """Classify a device, rejecting anything that is not a battery.

        Raises:
            NotABatteryError: If the device kind is not ``BATTERY``
        """
        ensure_battery(device)
        return cls.classify(device.percentage)


def ensure_battery(device: BatteryDevice) -> None:
    """Raise :class:`NotABatteryError` unless *device* is a battery."""
    if device.kind != DeviceKind.BATTERY:
        logger.debug("Rejecting device of kind %s", device.kind)
        raise NotABatteryError(device.kind)


classify = PowerLevelClassifier.classify
