"""Battery telemetry sources."""

from batterywarn.system.battery import BatteryDevice, Subscription, UPowerBattery
from batterywarn.system.status import BatteryTelemetry

__all__ = [
    "BatteryDevice",
    "BatteryTelemetry",
    "Subscription",
    "UPowerBattery",
]
