"""Enumerations shared by the core and the bus adapters."""

from batterywarn.common.enums import DeviceKind, DeviceState, PowerLevel

__all__ = ["DeviceKind", "DeviceState", "PowerLevel"]
