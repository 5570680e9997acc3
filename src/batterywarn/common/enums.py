from __future__ import annotations

from enum import IntEnum


class PowerLevel(IntEnum):
    """Discrete battery severity bands.

    Members are ordered by severity so that ``LOW < CRITICAL`` reads as
    "LOW is less severe than CRITICAL".
    """

    OK = 0
    LOW = 1
    VERY_LOW = 2
    CRITICAL = 3

    @property
    def token(self) -> str:
        """Bus representation (``ok``, ``low``, ``very-low``, ``critical``)."""
        return self.name.lower().replace("_", "-")

    @classmethod
    def from_token(cls, token: str) -> PowerLevel:
        for level in cls:
            if level.token == token:
                return level
        raise ValueError(f"Unknown power level token: {token!r}")


class DeviceKind(IntEnum):
    """UPower device types (subset)."""

    UNKNOWN = 0
    LINE_POWER = 1
    BATTERY = 2
    UPS = 3
    MONITOR = 4
    MOUSE = 5
    KEYBOARD = 6
    PDA = 7
    PHONE = 8


class DeviceState(IntEnum):
    """UPower device states."""

    UNKNOWN = 0
    CHARGING = 1
    DISCHARGING = 2
    EMPTY = 3
    FULLY_CHARGED = 4
    PENDING_CHARGE = 5
    PENDING_DISCHARGE = 6
