"""Exception classes for batterywarn.

Backend failures are absorbed by the notifier and only surface in the
log; precondition failures propagate to the caller.
"""

from __future__ import annotations

from typing import Optional


class BatteryWarnError(Exception):
    """Base class for all batterywarn errors."""


class ChannelError(BatteryWarnError):
    """Error raised by a notification backend.

    Wraps the underlying transport exception when there is one.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            original_error: The exception raised by the transport, if any
        """
        super().__init__(message)
        self.message: str = message
        self.original_error = original_error


class ShowError(ChannelError):
    """Raised when the notification server refuses to display a notification."""


class CapabilityError(ChannelError):
    """Raised when the server capabilities cannot be queried."""


class NotABatteryError(BatteryWarnError, ValueError):
    """Raised when a non-battery device is handed to the notifier."""

    def __init__(self, kind: object) -> None:
        super().__init__(f"Device kind {kind!r} is not a battery")
        self.kind = kind
