# src/batterywarn/notify/protocols.py
from __future__ import annotations

from typing import Callable, Optional, Protocol, runtime_checkable

from batterywarn.common.enums import DeviceKind, PowerLevel
from batterywarn.constants import CAPABILITY_ACTIONS, HINT_SOUND_FILE
from batterywarn.errors import CapabilityError, ShowError
from batterywarn.notify.models import Notification, NotificationAction
from batterywarn.system.battery import ChangeCallback, Subscription

ClosedCallback = Callable[[Notification], None]


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol defining the interface for notification backends.

    The notifier builds a notification with ``create``, decorates it with
    actions and hints, then calls ``show``. Backends report notifications
    the user dismissed through the callbacks registered with ``on_closed``.
    """

    async def query_capabilities(self) -> set[str]:
        """Return the feature strings supported by the server.

        Raises:
            CapabilityError: If the server cannot be queried
        """
        ...

    def create(self, title: str, body: str, icon: str = "") -> Notification:
        """Build a notification handle without displaying it."""
        ...

    def attach_actions(
        self, notification: Notification, actions: list[NotificationAction]
    ) -> None:
        """Add interactive actions to a notification."""
        ...

    def attach_sound_hint(self, notification: Notification, sound_uri: str) -> None:
        """Ask the server to play *sound_uri* when the notification appears."""
        ...

    async def show(self, notification: Notification) -> None:
        """Display the notification.

        Raises:
            ShowError: If the server refused or could not be reached
        """
        ...

    async def clear(self, notification: Notification) -> None:
        """Remove the notification. Safe on never-shown or cleared handles."""
        ...

    def on_closed(self, callback: ClosedCallback) -> None:
        """Register a listener for notifications closed by the user."""
        ...


@runtime_checkable
class StatePublisher(Protocol):
    """Protocol for exporting the notifier's derived state."""

    def set_power_level(self, level: PowerLevel) -> None: ...

    def set_is_warning(self, is_warning: bool) -> None: ...


class MockNotificationChannel:
    """Mock implementation of NotificationChannel for testing."""

    def __init__(self, capabilities: Optional[set[str]] = None) -> None:
        self.capabilities = (
            capabilities if capabilities is not None else {CAPABILITY_ACTIONS, "body"}
        )
        self.capability_queries = 0
        self.shown: list[Notification] = []
        self.cleared: list[Notification] = []
        self._closed_callbacks: list[ClosedCallback] = []
        self._next_id = 1

    async def query_capabilities(self) -> set[str]:
        self.capability_queries += 1
        return set(self.capabilities)

    def create(self, title: str, body: str, icon: str = "") -> Notification:
        return Notification(title=title, body=body, icon=icon)

    def attach_actions(
        self, notification: Notification, actions: list[NotificationAction]
    ) -> None:
        notification.actions.extend(actions)

    def attach_sound_hint(self, notification: Notification, sound_uri: str) -> None:
        notification.hints[HINT_SOUND_FILE] = sound_uri

    async def show(self, notification: Notification) -> None:
        """Record the notification as shown and give it a server id."""
        notification.server_id = self._next_id
        self._next_id += 1
        self.shown.append(notification)

    async def clear(self, notification: Notification) -> None:
        """Record the clear call. Clearing twice is recorded twice."""
        self.cleared.append(notification)
        notification.server_id = None

    def on_closed(self, callback: ClosedCallback) -> None:
        self._closed_callbacks.append(callback)

    def simulate_user_close(self, notification: Notification) -> None:
        """Behave as if the user dismissed *notification*."""
        notification.server_id = None
        for callback in list(self._closed_callbacks):
            callback(notification)

    @property
    def last_shown(self) -> Optional[Notification]:
        return self.shown[-1] if self.shown else None

    def reset_call_history(self) -> None:
        """Reset the call history for testing."""
        self.shown = []
        self.cleared = []


class ErrorSimulatingChannel(MockNotificationChannel):
    """Channel mock that can simulate server errors."""

    def __init__(
        self,
        fail_on_methods: list[str] | None = None,
        capabilities: Optional[set[str]] = None,
    ) -> None:
        """Initialize with optional methods that should fail.

        Args:
            fail_on_methods: Method names that should raise (``show``,
                ``query_capabilities``)
            capabilities: Capabilities reported when not failing
        """
        super().__init__(capabilities)
        self.fail_on_methods = fail_on_methods or []

    async def query_capabilities(self) -> set[str]:
        if "query_capabilities" in self.fail_on_methods:
            self.capability_queries += 1
            raise CapabilityError("Simulated notification server failure")
        return await super().query_capabilities()

    async def show(self, notification: Notification) -> None:
        if "show" in self.fail_on_methods:
            raise ShowError("Simulated notification server failure")
        await super().show(notification)


class MockStatePublisher:
    """Mock implementation of StatePublisher that records every update."""

    def __init__(self) -> None:
        self.power_levels: list[PowerLevel] = []
        self.warnings: list[bool] = []

    def set_power_level(self, level: PowerLevel) -> None:
        self.power_levels.append(level)

    def set_is_warning(self, is_warning: bool) -> None:
        self.warnings.append(is_warning)

    @property
    def power_level(self) -> Optional[PowerLevel]:
        return self.power_levels[-1] if self.power_levels else None

    @property
    def is_warning(self) -> Optional[bool]:
        return self.warnings[-1] if self.warnings else None

    def reset_call_history(self) -> None:
        self.power_levels = []
        self.warnings = []


class MockBattery:
    """In-memory battery for tests and dry runs."""

    def __init__(
        self,
        percentage: float = 100.0,
        is_discharging: bool = False,
        kind: DeviceKind = DeviceKind.BATTERY,
        icon_names: Optional[list[str]] = None,
    ) -> None:
        self._percentage = percentage
        self._is_discharging = is_discharging
        self._kind = kind
        self._icon_names = icon_names if icon_names is not None else ["battery-caution"]
        self._listeners: list[ChangeCallback] = []

    @property
    def kind(self) -> DeviceKind:
        return self._kind

    @property
    def percentage(self) -> float:
        return self._percentage

    @property
    def is_discharging(self) -> bool:
        return self._is_discharging

    @property
    def icon_names(self) -> list[str]:
        return list(self._icon_names)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        return Subscription(self._listeners, callback)

    def update(self, percentage: float, is_discharging: bool) -> None:
        """Change the battery values and notify subscribers."""
        self._percentage = percentage
        self._is_discharging = is_discharging
        for callback in list(self._listeners):
            callback()


def create_mock_channel(capabilities: Optional[set[str]] = None) -> MockNotificationChannel:
    """Create and return a mock notification channel for testing."""
    return MockNotificationChannel(capabilities)


def create_error_simulating_channel(
    fail_on_methods: list[str] | None = None,
) -> ErrorSimulatingChannel:
    """Create a channel that will fail on specified methods."""
    return ErrorSimulatingChannel(fail_on_methods)


def assert_shown_with(
    channel: MockNotificationChannel,
    expected_title: str,
    expected_body: str | None = None,
) -> bool:
    """Assert that the last shown notification has the expected text.

    Args:
        channel: The mock channel instance
        expected_title: The expected title
        expected_body: Expected body (can be None to skip check)

    Returns:
        True if the assertion passes, raises AssertionError otherwise
    """
    assert channel.shown, "No notification was shown"
    last = channel.shown[-1]
    assert last.title == expected_title, f"Expected title {expected_title!r}, got {last.title!r}"
    if expected_body is not None:
        assert last.body == expected_body, f"Expected body {expected_body!r}, got {last.body!r}"
    return True


def assert_published(
    publisher: MockStatePublisher,
    level: PowerLevel | None = None,
    is_warning: bool | None = None,
) -> bool:
    """Assert the most recently published state.

    Args:
        publisher: The mock publisher instance
        level: Expected power level (None to skip check)
        is_warning: Expected warning flag (None to skip check)

    Returns:
        True if the assertion passes, raises AssertionError otherwise
    """
    if level is not None:
        assert publisher.power_level == level, (
            f"Expected power level {level.token}, got {publisher.power_level}"
        )
    if is_warning is not None:
        assert publisher.is_warning is is_warning, (
            f"Expected is-warning {is_warning}, got {publisher.is_warning}"
        )
    return True
