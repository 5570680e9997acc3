"""Battery telemetry source backed by UPower."""

from __future__ import annotations

import logging
from typing import Any, Callable, Final, Protocol, runtime_checkable

from dbus_next import Variant
from dbus_next.aio import MessageBus

from batterywarn.common.enums import DeviceKind, DeviceState
from batterywarn.constants import (
    PROPERTIES_INTERFACE,
    UPOWER_BUS_NAME,
    UPOWER_DEVICE_INTERFACE,
    UPOWER_DISPLAY_DEVICE_PATH,
)
from batterywarn.types.upower import DeviceProperties, PropertiesInterface

logger: Final = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]

# Only these properties feed the notifier
WATCHED_PROPERTIES: Final = frozenset({"Percentage", "State"})


class Subscription:
    """Handle returned by :meth:`BatteryDevice.subscribe`."""

    def __init__(self, listeners: list[ChangeCallback], callback: ChangeCallback) -> None:
        self._listeners = listeners
        self._callback = callback
        self._listeners.append(callback)

    @property
    def active(self) -> bool:
        return self._callback in self._listeners

    def cancel(self) -> None:
        """Stop delivering change notifications. Safe to call twice."""
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


@runtime_checkable
class BatteryDevice(Protocol):
    """Protocol for the battery entity the notifier watches."""

    @property
    def kind(self) -> DeviceKind: ...

    @property
    def percentage(self) -> float: ...

    @property
    def is_discharging(self) -> bool: ...

    @property
    def icon_names(self) -> list[str]: ...

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        """Call *callback* whenever the percentage or charge state changes.

        Args:
            callback: Zero-argument callable

        Returns:
            Subscription that can be cancelled
        """
        ...


def _unwrap(value: Any) -> Any:
    return value.value if isinstance(value, Variant) else value


class UPowerBattery:
    """UPower device exposed through the :class:`BatteryDevice` protocol.

    Property values are cached and refreshed from ``PropertiesChanged``;
    reads never block.
    """

    def __init__(self, path: str, props: PropertiesInterface, values: DeviceProperties) -> None:
        """Initialize from an already-connected properties proxy.

        Args:
            path: Object path of the UPower device
            props: ``org.freedesktop.DBus.Properties`` proxy for the device
            values: Initial property values
        """
        self.path = path
        self._props = props
        self._values: DeviceProperties = values
        self._listeners: list[ChangeCallback] = []
        self._props.on_properties_changed(self._on_properties_changed)

    @classmethod
    async def create(
        cls, bus: MessageBus, path: str = UPOWER_DISPLAY_DEVICE_PATH
    ) -> UPowerBattery:
        """Connect to a UPower device and read its current state.

        Args:
            bus: Connected system bus
            path: Device object path (the aggregated display device by default)

        Returns:
            A ready-to-use battery
        """
        introspection = await bus.introspect(UPOWER_BUS_NAME, path)
        proxy = bus.get_proxy_object(UPOWER_BUS_NAME, path, introspection)
        props: PropertiesInterface = proxy.get_interface(PROPERTIES_INTERFACE)  # type: ignore[assignment]
        raw = await props.call_get_all(UPOWER_DEVICE_INTERFACE)
        values: DeviceProperties = {k: _unwrap(v) for k, v in raw.items()}  # type: ignore[misc]
        logger.info(
            "Watching %s (%.0f%%, state %s)",
            path,
            values.get("Percentage", 0.0),
            values.get("State", 0),
        )
        return cls(path, props, values)

    @property
    def kind(self) -> DeviceKind:
        try:
            return DeviceKind(self._values.get("Type", 0))
        except ValueError:
            return DeviceKind.UNKNOWN

    @property
    def percentage(self) -> float:
        return float(self._values.get("Percentage", 0.0))

    @property
    def state(self) -> DeviceState:
        try:
            return DeviceState(self._values.get("State", 0))
        except ValueError:
            return DeviceState.UNKNOWN

    @property
    def is_discharging(self) -> bool:
        return self.state == DeviceState.DISCHARGING

    @property
    def icon_names(self) -> list[str]:
        icon = self._values.get("IconName", "")
        return [icon] if icon else []

    def subscribe(self, callback: ChangeCallback) -> Subscription:
        return Subscription(self._listeners, callback)

    def close(self) -> None:
        """Stop following the device's property changes."""
        self._props.off_properties_changed(self._on_properties_changed)
        self._listeners.clear()

    def _on_properties_changed(
        self, interface_name: str, changed: dict[str, Any], invalidated: list[str]
    ) -> None:
        if interface_name != UPOWER_DEVICE_INTERFACE:
            return

        for name, value in changed.items():
            self._values[name] = _unwrap(value)  # type: ignore[literal-required]

        if WATCHED_PROPERTIES.intersection(changed):
            logger.debug("%s changed: %s", self.path, sorted(changed))
            for callback in list(self._listeners):
                callback()
