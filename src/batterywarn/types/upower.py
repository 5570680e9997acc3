"""Type definitions for the UPower D-Bus interface."""

from typing import Any, Callable, Protocol, TypedDict, runtime_checkable


class DeviceProperties(TypedDict, total=False):
    """Unwrapped ``org.freedesktop.UPower.Device`` properties we read."""

    Type: int
    State: int
    Percentage: float
    IconName: str


PropertiesChangedHandler = Callable[[str, dict[str, Any], list[str]], None]


@runtime_checkable
class PropertiesInterface(Protocol):
    """Subset of a dbus-next ``org.freedesktop.DBus.Properties`` proxy."""

    async def call_get(self, interface_name: str, property_name: str) -> Any: ...
    async def call_get_all(self, interface_name: str) -> dict[str, Any]: ...
    def on_properties_changed(self, fn: PropertiesChangedHandler) -> None: ...
    def off_properties_changed(self, fn: PropertiesChangedHandler) -> None: ...
