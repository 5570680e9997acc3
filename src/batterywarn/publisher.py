"""Exports the notifier's power level and warning flag on the bus."""

# dbus-next reads the signature strings from the annotations at runtime,
# so this module must not use postponed evaluation of annotations.

import logging
from typing import Final, Optional

from dbus_next.aio import MessageBus
from dbus_next.service import PropertyAccess, ServiceInterface, dbus_property

from batterywarn.common.enums import PowerLevel
from batterywarn.constants import BATTERY_INTERFACE, DEFAULT_BUS_PATH

logger: Final = logging.getLogger(__name__)


class BatteryInterface(ServiceInterface):
    """Read-only ``PowerLevel`` / ``IsWarning`` properties."""

    def __init__(self) -> None:
        super().__init__(BATTERY_INTERFACE)
        self.power_level_token = PowerLevel.OK.token
        self.warning_flag = False

    @dbus_property(access=PropertyAccess.READ)
    def PowerLevel(self) -> "s":  # noqa: F821, N802
        return self.power_level_token

    @dbus_property(access=PropertyAccess.READ)
    def IsWarning(self) -> "b":  # noqa: F821, N802
        return self.warning_flag

    def update_power_level(self, token: str) -> bool:
        if token == self.power_level_token:
            return False
        self.power_level_token = token
        self.emit_properties_changed({"PowerLevel": token})
        return True

    def update_is_warning(self, is_warning: bool) -> bool:
        if is_warning == self.warning_flag:
            return False
        self.warning_flag = is_warning
        self.emit_properties_changed({"IsWarning": is_warning})
        return True


class BusStatePublisher:
    """State publisher backed by an exported D-Bus object.

    Updates are fire-and-forget and only signal actual changes. Export
    follows the transport connection handed to :meth:`set_bus`, which
    is independent of any battery or notification.
    """

    def __init__(self, path: str = DEFAULT_BUS_PATH) -> None:
        """Initialize the publisher.

        Args:
            path: Object path the interface is exported at
        """
        self.path = path
        self.interface = BatteryInterface()
        self._bus: Optional[MessageBus] = None

    @property
    def bus(self) -> Optional[MessageBus]:
        return self._bus

    @property
    def power_level(self) -> PowerLevel:
        return PowerLevel.from_token(self.interface.power_level_token)

    @property
    def is_warning(self) -> bool:
        return self.interface.warning_flag

    def set_power_level(self, level: PowerLevel) -> None:
        if self.interface.update_power_level(level.token):
            logger.debug("power-level -> %s", level.token)

    def set_is_warning(self, is_warning: bool) -> None:
        if self.interface.update_is_warning(is_warning):
            logger.debug("is-warning -> %s", is_warning)

    def set_bus(self, bus: Optional[MessageBus]) -> None:
        """Export on *bus*, or unexport when *bus* is None.

        Calling it again with the same bus does nothing.
        """
        if bus is self._bus:
            return

        if self._bus is not None:
            self._bus.unexport(self.path, self.interface)
            self._bus = None

        if bus is not None:
            try:
                bus.export(self.path, self.interface)
            except (TypeError, ValueError) as exc:
                logger.warning("Unable to export battery properties: %s", exc)
                return
            self._bus = bus
            logger.debug("Exported %s at %s", BATTERY_INTERFACE, self.path)
