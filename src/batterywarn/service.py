"""Process owner: wires the buses, backends and the notifier together."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Final, Optional

from dbus_next import BusType
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError, InterfaceNotFoundError, InvalidAddressError

from batterywarn.constants import BUS_NAME
from batterywarn.errors import NotABatteryError
from batterywarn.notifier import NotificationStateMachine
from batterywarn.notify.capabilities import CapabilityCache
from batterywarn.notify.desktop import DesktopNotificationChannel
from batterywarn.notify.launcher import CommandSettingsLauncher
from batterywarn.notify.sounds import SoundLocator
from batterywarn.publisher import BusStatePublisher
from batterywarn.settings.user import UserSettings
from batterywarn.silent import SilentModeGate, create_silent_mode_gate
from batterywarn.system.battery import UPowerBattery

logger: Final = logging.getLogger(__name__)


class BatteryWarnService:
    """Owns every long-lived resource of the daemon.

    The notification backend is connected once here and disconnected
    once at shutdown, regardless of how many notifiers use it:
    - session bus: notification server and the exported state object
    - system bus: UPower and the AccountsService silent-mode flag
    """

    def __init__(self, settings: UserSettings) -> None:
        self.settings = settings
        self.session_bus: Optional[MessageBus] = None
        self.system_bus: Optional[MessageBus] = None
        self.channel = DesktopNotificationChannel(settings.app_name)
        self.publisher = BusStatePublisher(settings.bus_path)
        self.capabilities = CapabilityCache(self.channel)
        self.sounds = SoundLocator(
            theme=settings.sound.theme,
            file_name=settings.sound.file_name,
            sounds_dir=settings.sound.sounds_dir,
            fallback=settings.sound.fallback,
        )
        self.launcher = CommandSettingsLauncher(settings.settings_command)
        self.silent_gate: Optional[SilentModeGate] = None
        self.notifier: Optional[NotificationStateMachine] = None
        self.battery: Optional[UPowerBattery] = None

    async def start(self) -> None:
        """Connect the buses and start watching the configured battery."""
        self.session_bus = await MessageBus(bus_type=BusType.SESSION).connect()
        self.system_bus = await self._connect_system_bus()

        if not await self.channel.connect(self.session_bus):
            logger.critical("Notifications will not be shown")

        self.publisher.set_bus(self.session_bus)
        try:
            await self.session_bus.request_name(BUS_NAME)
        except DBusError as exc:
            logger.warning("Unable to own %s: %s", BUS_NAME, exc)

        self.silent_gate = create_silent_mode_gate(self.settings.silent_mode, self.system_bus)
        self.silent_gate.start()

        self.notifier = NotificationStateMachine(
            channel=self.channel,
            publisher=self.publisher,
            capabilities=self.capabilities,
            silent_gate=self.silent_gate,
            sounds=self.sounds,
            settings_launcher=self.launcher,
        )

        if self.system_bus is None:
            logger.error("UPower is unreachable without a system bus, no battery to watch")
            return

        try:
            self.battery = await UPowerBattery.create(self.system_bus, self.settings.device_path)
            await self.notifier.set_battery(self.battery)
        except NotABatteryError as exc:
            logger.info("No battery to watch (%s)", exc)
        except (InterfaceNotFoundError, DBusError) as exc:
            logger.error("Unable to read %s from UPower: %s", self.settings.device_path, exc)

    async def _connect_system_bus(self) -> Optional[MessageBus]:
        # Silent mode and UPower live here; losing them is not fatal
        try:
            return await MessageBus(bus_type=BusType.SYSTEM).connect()
        except (OSError, InvalidAddressError, DBusError) as exc:
            logger.error("Unable to connect to the system bus: %s", exc)
            return None

    async def stop(self) -> None:
        """Tear everything down in reverse order.

        Safe to call twice, and after a start that failed part way.
        """
        if self.notifier is not None:
            await self.notifier.close()
            self.notifier = None
        if self.silent_gate is not None:
            self.silent_gate.cancel()
            self.silent_gate = None
        if self.battery is not None:
            self.battery.close()
            self.battery = None

        self.publisher.set_bus(None)
        self.channel.disconnect()

        for bus in (self.session_bus, self.system_bus):
            if bus is not None:
                bus.disconnect()
        self.session_bus = None
        self.system_bus = None

    async def run_forever(self) -> None:
        """Run until SIGINT or SIGTERM."""
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        try:
            await self.start()
            logger.info("batterywarn running")
            await stop.wait()
        finally:
            logger.info("Shutting down")
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.stop()
