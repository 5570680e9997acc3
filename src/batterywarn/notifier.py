# filepath: src/batterywarn/notifier.py
"""Low-battery notification state machine."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Coroutine, Final, Optional

from batterywarn.common.enums import PowerLevel
from batterywarn.constants import (
    ACTION_DISMISS,
    ACTION_SETTINGS,
    EXPIRES_NEVER,
    HINT_AFFIRMATIVE_TINT,
    HINT_NON_SHAPED_ICON,
    HINT_SNAP_DECISIONS,
    HINT_SNAP_DECISIONS_TIMEOUT,
    INT32_MAX,
)
from batterywarn.errors import ChannelError
from batterywarn.notify.capabilities import CapabilityCache
from batterywarn.notify.launcher import SettingsLauncher
from batterywarn.notify.models import Notification, NotificationAction
from batterywarn.notify.protocols import NotificationChannel, StatePublisher
from batterywarn.notify.sounds import SoundResolver
from batterywarn.power import PowerLevelClassifier, ensure_battery
from batterywarn.silent import SilentModeGate
from batterywarn.system.battery import BatteryDevice, Subscription
from batterywarn.system.status import BatteryTelemetry

logger: Final = logging.getLogger(__name__)


@dataclass
class NotifierState:
    """What the notifier remembers between two telemetry events."""

    previous_level: PowerLevel = PowerLevel.OK
    previous_discharging: bool = False
    active: Optional[Notification] = None

    def reset(self) -> None:
        self.previous_level = PowerLevel.OK
        self.previous_discharging = False
        self.active = None


def _dismiss() -> None:
    """The 'OK' action only closes the notification."""


class NotificationStateMachine:
    """Decides when to raise or clear the low-battery warning.

    One instance watches one battery. Every telemetry change runs the
    transition under a lock:
    - classify the new percentage
    - show, clear, or leave the warning as it is
    - publish the new power level and remember it for the next event

    A warning is shown when the battery, while discharging, drops into a
    worse band, or when it starts discharging while already in a bad
    band. Charging or recovering to OK always clears it. Anything else
    leaves the current notification alone, so a battery sitting at a
    steady low level does not nag.
    """

    def __init__(
        self,
        channel: NotificationChannel,
        publisher: StatePublisher,
        capabilities: CapabilityCache,
        silent_gate: SilentModeGate,
        sounds: SoundResolver,
        settings_launcher: SettingsLauncher,
    ) -> None:
        """Initialize the notifier.

        Args:
            channel: Notification backend, already initialized by the caller
            publisher: Receives power-level and is-warning updates
            capabilities: Shared, memoized capability query for ``channel``
            silent_gate: Decides whether the warning sound is attached
            sounds: Resolves the warning sound URI
            settings_launcher: Opens the battery settings from the action
        """
        self._channel = channel
        self._publisher = publisher
        self._capabilities = capabilities
        self._silent_gate = silent_gate
        self._sounds = sounds
        self._settings_launcher = settings_launcher

        self._state = NotifierState()
        self._lock = asyncio.Lock()
        self._battery: Optional[BatteryDevice] = None
        self._subscription: Optional[Subscription] = None
        self._tasks: set[asyncio.Task[Any]] = set()

        self._channel.on_closed(self._on_channel_closed)

    # ---- read-only state ----
    @property
    def battery(self) -> Optional[BatteryDevice]:
        return self._battery

    @property
    def power_level(self) -> PowerLevel:
        return self._state.previous_level

    @property
    def is_warning(self) -> bool:
        return self._state.active is not None

    @property
    def state(self) -> NotifierState:
        return self._state

    # ---- decision rule ----
    @staticmethod
    def should_show(
        previous_level: PowerLevel,
        previous_discharging: bool,
        new_level: PowerLevel,
        new_discharging: bool,
    ) -> bool:
        """Return True if a new warning should pop up.

        Either the battery was already discharging and its level got
        worse, or it already had a bad level and just started discharging.
        """
        worsened = new_discharging and new_level > previous_level
        unplugged_while_low = (
            new_level != PowerLevel.OK and new_discharging and not previous_discharging
        )
        return worsened or unplugged_while_low

    @staticmethod
    def should_clear(new_level: PowerLevel, new_discharging: bool) -> bool:
        """Charging, or being back at OK, always cancels a warning."""
        return not new_discharging or new_level == PowerLevel.OK

    # ---- events ----
    async def on_telemetry_changed(self, telemetry: BatteryTelemetry) -> None:
        """Process one battery change."""
        async with self._lock:
            await self._transition(telemetry)

    async def on_notification_closed(self, notification: Notification) -> None:
        """React to the user dismissing the active warning."""
        async with self._lock:
            if notification is self._state.active:
                logger.debug("Low-battery warning closed by the user")
                await self._clear()

    async def set_battery(self, battery: Optional[BatteryDevice]) -> None:
        """Watch *battery* instead of the current one.

        Detaching clears any warning and publishes OK; attaching runs the
        transition once right away so an already-low battery warns
        immediately.

        Raises:
            NotABatteryError: If *battery* is not a battery
        """
        if battery is not None:
            ensure_battery(battery)

        async with self._lock:
            if battery is self._battery:
                return

            if self._battery is not None:
                self._detach()
                await self._clear()
                self._publisher.set_power_level(PowerLevel.OK)
                self._state.reset()

            if battery is not None:
                self._battery = battery
                self._subscription = battery.subscribe(lambda: self._on_battery_changed(battery))
                telemetry = self._snapshot(battery)
                if telemetry is not None:
                    await self._transition(telemetry)

    async def close(self) -> None:
        """Detach the battery and cancel background work."""
        self._silent_gate.cancel()
        await self.set_battery(None)
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ---- internals ----
    def _detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._battery = None

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    def _snapshot(battery: BatteryDevice) -> Optional[BatteryTelemetry]:
        try:
            return BatteryTelemetry.from_device(battery)
        except ValueError as exc:
            logger.warning("Ignoring battery reading: %s", exc)
            return None

    def _on_battery_changed(self, battery: BatteryDevice) -> None:
        telemetry = self._snapshot(battery)
        if telemetry is not None:
            self._spawn(self._apply(battery, telemetry))

    def _on_channel_closed(self, notification: Notification) -> None:
        if notification is self._state.active:
            self._spawn(self.on_notification_closed(notification))

    async def _apply(self, battery: BatteryDevice, telemetry: BatteryTelemetry) -> None:
        async with self._lock:
            # Drop changes queued by a battery that has since been detached
            if battery is not self._battery:
                return
            await self._transition(telemetry)

    async def _transition(self, telemetry: BatteryTelemetry) -> None:
        state = self._state
        new_level = PowerLevelClassifier.classify(telemetry.percentage)
        new_discharging = telemetry.is_discharging

        if self.should_show(
            state.previous_level, state.previous_discharging, new_level, new_discharging
        ):
            await self._show(telemetry, new_level)
        elif self.should_clear(new_level, new_discharging):
            await self._clear()

        self._publisher.set_power_level(new_level)
        state.previous_level = new_level
        state.previous_discharging = new_discharging

    async def _show(self, telemetry: BatteryTelemetry, level: PowerLevel) -> None:
        await self._clear()

        title = "Battery Low" if level == PowerLevel.LOW else "Battery Critical"
        body = f"{telemetry.formatted_percentage} charge remaining"
        notification = self._channel.create(title, body, self._icon())

        capabilities = await self._capabilities.get()
        if capabilities.actions_supported:
            self._make_interactive(notification)

        try:
            await self._channel.show(notification)
        except ChannelError as exc:
            logger.error("Unable to show low-battery warning %r: %s", body, exc)
            return

        logger.info("%s: %s", title, body)
        self._state.active = notification
        self._publisher.set_is_warning(True)

    async def _clear(self) -> None:
        notification = self._state.active
        self._state.active = None
        if notification is not None:
            try:
                await self._channel.clear(notification)
            except ChannelError as exc:
                logger.debug("Clearing warning failed: %s", exc)
        self._publisher.set_is_warning(False)

    def _icon(self) -> str:
        if self._battery is None:
            return ""
        icons = self._battery.icon_names
        return icons[0] if icons else ""

    def _make_interactive(self, notification: Notification) -> None:
        self._channel.attach_actions(
            notification,
            [
                NotificationAction(ACTION_DISMISS, "OK", _dismiss),
                NotificationAction(
                    ACTION_SETTINGS, "Battery settings", self._settings_launcher.launch
                ),
            ],
        )
        notification.expire_timeout = EXPIRES_NEVER
        notification.hints.update(
            {
                HINT_SNAP_DECISIONS: True,
                HINT_NON_SHAPED_ICON: True,
                HINT_AFFIRMATIVE_TINT: True,
                HINT_SNAP_DECISIONS_TIMEOUT: INT32_MAX,
            }
        )

        if self._silent_gate.is_silent():
            return
        try:
            sound_uri = self._sounds.sound_uri()
        except OSError as exc:
            logger.warning("Unable to resolve warning sound: %s", exc)
            return
        self._channel.attach_sound_hint(notification, sound_uri)
