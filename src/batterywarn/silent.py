"""Silent-mode gate: decides whether warning sounds are suppressed."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, Final, Optional, Protocol, runtime_checkable

from dbus_next import Variant
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError, InterfaceNotFoundError

from batterywarn.constants import (
    ACCOUNTS_BUS_NAME,
    ACCOUNTS_SILENT_MODE_PROPERTY,
    ACCOUNTS_SOUND_INTERFACE,
    ACCOUNTS_USER_PATH_PREFIX,
    PROPERTIES_INTERFACE,
)
from batterywarn.settings.user import SilentModeSettings

logger: Final = logging.getLogger(__name__)

SilentModeListener = Callable[[bool], None]


@runtime_checkable
class SilentModeLookup(Protocol):
    """Protocol for the per-user settings service holding the silent flag."""

    async def fetch(self) -> bool:
        """Return the current silent-mode value."""
        ...

    def subscribe(self, listener: SilentModeListener) -> None:
        """Call *listener* with the new value whenever it changes."""
        ...

    def unsubscribe(self) -> None:
        """Stop delivering changes."""
        ...


class SilentModeGate:
    """Answers "should sound be suppressed?" without ever blocking.

    The flag starts out pending and is reported as silent until the
    lookup resolves. A failed lookup keeps it pending; a cancelled one
    is abandoned without touching the flag.
    """

    def __init__(
        self,
        lookup: Optional[SilentModeLookup] = None,
        enabled: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        """Initialize the gate.

        Args:
            lookup: Settings-service lookup; required when enabled
            enabled: When False the gate never suppresses sound
            timeout: Seconds to wait for the lookup before giving up
        """
        if enabled and lookup is None:
            raise ValueError("An enabled SilentModeGate needs a lookup")

        self.enabled = enabled
        self.timeout = timeout
        self._lookup = lookup
        self._value: Optional[bool] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._cancelled = False

    @property
    def pending(self) -> bool:
        return self._value is None

    def is_silent(self) -> bool:
        """Return True if warning sounds should be suppressed right now."""
        if not self.enabled:
            return False
        if self._value is None:
            return True
        return self._value

    def start(self) -> None:
        """Begin resolving the flag in the background.

        Must be called from a running event loop. Calling it again while
        a lookup is in flight or after cancellation has no effect.
        """
        if not self.enabled or self._cancelled or self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._resolve())

    async def wait_resolved(self) -> None:
        """Wait for the in-flight lookup, if any, to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    def cancel(self) -> None:
        """Abandon resolution; later completions become no-ops."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self._lookup is not None:
            self._lookup.unsubscribe()

    async def _resolve(self) -> None:
        assert self._lookup is not None
        try:
            if self.timeout:
                value = await asyncio.wait_for(self._lookup.fetch(), self.timeout)
            else:
                value = await self._lookup.fetch()
        except asyncio.CancelledError:
            return
        except Exception as exc:
            logger.warning("Unable to read silent mode; keeping sounds muted: %s", exc)
            return

        if self._cancelled:
            return

        self._set(value)
        self._lookup.subscribe(self._set)

    def _set(self, value: bool) -> None:
        if self._cancelled:
            return
        if value != self._value:
            logger.debug("Silent mode is now %s", value)
        self._value = bool(value)


class AccountsServiceSilentMode:
    """Reads ``SilentMode`` from the user's AccountsService object."""

    def __init__(self, bus: MessageBus, uid: Optional[int] = None) -> None:
        """Initialize the lookup.

        Args:
            bus: Connected system bus
            uid: User id whose settings are read (current user by default)
        """
        self.bus = bus
        self.path = f"{ACCOUNTS_USER_PATH_PREFIX}{os.getuid() if uid is None else uid}"
        self._props: Any = None
        self._listener: Optional[SilentModeListener] = None

    async def _properties(self) -> Any:
        if self._props is None:
            introspection = await self.bus.introspect(ACCOUNTS_BUS_NAME, self.path)
            proxy = self.bus.get_proxy_object(ACCOUNTS_BUS_NAME, self.path, introspection)
            self._props = proxy.get_interface(PROPERTIES_INTERFACE)
        return self._props

    async def fetch(self) -> bool:
        try:
            props = await self._properties()
            value = await props.call_get(ACCOUNTS_SOUND_INTERFACE, ACCOUNTS_SILENT_MODE_PROPERTY)
        except (InterfaceNotFoundError, DBusError) as exc:
            raise LookupError(f"{self.path}: {exc}") from exc
        return bool(value.value if isinstance(value, Variant) else value)

    def subscribe(self, listener: SilentModeListener) -> None:
        if self._props is None:
            return
        self._listener = listener
        self._props.on_properties_changed(self._on_properties_changed)

    def unsubscribe(self) -> None:
        if self._props is not None and self._listener is not None:
            self._props.off_properties_changed(self._on_properties_changed)
        self._listener = None

    def _on_properties_changed(
        self, interface_name: str, changed: dict[str, Any], invalidated: list[str]
    ) -> None:
        if interface_name != ACCOUNTS_SOUND_INTERFACE or self._listener is None:
            return
        value = changed.get(ACCOUNTS_SILENT_MODE_PROPERTY)
        if value is not None:
            self._listener(bool(value.value if isinstance(value, Variant) else value))


def create_silent_mode_gate(
    settings: SilentModeSettings, bus: Optional[MessageBus] = None
) -> SilentModeGate:
    """Create a silent-mode gate based on configuration.

    Args:
        settings: Silent-mode section of the user settings
        bus: System bus for the AccountsService lookup

    Returns:
        A gate that is disabled when configured off or when no bus is given
    """
    if not settings.enabled or bus is None:
        return SilentModeGate(enabled=False)
    return SilentModeGate(
        AccountsServiceSilentMode(bus, settings.uid),
        timeout=settings.timeout_seconds,
    )
