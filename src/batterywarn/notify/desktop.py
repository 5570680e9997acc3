"""org.freedesktop.Notifications backend built on dbus-next."""

from __future__ import annotations

import logging
from typing import Any, Final, Optional

from dbus_next import Variant
from dbus_next.aio import MessageBus
from dbus_next.errors import DBusError, InterfaceNotFoundError

from batterywarn.constants import (
    HINT_SOUND_FILE,
    NOTIFICATIONS_BUS_NAME,
    NOTIFICATIONS_OBJECT_PATH,
)
from batterywarn.errors import CapabilityError, ChannelError, ShowError
from batterywarn.notify.models import HintValue, Notification, NotificationAction
from batterywarn.notify.protocols import ClosedCallback

logger: Final = logging.getLogger(__name__)


def to_variant(value: HintValue) -> Variant:
    """Wrap a hint value in the D-Bus variant type the server expects."""
    if isinstance(value, bool):
        return Variant("b", value)
    if isinstance(value, int):
        return Variant("i", value)
    return Variant("s", str(value))


def flatten_actions(actions: list[NotificationAction]) -> list[str]:
    """Return the ``[id, label, id, label, ...]`` list Notify() takes."""
    flat: list[str] = []
    for action in actions:
        flat.extend([action.id, action.label])
    return flat


class DesktopNotificationChannel:
    """Notification channel talking to the session notification server.

    The process owner calls :meth:`connect` once at startup and
    :meth:`disconnect` once at shutdown; notifiers only use the channel.
    """

    def __init__(self, app_name: str) -> None:
        """Initialize the channel.

        Args:
            app_name: Application name passed with every notification
        """
        self.app_name = app_name
        self._interface: Any = None
        self._live: dict[int, Notification] = {}
        self._closed_callbacks: list[ClosedCallback] = []

    @property
    def connected(self) -> bool:
        return self._interface is not None

    async def connect(self, bus: MessageBus) -> bool:
        """Bind to the notification server on *bus*.

        Returns:
            True if the server was found, False otherwise
        """
        if self._interface is not None:
            return True

        try:
            introspection = await bus.introspect(NOTIFICATIONS_BUS_NAME, NOTIFICATIONS_OBJECT_PATH)
            proxy = bus.get_proxy_object(
                NOTIFICATIONS_BUS_NAME, NOTIFICATIONS_OBJECT_PATH, introspection
            )
            self._interface = proxy.get_interface(NOTIFICATIONS_BUS_NAME)
        except (InterfaceNotFoundError, DBusError) as exc:
            logger.critical("Unable to reach the notification server: %s", exc)
            return False

        self._interface.on_notification_closed(self._on_notification_closed)
        self._interface.on_action_invoked(self._on_action_invoked)
        logger.debug("Connected to %s", NOTIFICATIONS_BUS_NAME)
        return True

    def disconnect(self) -> None:
        """Drop the server binding. Live notifications are forgotten."""
        if self._interface is None:
            return
        self._interface.off_notification_closed(self._on_notification_closed)
        self._interface.off_action_invoked(self._on_action_invoked)
        self._interface = None
        self._live.clear()

    def _require_interface(self, error_cls: type[ChannelError]) -> Any:
        if self._interface is None:
            raise error_cls("Notification server not connected")
        return self._interface

    async def query_capabilities(self) -> set[str]:
        interface = self._require_interface(CapabilityError)
        try:
            capabilities = await interface.call_get_capabilities()
        except DBusError as exc:
            raise CapabilityError(f"GetCapabilities failed: {exc}", exc) from exc
        return set(capabilities)

    def create(self, title: str, body: str, icon: str = "") -> Notification:
        return Notification(title=title, body=body, icon=icon)

    def attach_actions(
        self, notification: Notification, actions: list[NotificationAction]
    ) -> None:
        notification.actions.extend(actions)

    def attach_sound_hint(self, notification: Notification, sound_uri: str) -> None:
        notification.hints[HINT_SOUND_FILE] = sound_uri

    async def show(self, notification: Notification) -> None:
        interface = self._require_interface(ShowError)
        hints = {key: to_variant(value) for key, value in notification.hints.items()}
        try:
            server_id = await interface.call_notify(
                self.app_name,
                notification.server_id or 0,
                notification.icon,
                notification.title,
                notification.body,
                flatten_actions(notification.actions),
                hints,
                notification.expire_timeout,
            )
        except DBusError as exc:
            raise ShowError(f"Notify failed: {exc}", exc) from exc

        notification.server_id = int(server_id)
        self._live[notification.server_id] = notification

    async def clear(self, notification: Notification) -> None:
        server_id: Optional[int] = notification.server_id
        if server_id is None:
            return

        notification.server_id = None
        self._live.pop(server_id, None)
        if self._interface is None:
            return

        try:
            await self._interface.call_close_notification(server_id)
        except DBusError as exc:
            # The server already dropped it
            logger.debug("CloseNotification(%d) failed: %s", server_id, exc)

    def on_closed(self, callback: ClosedCallback) -> None:
        self._closed_callbacks.append(callback)

    def _on_notification_closed(self, server_id: int, reason: int) -> None:
        notification = self._live.pop(server_id, None)
        if notification is None:
            return

        logger.debug("Notification %d closed (reason %d)", server_id, reason)
        notification.server_id = None
        for callback in list(self._closed_callbacks):
            callback(notification)

    def _on_action_invoked(self, server_id: int, action_key: str) -> None:
        notification = self._live.get(server_id)
        if notification is None:
            return

        action = notification.find_action(action_key)
        if action is None:
            logger.debug("Ignoring unknown action %r on %d", action_key, server_id)
            return

        logger.debug("Action %r invoked on notification %d", action_key, server_id)
        action.callback()
