"""Data models for notifications."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from batterywarn.constants import CAPABILITY_ACTIONS, EXPIRES_DEFAULT, HINT_SOUND_FILE

HintValue = Union[bool, int, str]


@dataclass(frozen=True)
class NotificationAction:
    """A button on an interactive notification."""

    id: str
    label: str
    callback: Callable[[], None]


@dataclass
class Notification:
    """Handle for a single notification.

    Built locally by :meth:`NotificationChannel.create`, decorated with
    actions and hints, then handed to ``show``. ``server_id`` is set by
    the backend once the notification is on screen.
    """

    title: str
    body: str
    icon: str = ""
    hints: dict[str, HintValue] = field(default_factory=dict)
    actions: list[NotificationAction] = field(default_factory=list)
    expire_timeout: int = EXPIRES_DEFAULT
    server_id: Optional[int] = None

    @property
    def is_shown(self) -> bool:
        return self.server_id is not None

    @property
    def has_sound(self) -> bool:
        return HINT_SOUND_FILE in self.hints

    def find_action(self, action_id: str) -> Optional[NotificationAction]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None


@dataclass(frozen=True)
class CapabilitySnapshot:
    """Presentation features supported by the notification server."""

    actions_supported: bool = False

    @classmethod
    def from_capabilities(cls, capabilities: set[str] | frozenset[str]) -> CapabilitySnapshot:
        return cls(actions_supported=CAPABILITY_ACTIONS in capabilities)
