import asyncio
from typing import Callable, Optional

import pytest

from batterywarn.notifier import NotificationStateMachine
from batterywarn.notify.capabilities import CapabilityCache
from batterywarn.notify.protocols import MockNotificationChannel, MockStatePublisher
from batterywarn.silent import SilentModeGate, SilentModeListener

SOUND_URI = "file:///usr/share/sounds/test/battery-low.oga"


class FakeSounds:
    def __init__(self, uri: str = SOUND_URI) -> None:
        self.uri = uri
        self.lookups = 0

    def sound_uri(self) -> str:
        self.lookups += 1
        return self.uri


class FakeLauncher:
    def __init__(self) -> None:
        self.launches = 0

    def launch(self) -> None:
        self.launches += 1


class ControlledLookup:
    """Silent-mode lookup whose answer the test decides."""

    def __init__(self) -> None:
        self.result: Optional[asyncio.Future[bool]] = None
        self.listener: Optional[SilentModeListener] = None
        self.unsubscribed = False

    async def fetch(self) -> bool:
        self.result = asyncio.get_running_loop().create_future()
        return await self.result

    def subscribe(self, listener: SilentModeListener) -> None:
        self.listener = listener

    def unsubscribe(self) -> None:
        self.unsubscribed = True
        self.listener = None

    def answer(self, value: bool) -> None:
        assert self.result is not None, "fetch() was not awaited yet"
        self.result.set_result(value)

    def fail(self, exc: Exception) -> None:
        assert self.result is not None, "fetch() was not awaited yet"
        self.result.set_exception(exc)


@pytest.fixture
def channel() -> MockNotificationChannel:
    return MockNotificationChannel()


@pytest.fixture
def publisher() -> MockStatePublisher:
    return MockStatePublisher()


@pytest.fixture
def sounds() -> FakeSounds:
    return FakeSounds()


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def make_notifier(
    channel: MockNotificationChannel,
    publisher: MockStatePublisher,
    sounds: FakeSounds,
    launcher: FakeLauncher,
) -> Callable[..., NotificationStateMachine]:
    """Build a notifier around the shared fakes; the silent gate defaults to off."""

    def factory(
        silent_gate: Optional[SilentModeGate] = None,
        notification_channel: Optional[MockNotificationChannel] = None,
    ) -> NotificationStateMachine:
        ch = notification_channel or channel
        return NotificationStateMachine(
            channel=ch,
            publisher=publisher,
            capabilities=CapabilityCache(ch),
            silent_gate=silent_gate or SilentModeGate(enabled=False),
            sounds=sounds,
            settings_launcher=launcher,
        )

    return factory
