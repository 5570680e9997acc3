"""Tests for the low-battery notification state machine."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from batterywarn.common.enums import DeviceKind, PowerLevel
from batterywarn.constants import (
    ACTION_DISMISS,
    ACTION_SETTINGS,
    EXPIRES_NEVER,
    HINT_AFFIRMATIVE_TINT,
    HINT_NON_SHAPED_ICON,
    HINT_SNAP_DECISIONS,
    HINT_SNAP_DECISIONS_TIMEOUT,
    HINT_SOUND_FILE,
    INT32_MAX,
)
from batterywarn.errors import NotABatteryError
from batterywarn.notifier import NotificationStateMachine, NotifierState
from batterywarn.notify.protocols import (
    ErrorSimulatingChannel,
    MockBattery,
    MockNotificationChannel,
    MockStatePublisher,
    assert_published,
    assert_shown_with,
)
from batterywarn.silent import SilentModeGate
from batterywarn.system.status import BatteryTelemetry

from conftest import SOUND_URI, ControlledLookup, FakeLauncher

NotifierFactory = Callable[..., NotificationStateMachine]


def telemetry(percentage: float, discharging: bool) -> BatteryTelemetry:
    return BatteryTelemetry(percentage=percentage, is_discharging=discharging)


async def feed(notifier: NotificationStateMachine, *events: BatteryTelemetry) -> None:
    for event in events:
        await notifier.on_telemetry_changed(event)


async def settle() -> None:
    """Let spawned notifier tasks run to completion."""
    for _ in range(5):
        await asyncio.sleep(0)


# ── decision rule ──────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    ("prev_level", "prev_dis", "new_level", "new_dis", "expected"),
    [
        (PowerLevel.OK, True, PowerLevel.LOW, True, True),  # worsened while discharging
        (PowerLevel.LOW, True, PowerLevel.CRITICAL, True, True),
        (PowerLevel.CRITICAL, False, PowerLevel.CRITICAL, True, True),  # unplugged while low
        (PowerLevel.LOW, True, PowerLevel.LOW, True, False),  # steady
        (PowerLevel.CRITICAL, True, PowerLevel.LOW, True, False),  # improving
        (PowerLevel.OK, False, PowerLevel.CRITICAL, False, False),  # charging
        (PowerLevel.OK, False, PowerLevel.OK, True, False),  # unplugged at OK
    ],
)
def test_should_show(
    prev_level: PowerLevel,
    prev_dis: bool,
    new_level: PowerLevel,
    new_dis: bool,
    expected: bool,
) -> None:
    assert NotificationStateMachine.should_show(prev_level, prev_dis, new_level, new_dis) is expected


def test_should_clear() -> None:
    assert NotificationStateMachine.should_clear(PowerLevel.CRITICAL, False) is True
    assert NotificationStateMachine.should_clear(PowerLevel.OK, True) is True
    assert NotificationStateMachine.should_clear(PowerLevel.LOW, True) is False


def test_notifier_state_reset() -> None:
    state = NotifierState(PowerLevel.CRITICAL, True, None)
    state.reset()
    assert state == NotifierState()


# ── scenarios ──────────────────────────────────────────────────────────────
class TestScenarios:
    def test_drop_into_low_while_discharging_warns_once(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(15, True), telemetry(8, True)))

        assert len(channel.shown) == 1
        assert_shown_with(channel, "Battery Low", "8% charge remaining")
        assert_published(publisher, level=PowerLevel.LOW, is_warning=True)
        assert notifier.is_warning is True
        assert notifier.power_level == PowerLevel.LOW

    def test_unplugging_while_critical_warns_once(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(3, False)))
        assert channel.shown == []

        asyncio.run(feed(notifier, telemetry(3, True)))

        assert len(channel.shown) == 1
        assert_shown_with(channel, "Battery Critical", "3% charge remaining")
        assert_published(publisher, level=PowerLevel.VERY_LOW, is_warning=True)

    def test_steady_low_battery_does_not_nag(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, *[telemetry(8, True)] * 5))

        assert len(channel.shown) == 1
        assert len(channel.cleared) <= 1

    def test_plugging_in_clears_without_forcing_ok(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()
        asyncio.run(feed(notifier, telemetry(8, True)))
        warning = channel.last_shown

        asyncio.run(feed(notifier, telemetry(8, False)))

        assert channel.cleared == [warning]
        assert_published(publisher, level=PowerLevel.LOW, is_warning=False)
        assert notifier.is_warning is False

    def test_recovering_to_ok_clears(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(8, True), telemetry(40, True)))

        assert len(channel.cleared) == 1
        assert_published(publisher, level=PowerLevel.OK, is_warning=False)

    def test_worsening_replaces_the_warning(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(9, True), telemetry(4, True), telemetry(1, True)))

        assert [n.title for n in channel.shown] == [
            "Battery Low",
            "Battery Critical",
            "Battery Critical",
        ]
        # each new warning clears the previous one first
        assert channel.cleared == channel.shown[:2]
        assert not channel.shown[0].is_shown
        assert channel.shown[2].is_shown

    def test_improving_while_discharging_leaves_warning(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(2, True), telemetry(7, True)))

        assert len(channel.shown) == 1
        assert channel.cleared == []
        assert notifier.is_warning is True

    def test_charging_at_critical_never_warns(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(2, False), telemetry(1, False), telemetry(0, False)))

        assert channel.shown == []

    def test_power_level_published_on_every_event(
        self,
        make_notifier: NotifierFactory,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(50, True), telemetry(9, True), telemetry(9, True)))

        assert publisher.power_levels == [PowerLevel.OK, PowerLevel.LOW, PowerLevel.LOW]


class TestClear:
    def test_clear_twice_publishes_same_state(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()
        asyncio.run(feed(notifier, telemetry(8, True)))

        asyncio.run(feed(notifier, telemetry(8, False)))
        after_first = (publisher.power_level, publisher.is_warning)
        asyncio.run(feed(notifier, telemetry(8, False)))

        assert (publisher.power_level, publisher.is_warning) == after_first
        assert publisher.is_warning is False
        assert len(channel.cleared) == 1

    def test_user_closing_warning_clears_state(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()

        async def scenario() -> None:
            await feed(notifier, telemetry(8, True))
            warning = channel.last_shown
            assert warning is not None
            channel.simulate_user_close(warning)
            await settle()

        asyncio.run(scenario())

        assert notifier.is_warning is False
        assert publisher.is_warning is False

    def test_closing_a_stale_notification_is_ignored(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        async def scenario() -> None:
            await feed(notifier, telemetry(9, True), telemetry(4, True))
            await notifier.on_notification_closed(channel.shown[0])

        asyncio.run(scenario())

        assert notifier.is_warning is True
        assert notifier.state.active is channel.shown[1]


# ── presentation ───────────────────────────────────────────────────────────
class TestPresentation:
    def test_interactive_warning_hints_and_actions(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        launcher: FakeLauncher,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(8, True)))

        warning = channel.last_shown
        assert warning is not None
        assert warning.hints[HINT_SNAP_DECISIONS] is True
        assert warning.hints[HINT_NON_SHAPED_ICON] is True
        assert warning.hints[HINT_AFFIRMATIVE_TINT] is True
        assert warning.hints[HINT_SNAP_DECISIONS_TIMEOUT] == INT32_MAX
        assert warning.expire_timeout == EXPIRES_NEVER
        assert [a.id for a in warning.actions] == [ACTION_DISMISS, ACTION_SETTINGS]

        settings_action = warning.find_action(ACTION_SETTINGS)
        assert settings_action is not None
        settings_action.callback()
        assert launcher.launches == 1

    def test_plain_warning_without_action_support(
        self,
        make_notifier: NotifierFactory,
        publisher: MockStatePublisher,
    ) -> None:
        plain = MockNotificationChannel(capabilities={"body"})
        notifier = make_notifier(notification_channel=plain)

        asyncio.run(feed(notifier, telemetry(8, True)))

        warning = plain.last_shown
        assert warning is not None
        assert warning.actions == []
        assert warning.hints == {}
        assert publisher.is_warning is True

    def test_capabilities_queried_once(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(9, True), telemetry(4, True), telemetry(1, True)))

        assert channel.capability_queries == 1

    def test_icon_comes_from_battery(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(3, True, icon_names=["battery-empty-symbolic", "battery-empty"])

        asyncio.run(notifier.set_battery(battery))

        assert channel.last_shown is not None
        assert channel.last_shown.icon == "battery-empty-symbolic"

    def test_sound_attached_when_gate_disabled(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()

        asyncio.run(feed(notifier, telemetry(8, True)))

        assert channel.last_shown is not None
        assert channel.last_shown.hints[HINT_SOUND_FILE] == SOUND_URI


class TestSilentMode:
    def test_pending_gate_suppresses_sound_until_resolved(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        lookup = ControlledLookup()
        gate = SilentModeGate(lookup)
        notifier = make_notifier(silent_gate=gate)

        async def scenario() -> None:
            gate.start()
            await settle()
            await feed(notifier, telemetry(8, True))
            assert channel.last_shown is not None
            assert not channel.last_shown.has_sound

            lookup.answer(False)
            await gate.wait_resolved()
            await feed(notifier, telemetry(4, True))
            assert channel.last_shown.has_sound

        asyncio.run(scenario())

    def test_silent_mode_on_suppresses_sound(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        lookup = ControlledLookup()
        gate = SilentModeGate(lookup)
        notifier = make_notifier(silent_gate=gate)

        async def scenario() -> None:
            gate.start()
            await settle()
            lookup.answer(True)
            await gate.wait_resolved()
            await feed(notifier, telemetry(8, True))

        asyncio.run(scenario())

        assert channel.last_shown is not None
        assert not channel.last_shown.has_sound


# ── failures ───────────────────────────────────────────────────────────────
class TestFailures:
    def test_show_failure_leaves_state_cleared(
        self,
        make_notifier: NotifierFactory,
        publisher: MockStatePublisher,
    ) -> None:
        failing = ErrorSimulatingChannel(fail_on_methods=["show"])
        notifier = make_notifier(notification_channel=failing)

        asyncio.run(feed(notifier, telemetry(8, True)))

        assert failing.shown == []
        assert notifier.is_warning is False
        assert_published(publisher, level=PowerLevel.LOW, is_warning=False)

    def test_capability_failure_falls_back_to_plain(
        self,
        make_notifier: NotifierFactory,
    ) -> None:
        failing = ErrorSimulatingChannel(fail_on_methods=["query_capabilities"])
        notifier = make_notifier(notification_channel=failing)

        asyncio.run(feed(notifier, telemetry(9, True), telemetry(4, True)))

        assert failing.capability_queries == 1
        assert len(failing.shown) == 2
        assert all(n.actions == [] and not n.has_sound for n in failing.shown)


# ── battery attach / detach ────────────────────────────────────────────────
class TestBattery:
    def test_attach_runs_transition_immediately(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(3, True)

        asyncio.run(notifier.set_battery(battery))

        assert notifier.battery is battery
        assert battery.subscriber_count == 1
        assert len(channel.shown) == 1

    def test_battery_changes_drive_the_notifier(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(50, True)

        async def scenario() -> None:
            await notifier.set_battery(battery)
            battery.update(9, True)
            await settle()

        asyncio.run(scenario())

        assert len(channel.shown) == 1
        assert_published(publisher, level=PowerLevel.LOW, is_warning=True)

    def test_detach_and_reattach(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(3, True)

        async def scenario() -> None:
            await notifier.set_battery(battery)
            warning = channel.last_shown

            await notifier.set_battery(None)
            assert channel.cleared == [warning]
            assert_published(publisher, level=PowerLevel.OK, is_warning=False)
            assert notifier.state == NotifierState()
            assert battery.subscriber_count == 0

            await notifier.set_battery(battery)

        asyncio.run(scenario())

        assert len(channel.shown) == 2
        assert notifier.is_warning is True

    def test_setting_same_battery_is_noop(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(3, True)

        async def scenario() -> None:
            await notifier.set_battery(battery)
            await notifier.set_battery(battery)

        asyncio.run(scenario())

        assert len(channel.shown) == 1
        assert battery.subscriber_count == 1

    def test_changes_from_replaced_battery_are_dropped(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        notifier = make_notifier()
        old = MockBattery(50, True)
        new = MockBattery(60, False)

        async def scenario() -> None:
            await notifier.set_battery(old)
            old.update(1, True)  # queued, not yet processed
            await notifier.set_battery(new)
            await settle()

        asyncio.run(scenario())

        assert channel.shown == []
        assert notifier.battery is new

    def test_non_battery_is_rejected(self, make_notifier: NotifierFactory) -> None:
        notifier = make_notifier()
        mouse = MockBattery(3, True, kind=DeviceKind.MOUSE)

        with pytest.raises(NotABatteryError):
            asyncio.run(notifier.set_battery(mouse))

        assert notifier.battery is None

    def test_out_of_range_reading_is_logged_and_dropped(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        publisher: MockStatePublisher,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(50, True)

        async def scenario() -> None:
            await notifier.set_battery(battery)
            battery.update(140, True)
            await settle()
            battery.update(9, True)
            await settle()

        asyncio.run(scenario())

        assert "Ignoring battery reading" in caplog.text
        assert len(channel.shown) == 1
        assert_published(publisher, level=PowerLevel.LOW, is_warning=True)

    def test_out_of_range_reading_at_attach_keeps_watching(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        notifier = make_notifier()
        battery = MockBattery(-5, True)

        async def scenario() -> None:
            await notifier.set_battery(battery)
            assert channel.shown == []
            battery.update(3, True)
            await settle()

        asyncio.run(scenario())

        assert "Ignoring battery reading" in caplog.text
        assert notifier.battery is battery
        assert battery.subscriber_count == 1
        assert len(channel.shown) == 1

    def test_close_detaches_and_cancels_gate(
        self,
        make_notifier: NotifierFactory,
        channel: MockNotificationChannel,
    ) -> None:
        lookup = ControlledLookup()
        gate = SilentModeGate(lookup)
        notifier = make_notifier(silent_gate=gate)
        battery = MockBattery(3, True)

        async def scenario() -> None:
            gate.start()
            await notifier.set_battery(battery)
            await notifier.close()

        asyncio.run(scenario())

        assert notifier.battery is None
        assert len(channel.cleared) == 1
        assert lookup.unsubscribed is True
        assert gate.pending is True
