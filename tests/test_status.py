import pytest

from batterywarn.common.enums import PowerLevel
from batterywarn.notify.protocols import MockBattery
from batterywarn.system.status import BatteryTelemetry


def test_from_device_snapshot() -> None:
    battery = MockBattery(7.6, True)
    snapshot = BatteryTelemetry.from_device(battery)

    battery.update(50.0, False)

    assert snapshot == BatteryTelemetry(7.6, True)
    assert snapshot.level == PowerLevel.LOW
    assert snapshot.formatted_percentage == "8%"


@pytest.mark.parametrize("percentage", [-0.1, 100.5])
def test_percentage_out_of_range(percentage: float) -> None:
    with pytest.raises(ValueError):
        BatteryTelemetry(percentage, False)
