from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import pytest

from pypetlibro.models.result import ErrorKind, Result
from pypetlibro.models.snapshot import DeviceSnapshot
from pypetlibro.tray import (
    RotationPlan,
    TrayPlanner,
    compute_steps,
    percentage_to_position,
    position_to_percentage,
)


@dataclass
class FakeTrayDevice:
    position: int = 0
    advance_per_step: int = 1
    fail_on_step: int | None = None
    snapshot_fails: bool = False
    rotations: list[bool] = field(default_factory=list)
    snapshot_reads: list[bool] = field(default_factory=list)
    in_flight: int = 0
    max_in_flight: int = 0

    async def rotate_once(self, device_id: str | None = None, *, force: bool = False) -> Result[Any]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self.rotations.append(force)
            if self.fail_on_step is not None and len(self.rotations) == self.fail_on_step:
                return Result.fail(ErrorKind.NETWORK, "Request timed out", code=None)
            self.position = (self.position + self.advance_per_step) % 3
            return Result.ok()
        finally:
            self.in_flight -= 1

    async def get_snapshot(
        self, device_id: str | None = None, *, force_refresh: bool = False
    ) -> Result[DeviceSnapshot]:
        self.snapshot_reads.append(force_refresh)
        if self.snapshot_fails:
            return Result.fail(ErrorKind.API, "busy", code=2001)
        return Result.ok(DeviceSnapshot(tray_position=self.position, temperature=4.0))


@dataclass
class RecordingSleep:
    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# ------------------------------------------------------------------
# Mapping
# ------------------------------------------------------------------


@pytest.mark.parametrize("position", [0, 1, 2])
def test_percentage_mapping_is_weak_inverse(position: int) -> None:
    assert percentage_to_position(position_to_percentage(position)) == position


@pytest.mark.parametrize(
    ("percentage", "position"),
    [(0, 0), (33, 0), (33.5, 1), (34, 1), (50, 1), (66, 1), (67, 2), (100, 2), (-10, 0), (150, 2)],
)
def test_percentage_thresholds(percentage: float, position: int) -> None:
    assert percentage_to_position(percentage) == position


def test_nan_percentage_is_rejected() -> None:
    with pytest.raises(ValueError, match="NaN"):
        percentage_to_position(float("nan"))


def test_position_to_percentage_values() -> None:
    assert [position_to_percentage(p) for p in range(3)] == [0, 50, 100]
    with pytest.raises(ValueError):
        position_to_percentage(3)


def test_compute_steps_reaches_target_for_all_pairs() -> None:
    for current in range(3):
        for target in range(3):
            steps = compute_steps(current, target)
            assert 0 <= steps <= 2
            assert (current + steps) % 3 == target


def test_compute_steps_rejects_out_of_range_positions() -> None:
    with pytest.raises(ValueError, match="0..2"):
        compute_steps(0, 3)
    with pytest.raises(ValueError):
        compute_steps(-1, 0)


def test_rotation_plan_positions() -> None:
    plan = RotationPlan.between("SN1", 2, 1)
    assert plan.steps == 2
    assert plan.positions == (0, 1)
    assert not plan.is_noop
    assert RotationPlan.between("SN1", 1, 1).is_noop


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_single_step_matching_device_logs_no_warning(caplog: pytest.LogCaptureFixture) -> None:
    device = FakeTrayDevice(position=0)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    with caplog.at_level(logging.WARNING, logger="pypetlibro.tray"):
        result = await planner.step("SN1", 0)

    assert result.success
    assert result.data == 1
    assert planner.estimate("SN1") == 1
    assert device.snapshot_reads == [True]
    assert "mismatch" not in caplog.text


@pytest.mark.asyncio
async def test_reconcile_corrects_estimate_and_warns(caplog: pytest.LogCaptureFixture) -> None:
    device = FakeTrayDevice(position=0, advance_per_step=2)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    with caplog.at_level(logging.WARNING, logger="pypetlibro.tray"):
        result = await planner.execute_plan("SN1", 0, 1)

    assert result.data == 2
    assert planner.estimate("SN1") == 2
    assert "Tray position mismatch for SN1: expected 1, device reports 2" in caplog.text


@pytest.mark.asyncio
async def test_steps_are_forced_and_separated_by_settle_delay() -> None:
    device = FakeTrayDevice(position=1)
    sleep = RecordingSleep()
    planner = TrayPlanner(device, settle_delay=1.5, sleep=sleep)

    result = await planner.execute_plan("SN1", 1, 0)

    assert result.data == 0
    assert device.rotations == [True, True]
    # One pause between the two steps and one before the confirming read.
    assert sleep.delays == [1.5, 1.5]


@pytest.mark.asyncio
async def test_noop_plan_touches_nothing() -> None:
    device = FakeTrayDevice(position=2)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    result = await planner.execute_plan("SN1", 2, 2)

    assert result.success and result.data == 2
    assert device.rotations == []
    assert device.snapshot_reads == []


@pytest.mark.asyncio
async def test_failed_step_stops_plan_and_reports_failure() -> None:
    device = FakeTrayDevice(position=0, fail_on_step=2)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    result = await planner.execute_plan("SN1", 0, 2)

    assert not result.success
    assert result.error is ErrorKind.NETWORK
    assert len(device.rotations) == 2
    # The estimate is confirmed against the device even after a failure.
    assert device.snapshot_reads == [True]
    assert planner.estimate("SN1") == 1


@pytest.mark.asyncio
async def test_unconfirmed_position_keeps_estimate(caplog: pytest.LogCaptureFixture) -> None:
    device = FakeTrayDevice(position=0, snapshot_fails=True)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    with caplog.at_level(logging.WARNING, logger="pypetlibro.tray"):
        result = await planner.execute_plan("SN1", 0, 2)

    assert result.data == 2
    assert "Could not confirm tray position of SN1" in caplog.text


@pytest.mark.asyncio
async def test_concurrent_plans_for_one_device_do_not_interleave() -> None:
    device = FakeTrayDevice(position=0)
    planner = TrayPlanner(device, settle_delay=0)

    first, second = await asyncio.gather(planner.execute_plan("SN1", 0, 2), planner.execute_plan("SN1", 2, 1))

    assert first.data == 2
    assert second.data == 1
    assert device.max_in_flight == 1
    assert len(device.rotations) == 4


@pytest.mark.asyncio
async def test_move_to_percentage_always_starts_from_a_forced_read() -> None:
    device = FakeTrayDevice(position=1)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    result = await planner.move_to_percentage("SN1", 100)
    assert result.data == 2
    assert device.snapshot_reads == [True, True]

    # Turned by something other than the planner.
    device.position = 0

    result = await planner.move_to_percentage("SN1", 100)
    assert result.data == 2
    assert device.position == 2
    assert device.snapshot_reads == [True, True, True, True]


@pytest.mark.asyncio
async def test_move_to_current_position_confirms_with_device() -> None:
    device = FakeTrayDevice(position=1)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())
    planner.observe("SN1", 0)

    result = await planner.move_to_percentage("SN1", 0)

    assert result.data == 0
    assert device.position == 0
    assert len(device.rotations) == 2


@pytest.mark.asyncio
async def test_move_to_percentage_reports_failed_read() -> None:
    device = FakeTrayDevice(position=1, snapshot_fails=True)
    planner = TrayPlanner(device, settle_delay=0, sleep=RecordingSleep())

    result = await planner.move_to_percentage("SN1", 0)

    assert result.error is ErrorKind.API
    assert device.rotations == []


@pytest.mark.asyncio
async def test_observe_is_ignored_while_a_plan_runs() -> None:
    device = FakeTrayDevice(position=0)

    async def observe_mid_plan(delay: float) -> None:
        assert planner.is_busy("SN1")
        planner.observe("SN1", 0)

    planner = TrayPlanner(device, settle_delay=0, sleep=observe_mid_plan)
    result = await planner.execute_plan("SN1", 0, 2)

    assert result.data == 2
    assert planner.estimate("SN1") == 2
    assert not planner.is_busy("SN1")
    planner.observe("SN1", 1)
    assert planner.estimate("SN1") == 1
