"""Rotating tray planning.

The feeder can only rotate its tray one position forward, never seek to
an absolute position.  This module maps an external 0-100 control value
onto the three tray positions and drives the single-step primitive to
reach a requested position.

Percentage policy (applied in both directions):

============  ========
percentage    position
============  ========
0 - 33        0
34 - 66       1
67 - 100      2
============  ========

and positions map back to 0, 50 and 100.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pypetlibro._constants import DEFAULT_SETTLE_DELAY, TRAY_POSITIONS
from pypetlibro.models.result import Result
from pypetlibro.models.snapshot import DeviceSnapshot

_logger = logging.getLogger(__name__)

_LOW_THRESHOLD = 33
_HIGH_THRESHOLD = 66
_POSITION_PERCENTAGES: tuple[int, ...] = (0, 50, 100)


def _check_position(position: int) -> int:
    if not 0 <= position < TRAY_POSITIONS:
        raise ValueError(f"tray position must be in 0..{TRAY_POSITIONS - 1}, got {position}")
    return position


def position_to_percentage(position: int) -> int:
    return _POSITION_PERCENTAGES[_check_position(position)]


def percentage_to_position(percentage: float) -> int:
    """Map a 0-100 value to a tray position; out of range values are clamped."""
    if math.isnan(percentage):
        raise ValueError("percentage must be a number, got NaN")
    value = min(max(percentage, 0), 100)
    if value <= _LOW_THRESHOLD:
        return 0
    if value <= _HIGH_THRESHOLD:
        return 1
    return 2


def compute_steps(current: int, target: int) -> int:
    """Forward single steps needed to go from *current* to *target* (0..2)."""
    _check_position(current)
    _check_position(target)
    return (target - current + TRAY_POSITIONS) % TRAY_POSITIONS


@dataclass(frozen=True, slots=True)
class RotationPlan:
    """Ordered single-step rotations from ``current`` to ``target``."""

    device_id: str
    current: int
    target: int
    steps: int

    @classmethod
    def between(cls, device_id: str, current: int, target: int) -> RotationPlan:
        return cls(device_id=device_id, current=current, target=target, steps=compute_steps(current, target))

    @property
    def is_noop(self) -> bool:
        return self.steps == 0

    @property
    def positions(self) -> tuple[int, ...]:
        """Expected tray position after each step."""
        return tuple((self.current + step) % TRAY_POSITIONS for step in range(1, self.steps + 1))


class TrayDevice(Protocol):
    """What the planner needs from the device layer."""

    async def rotate_once(self, device_id: str | None = None, *, force: bool = False) -> Result[Any]:
        ...

    async def get_snapshot(
        self, device_id: str | None = None, *, force_refresh: bool = False
    ) -> Result[DeviceSnapshot]:
        ...


class TrayPlanner:
    """Execute rotation plans one step at a time.

    Plans for the same device are serialized; steps are never issued in
    parallel.  The local position estimate is advanced optimistically after
    each successful step and then reconciled with a forced snapshot read.

    Parameters
    ----------
    device : TrayDevice
        Usually :class:`pypetlibro.facade.CachedPetlibroClient`.
    settle_delay : float
        Seconds to wait after each rotation so the plate stops moving.
    sleep : callable
        Awaitable sleep, injectable for tests.
    """

    def __init__(
        self,
        device: TrayDevice,
        *,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._device = device
        self._settle_delay = settle_delay
        self._sleep = sleep
        self._estimates: dict[str, int] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def estimate(self, device_id: str) -> int | None:
        """Last known (possibly optimistic) tray position for *device_id*."""
        return self._estimates.get(device_id)

    def forget(self, device_id: str) -> None:
        self._estimates.pop(device_id, None)

    def observe(self, device_id: str, position: int) -> None:
        """Record a position reported by the device outside of a plan."""
        if not self.is_busy(device_id):
            self._estimates[device_id] = _check_position(position)

    def is_busy(self, device_id: str) -> bool:
        """Whether a plan is currently running for *device_id*."""
        lock = self._locks.get(device_id)
        return lock is not None and lock.locked()

    def plan(self, device_id: str, current: int, target: int) -> RotationPlan:
        return RotationPlan.between(device_id, current, target)

    def _lock(self, device_id: str) -> asyncio.Lock:
        lock = self._locks.get(device_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[device_id] = lock
        return lock

    async def execute_plan(self, device_id: str, current: int, target: int) -> Result[int]:
        """Rotate from *current* to *target*.

        Returns
        -------
        Result[int]
            On success ``data`` is the reconciled tray position.  A failed
            step returns that step's failure.
        """
        async with self._lock(device_id):
            return await self._run(self.plan(device_id, current, target))

    async def _run(self, plan: RotationPlan) -> Result[int]:
        device_id = plan.device_id
        self._estimates[device_id] = plan.current
        if plan.is_noop:
            _logger.debug("Tray of %s already at position %d", device_id, plan.target)
            return Result.ok(plan.target)

        _logger.info(
            "Rotating tray of %s from %d to %d (%d step(s))", device_id, plan.current, plan.target, plan.steps
        )
        for index in range(plan.steps):
            if index:
                await self._sleep(self._settle_delay)
            result = await self._device.rotate_once(device_id, force=True)
            if not result.success:
                _logger.warning(
                    "Tray rotation step %d/%d failed for %s: %s", index + 1, plan.steps, device_id, result.message
                )
                await self._reconcile(device_id)
                return Result.failure_of(result)
            self._estimates[device_id] = (self._estimates[device_id] + 1) % TRAY_POSITIONS

        await self._sleep(self._settle_delay)
        return Result.ok(await self._reconcile(device_id))

    async def _reconcile(self, device_id: str) -> int:
        estimate = self._estimates[device_id]
        snapshot = await self._device.get_snapshot(device_id, force_refresh=True)
        if not snapshot.success or snapshot.data is None:
            _logger.warning("Could not confirm tray position of %s: %s", device_id, snapshot.message)
            return estimate
        actual = snapshot.data.tray_position
        if actual != estimate:
            _logger.warning(
                "Tray position mismatch for %s: expected %d, device reports %d; using device value",
                device_id,
                estimate,
                actual,
            )
            self._estimates[device_id] = actual
        return actual

    async def step(self, device_id: str, current: int) -> Result[int]:
        """Rotate one position forward from *current*."""
        return await self.execute_plan(device_id, current, (current + 1) % TRAY_POSITIONS)

    async def move_to_percentage(self, device_id: str, percentage: float) -> Result[int]:
        """Move the tray to the position *percentage* maps to.

        The starting position comes from a forced snapshot read taken under
        the plan lock, never from the local estimate.
        """
        target = percentage_to_position(percentage)
        async with self._lock(device_id):
            snapshot = await self._device.get_snapshot(device_id, force_refresh=True)
            if not snapshot.success or snapshot.data is None:
                return Result.failure_of(snapshot)
            return await self._run(self.plan(device_id, snapshot.data.tray_position, target))
