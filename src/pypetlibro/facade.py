"""Cache-aware device facade.

:class:`CachedPetlibroClient` is the object a consumer (for example a
smart-home bridge) holds for the lifetime of one account.  Reads are
served from :class:`~pypetlibro.cache.RequestCache` before touching the
network; mutations go straight to :class:`~pypetlibro.client.PetlibroClient`
and invalidate the affected cache entries afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp

from pypetlibro._constants import (
    CONTROL_ACTION_TTL,
    DEVICE_LIST_TTL,
    FEEDING_STATUS_TTL,
    REAL_INFO_TTL,
)
from pypetlibro._transport import Transport
from pypetlibro.cache import CacheStats, RequestCache
from pypetlibro.client import PetlibroClient
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import PetlibroNotFoundError, PetlibroStateError
from pypetlibro.models.device import DeviceRecord
from pypetlibro.models.feed import ManualFeedSession
from pypetlibro.models.result import Result
from pypetlibro.models.snapshot import DeviceSnapshot
from pypetlibro.tray import TrayPlanner

_logger = logging.getLogger(__name__)

T = TypeVar("T")

# Control action names used in dedupe keys.
ACTION_START_FEED = "startFeed"
ACTION_STOP_FEED = "stopFeed"
ACTION_MANUAL_FEED = "manualFeed"
ACTION_ROTATE = "rotate"
ACTION_FEED_AUDIO = "feedAudio"
ACTION_DISPLAY = "display"
ACTION_SOUND = "sound"


def devices_key(email: str) -> str:
    return f"devices:{email}"


def real_info_key(device_id: str) -> str:
    return f"realInfo:{device_id}"


def feeding_status_key(device_id: str) -> str:
    return f"feedingStatus:{device_id}"


def control_key(action: str, device_id: str) -> str:
    return f"controlAction:{action}:{device_id}"


class CachedPetlibroClient:
    """Cache-aware operations for one PetLibro account.

    Every successful mutation invalidates the device's real-time entry
    (feed actions also its feeding status) and records a short-lived
    dedupe entry: repeating the same action on the same device within
    the dedupe window returns the recorded result without a new request.
    Pass ``force=True`` to bypass the dedupe.

    Usage::

        async with CachedPetlibroClient(config) as feeder:
            await feeder.start()
            snapshot = await feeder.get_snapshot()
            await feeder.tray.move_to_percentage(feeder.device_id, 100)

    Parameters
    ----------
    config : PetlibroConfig
        Account and device configuration.
    client : PetlibroClient or None
        Pre-built client; one is created from *config* otherwise.
    cache : RequestCache or None
        Pre-built cache; one is created otherwise.
    session : aiohttp.ClientSession or None
        Shared HTTP session handed to the created client.
    transport : Transport or None
        Injected transport handed to the created client.
    clock : callable
        Monotonic time source for the created client and cache.
    """

    def __init__(
        self,
        config: PetlibroConfig,
        *,
        client: PetlibroClient | None = None,
        cache: RequestCache | None = None,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._client = client or PetlibroClient(config, session=session, transport=transport, clock=clock)
        self._cache = cache or RequestCache(clock=clock)
        self._device_id: str | None = None
        self._devices: list[DeviceRecord] = []
        self._feeds: dict[str, ManualFeedSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._resets: dict[str, asyncio.TimerHandle] = {}
        self._closed = False
        self.tray = TrayPlanner(self, settle_delay=config.settle_delay)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CachedPetlibroClient:
        await self._client.__aenter__()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
        await self._client.__aexit__(*exc)

    @property
    def client(self) -> PetlibroClient:
        return self._client

    @property
    def cache(self) -> RequestCache:
        return self._cache

    @property
    def device_id(self) -> str | None:
        """Device selected by :meth:`start`, or the configured one before that."""
        return self._device_id or self._config.device_id

    @property
    def device(self) -> DeviceRecord | None:
        device_id = self.device_id
        return next((record for record in self._devices if record.device_id == device_id), None)

    def stats(self) -> CacheStats:
        return self._cache.stats()

    async def start(self) -> Result[DeviceRecord]:
        """Log in and select the device to control.

        Missing or rejected credentials produce a failure result instead of
        an exception; calling :meth:`start` again retries authentication.
        """
        login = await self._client.login()
        if not login.success:
            _logger.error("PetLibro initialization failed: %s", login.message)
            return Result.failure_of(login)
        return await self.resolve_device()

    async def resolve_device(self) -> Result[DeviceRecord]:
        """Pick the configured device, or the first one on the account.

        A configured id that is missing from the account is recovered by
        falling back to the first device with a warning.
        """
        devices = await self.get_devices()
        if not devices.success:
            return Result.failure_of(devices)
        records = devices.data or []
        if not records:
            return Result.from_exception(PetlibroNotFoundError("No devices on this account"))

        wanted = self._config.device_id
        chosen = next((record for record in records if wanted and record.device_id == wanted), None)
        if chosen is None:
            chosen = records[0]
            if wanted:
                _logger.warning(
                    "Configured device %s not found on the account; falling back to %s", wanted, chosen.device_id
                )
            else:
                _logger.info("No device configured; using %s (%s)", chosen.device_id, chosen.name or chosen.model)
        self._device_id = chosen.device_id
        return Result.ok(chosen)

    async def close(self) -> None:
        """Cancel timers and background refreshes, then drop cached state."""
        if self._closed:
            return
        self._closed = True
        for handle in self._resets.values():
            handle.cancel()
        self._resets.clear()
        await self._cache.close()
        self._feeds.clear()
        _logger.debug("CachedPetlibroClient closed")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, device_id: str | None) -> str | None:
        return device_id or self.device_id

    @staticmethod
    def _no_device(operation: str) -> Result[Any]:
        exc = PetlibroStateError("No device id resolved")
        _logger.warning("%s failed: %s", operation, exc)
        return Result.from_exception(exc)

    def _lock(self, device_id: str) -> asyncio.Lock:
        lock = self._locks.get(device_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[device_id] = lock
        return lock

    async def _mutate(
        self,
        action: str,
        device_id: str | None,
        call: Callable[[str], Awaitable[Result[T]]],
        *,
        force: bool = False,
        feed_action: bool = False,
        counterpart: str | None = None,
    ) -> Result[T]:
        device = self._resolve(device_id)
        if device is None:
            return self._no_device(action)
        key = control_key(action, device)
        async with self._lock(device):
            if not force:
                recent = self._cache.peek(key)
                if recent is not None:
                    _logger.debug("Suppressing repeated %s on %s", action, device)
                    return recent
            result = await call(device)
            if not result.success:
                return result
            self._cache.invalidate(real_info_key(device))
            if feed_action:
                self._cache.invalidate(feeding_status_key(device))
            if counterpart is not None:
                self._cache.invalidate(control_key(counterpart, device))
            self._cache.put(key, result, CONTROL_ACTION_TTL)
            return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_devices(self, *, force_refresh: bool = False) -> Result[list[DeviceRecord]]:
        result = await self._cache.get(
            devices_key(self._config.email),
            self._client.get_devices,
            DEVICE_LIST_TTL,
            force_refresh=force_refresh,
        )
        if result.success and result.data is not None:
            self._devices = list(result.data)
        return result

    async def get_snapshot(
        self, device_id: str | None = None, *, force_refresh: bool = False
    ) -> Result[DeviceSnapshot]:
        device = self._resolve(device_id)
        if device is None:
            return self._no_device("get_snapshot")
        result = await self._cache.get(
            real_info_key(device),
            lambda: self._client.get_snapshot(device),
            REAL_INFO_TTL,
            force_refresh=force_refresh,
        )
        if result.success and result.data is not None:
            self.tray.observe(device, result.data.tray_position)
        return result

    async def get_feeding_status(self, device_id: str | None = None, *, force_refresh: bool = False) -> Result[Any]:
        device = self._resolve(device_id)
        if device is None:
            return self._no_device("get_feeding_status")
        return await self._cache.get(
            feeding_status_key(device),
            lambda: self._client.get_grain_status(device),
            FEEDING_STATUS_TTL,
            force_refresh=force_refresh,
        )

    # ------------------------------------------------------------------
    # Feeding
    # ------------------------------------------------------------------

    def active_feed(self, device_id: str | None = None) -> ManualFeedSession | None:
        device = self._resolve(device_id)
        return self._feeds.get(device) if device else None

    async def start_feed(self, device_id: str | None = None, *, force: bool = False) -> Result[ManualFeedSession]:
        """Open the door of a wet-food feeder and remember the feed id."""

        async def _start(device: str) -> Result[ManualFeedSession]:
            result = await self._client.start_manual_feed(device)
            if result.success and result.data is not None:
                self._feeds[device] = result.data
            return result

        return await self._mutate(
            ACTION_START_FEED, device_id, _start, force=force, feed_action=True, counterpart=ACTION_STOP_FEED
        )

    async def stop_feed(
        self, device_id: str | None = None, feed_id: str | None = None, *, force: bool = False
    ) -> Result[str]:
        """Close the door for *feed_id*, or for the feed started through this facade."""

        async def _stop(device: str) -> Result[str]:
            active = self._feeds.get(device)
            wanted = feed_id or (active.feed_id if active is not None else None)
            if not wanted:
                exc = PetlibroStateError(f"No feed id recorded for {device}; nothing to stop")
                _logger.warning("stop_feed failed: %s", exc)
                return Result.from_exception(exc)
            result = await self._client.stop_manual_feed(device, wanted)
            if result.success:
                self._feeds.pop(device, None)
            return result

        return await self._mutate(
            ACTION_STOP_FEED, device_id, _stop, force=force, feed_action=True, counterpart=ACTION_START_FEED
        )

    def abandon_feed(self, device_id: str | None = None) -> ManualFeedSession | None:
        """Forget the recorded feed without contacting the device."""
        device = self._resolve(device_id)
        if device is None:
            return None
        feed = self._feeds.pop(device, None)
        if feed is not None:
            _logger.info("Abandoned feed %s on %s", feed.feed_id, device)
            self._cache.invalidate(control_key(ACTION_START_FEED, device))
        return feed

    async def feed(
        self, portions: int | None = None, device_id: str | None = None, *, force: bool = False
    ) -> Result[int]:
        """Dispense portions on a standard feeder."""
        return await self._mutate(
            ACTION_MANUAL_FEED,
            device_id,
            lambda device: self._client.manual_feed(device, portions),
            force=force,
            feed_action=True,
        )

    # ------------------------------------------------------------------
    # Tray, audio and settings
    # ------------------------------------------------------------------

    async def rotate_once(self, device_id: str | None = None, *, force: bool = False) -> Result[None]:
        """Rotate the tray one position forward.

        Multi-step moves go through :attr:`tray`, which forces every step.
        A rotation outside of a tray plan drops the planner's estimate.
        """
        result = await self._mutate(ACTION_ROTATE, device_id, self._client.rotate_tray, force=force)
        device = self._resolve(device_id)
        if result.success and device is not None and not self.tray.is_busy(device):
            self.tray.forget(device)
        return result

    async def play_audio(self, device_id: str | None = None, *, force: bool = False) -> Result[None]:
        return await self._mutate(ACTION_FEED_AUDIO, device_id, self._client.play_feed_audio, force=force)

    async def set_display(self, on: bool, device_id: str | None = None) -> Result[Any]:
        return await self._mutate(
            ACTION_DISPLAY, device_id, lambda device: self._client.set_display(device, on), force=True
        )

    async def set_sound(self, on: bool, device_id: str | None = None) -> Result[Any]:
        return await self._mutate(
            ACTION_SOUND, device_id, lambda device: self._client.set_sound(device, on), force=True
        )

    # ------------------------------------------------------------------
    # Background refresh and momentary timers
    # ------------------------------------------------------------------

    def start_background_refresh(self, device_id: str | None = None, interval: float | None = None) -> bool:
        """Keep the device's real-time entry warm ahead of its TTL."""
        device = self._resolve(device_id)
        if device is None or self._closed:
            return False
        self._cache.start_background_refresh(
            real_info_key(device),
            lambda: self._client.get_snapshot(device),
            ttl=REAL_INFO_TTL,
            interval=interval or self._config.background_refresh_interval,
        )
        return True

    def stop_background_refresh(self, device_id: str | None = None) -> bool:
        device = self._resolve(device_id)
        if device is None:
            return False
        return self._cache.stop_background_refresh(real_info_key(device))

    def schedule_reset(self, name: str, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        """Run *callback* after *delay* seconds (e.g. flip a momentary switch back).

        Scheduling a name that is already pending replaces the old timer.
        All pending timers are cancelled by :meth:`close`.
        """
        if self._closed:
            raise PetlibroStateError("CachedPetlibroClient is closed")
        self.cancel_reset(name)
        handle = asyncio.get_running_loop().call_later(delay, self._fire_reset, name, callback)
        self._resets[name] = handle
        return handle

    def cancel_reset(self, name: str) -> bool:
        handle = self._resets.pop(name, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def pending_resets(self) -> list[str]:
        return list(self._resets)

    def _fire_reset(self, name: str, callback: Callable[[], Any]) -> None:
        self._resets.pop(name, None)
        try:
            callback()
        except Exception:
            _logger.warning("Reset callback %s failed", name, exc_info=True)
