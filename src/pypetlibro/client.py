"""High-level async client for the PetLibro cloud API."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import aiohttp
from pydantic import BaseModel, ValidationError

from pypetlibro._client import commands as _commands
from pypetlibro._client import reads as _reads
from pypetlibro._client import settings as _settings
from pypetlibro._constants import SESSION_EXPIRED_CODES
from pypetlibro._transport import JsonTransport, Transport
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import (
    PetlibroApiError,
    PetlibroAuthError,
    PetlibroError,
    PetlibroRequestError,
    PetlibroStateError,
)
from pypetlibro.feed_stop import FeedStopChain
from pypetlibro.models.device import DeviceRecord
from pypetlibro.models.feed import ManualFeedSession
from pypetlibro.models.result import Result
from pypetlibro.models.snapshot import DeviceSnapshot
from pypetlibro.session import Session, SessionManager

_logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R", bound=BaseModel)


class PetlibroClient:
    """Async client for the PetLibro cloud API.

    Every device operation returns a :class:`~pypetlibro.models.Result`
    instead of raising.  Each call first obtains a valid session from
    :attr:`sessions`, which refreshes or logs in as needed.

    Usage::

        async with PetlibroClient(config) as client:
            devices = await client.get_devices()
            snapshot = await client.get_snapshot(devices.data[0].device_id)

    A ``transport`` may be injected (tests, custom HTTP stacks); the
    client is then usable without entering the context manager.
    """

    def __init__(
        self,
        config: PetlibroConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        stop_chain: FeedStopChain | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config.validate()
        self._external_session = session is not None
        self._http_session = session
        self._injected_transport = transport is not None
        self._transport: Transport | None = transport
        self._stop_chain = stop_chain or FeedStopChain()
        self.sessions = SessionManager(config, self._require_transport, clock=clock)

    @property
    def config(self) -> PetlibroConfig:
        return self._config

    @property
    def stop_chain(self) -> FeedStopChain:
        return self._stop_chain

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PetlibroClient:
        if not self._injected_transport:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = JsonTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        if not self._injected_transport:
            self._transport = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def login(self) -> Result[Session]:
        """Authenticate with the configured email and password."""
        try:
            session = await self.sessions.login()
        except PetlibroError as exc:
            _logger.warning("PetLibro login failed: %s", exc)
            return Result.from_exception(exc)
        return Result.ok(session)

    async def logout(self) -> None:
        """Drop the session locally and on the server (best effort)."""
        await self.sessions.logout()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise PetlibroStateError("Client not initialized. Use 'async with PetlibroClient(...) as client:'")
        return self._transport

    @staticmethod
    def _require_device(device_id: str | None) -> str:
        device_id = (device_id or "").strip()
        if not device_id:
            raise PetlibroStateError("No device id resolved")
        return device_id

    @staticmethod
    def _validate(model: type[R], **fields: Any) -> R:
        """Build a request model, raising :class:`PetlibroRequestError` on bad input."""
        try:
            return model(**fields)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
            )
            raise PetlibroRequestError(f"Invalid {model.__name__}: {details}") from exc

    @staticmethod
    def _failed(operation: str, exc: PetlibroError) -> Result[Any]:
        _logger.warning("%s failed: %s", operation, exc)
        return Result.from_exception(exc)

    async def _call(
        self,
        operation: str,
        fn: Callable[[Session, Transport], Awaitable[T]],
    ) -> Result[T]:
        """Run *fn* with a valid session and wrap the outcome in a Result.

        Nothing is retried.  A "not logged in" vendor code invalidates the
        session so that the caller's next attempt re-authenticates.
        """
        try:
            transport = self._require_transport()
            session = await self.sessions.ensure_valid()
            data = await fn(session, transport)
        except PetlibroApiError as exc:
            if not isinstance(exc, PetlibroAuthError) and exc.code in SESSION_EXPIRED_CODES:
                _logger.info("Session rejected by %s (code=%s); invalidating", exc.endpoint, exc.code)
                self.sessions.invalidate()
            return self._failed(operation, exc)
        except PetlibroError as exc:
            return self._failed(operation, exc)
        return Result.ok(data)

    async def _device_call(
        self,
        operation: str,
        device_id: str | None,
        fn: Callable[[Session, Transport, str], Awaitable[T]],
    ) -> Result[T]:
        try:
            resolved = self._require_device(device_id)
        except PetlibroStateError as exc:
            return self._failed(operation, exc)
        return await self._call(operation, lambda session, transport: fn(session, transport, resolved))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_devices(self) -> Result[list[DeviceRecord]]:
        """List every feeder bound to the account."""
        return await _reads.get_devices(self)

    async def get_snapshot(self, device_id: str | None) -> Result[DeviceSnapshot]:
        """Read tray position and temperature."""
        return await _reads.get_snapshot(self, device_id)

    async def get_grain_status(self, device_id: str | None) -> Result[Any]:
        return await _reads.get_grain_status(self, device_id)

    async def get_feeding_plan_today(self, device_id: str | None) -> Result[Any]:
        return await _reads.get_feeding_plan_today(self, device_id)

    async def get_wet_feeding_plan(self, device_id: str | None) -> Result[Any]:
        return await _reads.get_wet_feeding_plan(self, device_id)

    async def get_work_record(self, device_id: str | None) -> Result[Any]:
        return await _reads.get_work_record(self, device_id)

    async def get_default_matrix(self, device_id: str | None) -> Result[Any]:
        return await _reads.get_default_matrix(self, device_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_manual_feed(self, device_id: str | None) -> Result[ManualFeedSession]:
        """Open the door of a wet-food feeder.

        On success ``Result.feed_id`` holds the id needed to stop the feed.
        When the vendor omits it a placeholder id is returned instead.
        """
        return await _commands.start_manual_feed(self, device_id)

    async def stop_manual_feed(self, device_id: str | None, feed_id: str | None) -> Result[str]:
        """Close the door for *feed_id*.

        ``Result.data`` names how the feed was stopped: ``"feed_id"`` for
        a direct stop, ``"resolved_feed_id"`` when a placeholder was
        resolved from the snapshot, or the name of the fallback strategy.
        """
        return await _commands.stop_manual_feed(self, device_id, feed_id)

    async def manual_feed(self, device_id: str | None, portions: int | None = None) -> Result[int]:
        """Dispense portions on a standard feeder (``config.portions`` by default)."""
        return await _commands.manual_feed(self, device_id, portions)

    async def rotate_tray(self, device_id: str | None) -> Result[None]:
        """Rotate the tray exactly one position forward."""
        return await _commands.rotate_tray(self, device_id)

    async def play_feed_audio(self, device_id: str | None) -> Result[None]:
        return await _commands.play_feed_audio(self, device_id)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def set_lid_close_time(self, device_id: str | None, seconds: int) -> Result[Any]:
        return await _settings.set_lid_close_time(self, device_id, seconds)

    async def set_lid_speed(self, device_id: str | None, speed: str) -> Result[Any]:
        return await _settings.set_lid_speed(self, device_id, speed)

    async def set_lid_mode(self, device_id: str | None, mode: str) -> Result[Any]:
        return await _settings.set_lid_mode(self, device_id, mode)

    async def open_lid(self, device_id: str | None) -> Result[Any]:
        return await _settings.open_lid(self, device_id)

    async def set_water_interval(
        self,
        device_id: str | None,
        minutes: int,
        *,
        current_mode: Any = None,
        current_duration: Any = None,
    ) -> Result[Any]:
        return await _settings.set_water_interval(
            self, device_id, minutes, current_mode=current_mode, current_duration=current_duration
        )

    async def set_water_dispensing_duration(
        self,
        device_id: str | None,
        seconds: int,
        *,
        current_mode: Any = None,
        current_interval: Any = None,
    ) -> Result[Any]:
        return await _settings.set_water_dispensing_duration(
            self, device_id, seconds, current_mode=current_mode, current_interval=current_interval
        )

    async def set_water_dispensing_mode(self, device_id: str | None, mode: Any) -> Result[Any]:
        return await _settings.set_water_dispensing_mode(self, device_id, mode)

    async def set_display_icon(self, device_id: str | None, icon: Any) -> Result[Any]:
        return await _settings.set_display_icon(self, device_id, icon)

    async def set_display_text(self, device_id: str | None, text: str) -> Result[Any]:
        return await _settings.set_display_text(self, device_id, text)

    async def set_display(self, device_id: str | None, on: bool) -> Result[Any]:
        return await _settings.set_display(self, device_id, on)

    async def set_sound(self, device_id: str | None, on: bool) -> Result[Any]:
        return await _settings.set_sound(self, device_id, on)

    async def set_reposition_schedule(
        self, device_id: str | None, plan: Any, template_name: str | None = None
    ) -> Result[Any]:
        return await _settings.set_reposition_schedule(self, device_id, plan, template_name)
