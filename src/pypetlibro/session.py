"""Session state and the authentication lifecycle."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from pypetlibro._api.login import (
    build_login_request,
    build_refresh_request,
    parse_login_response,
    parse_refresh_response,
)
from pypetlibro._constants import DEFAULT_TOKEN_LIFETIME, LOGIN_ENDPOINT, LOGOUT_ENDPOINT, REFRESH_ENDPOINT
from pypetlibro._transport import Transport
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import PetlibroError
from pypetlibro.models.token import AuthToken

_logger = logging.getLogger(__name__)


class Session(BaseModel):
    """Authenticated session.

    Parameters
    ----------
    access_token : str
        Credential sent with every device request.
    refresh_token : str or None
        Credential used to obtain a new access token without a login.
    expires_at : float
        Timestamp on the owning manager's clock (``time.monotonic()`` by
        default) after which the session is no longer valid.  Validity
        requires ``expires_at`` to be strictly in the future; there is no
        partially valid state.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )

    access_token: str
    refresh_token: str | None = None
    expires_at: float

    def is_valid_at(self, now: float) -> bool:
        return self.expires_at > now

    def remaining_at(self, now: float) -> float:
        """Seconds until expiry (negative once expired)."""
        return self.expires_at - now


class SessionManager:
    """Owns the access token and keeps it valid on demand.

    The refresh-or-login path is single-flight: concurrent callers of
    :meth:`ensure_valid` await one shared in-flight attempt and share its
    outcome, success or failure.  Nothing is retried internally.
    """

    def __init__(
        self,
        config: PetlibroConfig,
        transport: Callable[[], Transport],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._transport = transport
        self._clock = clock
        self._session: Session | None = None
        self._inflight: asyncio.Task[Session] | None = None

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_valid(self) -> bool:
        return self._session is not None and self._session.is_valid_at(self._clock())

    @property
    def remaining(self) -> float | None:
        """Seconds left on the current session by the manager's clock."""
        if self._session is None:
            return None
        return self._session.remaining_at(self._clock())

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------

    async def login(self) -> Session:
        """Authenticate with email and password and replace the session."""
        return await self._single_flight(self._login)

    async def refresh(self) -> Session:
        """Exchange the refresh token for a new access token.

        Any refresh failure, including a missing refresh token, falls
        through to a full login instead of propagating.
        """
        return await self._single_flight(lambda: self._refresh_or_login(force=True))

    async def ensure_valid(self) -> Session:
        """Return a valid session, refreshing or logging in when needed.

        Raises
        ------
        PetlibroAuthError
            If the fallback login fails.
        PetlibroNetworkError
            If the login request itself cannot be completed.
        """
        session = self._session
        if session is not None and session.is_valid_at(self._clock()):
            return session
        return await self._single_flight(self._refresh_or_login)

    def invalidate(self) -> None:
        """Mark the current session expired (next call refreshes or logs in).

        The refresh token is kept so the next :meth:`ensure_valid` can try
        a refresh before falling back to login.
        """
        if self._session is not None:
            self._session = self._session.model_copy(update={"expires_at": float("-inf")})

    async def logout(self) -> None:
        """Tell the server to drop the token and clear local state regardless."""
        session = self._session
        self._session = None
        if session is None:
            return
        try:
            await self._transport().post_json(
                LOGOUT_ENDPOINT,
                {},
                token=session.access_token,
                timeout=self._config.request_timeout,
            )
        except PetlibroError:
            _logger.debug("Logout request failed", exc_info=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _single_flight(self, factory: Callable[[], Awaitable[Session]]) -> Session:
        task = self._inflight
        if task is None or task.done():
            task = asyncio.ensure_future(self._run_flight(factory))
            self._inflight = task
        # Shield so one cancelled waiter does not abort the shared attempt.
        return await asyncio.shield(task)

    async def _run_flight(self, factory: Callable[[], Awaitable[Session]]) -> Session:
        try:
            return await factory()
        finally:
            self._inflight = None

    def _install(self, token: AuthToken) -> Session:
        lifetime = token.expires_in if token.expires_in is not None else DEFAULT_TOKEN_LIFETIME
        session = Session(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_at=self._clock() + lifetime,
        )
        self._session = session
        return session

    async def _login(self) -> Session:
        body = build_login_request(self._config)
        _logger.debug("Logging in to %s%s", self._config.base_url, LOGIN_ENDPOINT)
        response = await self._transport().post_json(
            LOGIN_ENDPOINT,
            body,
            timeout=self._config.request_timeout,
        )
        session = self._install(parse_login_response(response))
        _logger.info("PetLibro login succeeded (session valid for %.0fs)", session.expires_at - self._clock())
        return session

    async def _refresh(self, refresh_token: str) -> Session:
        response = await self._transport().post_json(
            REFRESH_ENDPOINT,
            build_refresh_request(refresh_token),
            timeout=self._config.request_timeout,
        )
        session = self._install(parse_refresh_response(response, refresh_token=refresh_token))
        _logger.debug("PetLibro token refreshed")
        return session

    async def _refresh_or_login(self, *, force: bool = False) -> Session:
        session = self._session
        if not force and session is not None and session.is_valid_at(self._clock()):
            return session
        refresh_token = session.refresh_token if session is not None else None
        if refresh_token:
            try:
                return await self._refresh(refresh_token)
            except PetlibroError as exc:
                _logger.warning("Token refresh failed, re-authenticating: %s", exc)
        self._session = None
        return await self._login()
