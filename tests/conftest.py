from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

import pytest

from pypetlibro._constants import (
    DEFAULT_MATRIX_ENDPOINT,
    DEVICE_LIST_ENDPOINT,
    FEED_AUDIO_ENDPOINT,
    FEEDING_PLAN_TODAY_ENDPOINT,
    GRAIN_STATUS_ENDPOINT,
    LOGIN_ENDPOINT,
    LOGOUT_ENDPOINT,
    MANUAL_FEED_NOW_ENDPOINT,
    MANUAL_FEEDING_ENDPOINT,
    PLATE_POSITION_CHANGE_ENDPOINT,
    REAL_INFO_ENDPOINT,
    REFRESH_ENDPOINT,
    SET_STOP_FEED_NOW_ENDPOINT,
    SETTING_ENDPOINT_PREFIX,
    STOP_FEED_NOW_ENDPOINT,
    WET_FEEDING_PLAN_ENDPOINT,
    WORK_RECORD_ENDPOINT,
)
from pypetlibro.config import PetlibroConfig


@dataclass
class FakeClock:
    now: float = 1_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakePetlibroBackend:
    """In-memory PetLibro cloud recording every request per endpoint."""

    device_id: str = "SN1"
    model: str = "PLAF109"
    token: str = "abc123"
    refresh_token: str | None = "refresh-1"
    expires_in: int | None = 3600
    login_code: int = 0
    plate_position: int = 0
    rotate_advance: int = 1
    temperature: float = 4.5
    active_feed_id: str | None = None
    feed_id: str | None = "feed-42"
    devices: list[dict[str, Any]] | None = None
    errors: dict[str, dict[str, Any]] = field(default_factory=dict)
    calls: dict[str, int] = field(default_factory=dict)
    payloads: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    tokens: dict[str, list[str | None]] = field(default_factory=dict)
    timeouts: dict[str, list[float | None]] = field(default_factory=dict)

    def _record_call(self, endpoint: str, payload: Any, token: str | None, timeout: float | None) -> None:
        self.calls[endpoint] = self.calls.get(endpoint, 0) + 1
        self.payloads.setdefault(endpoint, []).append(dict(payload))
        self.tokens.setdefault(endpoint, []).append(token)
        self.timeouts.setdefault(endpoint, []).append(timeout)

    def _code_zero(self, data: Any) -> dict[str, Any]:
        return {"code": 0, "msg": "success", "data": data}

    async def post_json(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        self._record_call(endpoint, payload, token, timeout)
        # Yield like a real request so concurrent callers can interleave.
        await asyncio.sleep(0)

        if endpoint in self.errors:
            return self.errors[endpoint]

        if endpoint == LOGIN_ENDPOINT:
            if self.login_code != 0:
                return {"code": self.login_code, "msg": "Invalid email or password"}
            data: dict[str, Any] = {"token": self.token}
            if self.refresh_token is not None:
                data["refreshToken"] = self.refresh_token
            if self.expires_in is not None:
                data["expires_in"] = self.expires_in
            return self._code_zero(data)

        if endpoint == REFRESH_ENDPOINT:
            return {"access_token": "refreshed-token", "expires_in": 3600}

        if endpoint == LOGOUT_ENDPOINT:
            return self._code_zero(None)

        if endpoint == DEVICE_LIST_ENDPOINT:
            if self.devices is not None:
                return self._code_zero(self.devices)
            return self._code_zero(
                [{"deviceSn": self.device_id, "productIdentifier": self.model, "name": "Polar Wet Food Feeder"}]
            )

        if endpoint == REAL_INFO_ENDPOINT:
            info: dict[str, Any] = {"platePosition": self.plate_position, "temperature": self.temperature}
            if self.active_feed_id is not None:
                info["activeFeedId"] = self.active_feed_id
            return self._code_zero(info)

        if endpoint in (GRAIN_STATUS_ENDPOINT, FEEDING_PLAN_TODAY_ENDPOINT, WET_FEEDING_PLAN_ENDPOINT):
            return self._code_zero({"deviceSn": payload.get("deviceSn"), "status": "ok"})

        if endpoint == WORK_RECORD_ENDPOINT:
            return self._code_zero([])

        if endpoint == MANUAL_FEED_NOW_ENDPOINT:
            if payload.get("action") == "stop":
                return self._code_zero(None)
            return self._code_zero({"feedId": self.feed_id} if self.feed_id else {})

        if endpoint in (STOP_FEED_NOW_ENDPOINT, SET_STOP_FEED_NOW_ENDPOINT, FEED_AUDIO_ENDPOINT):
            return self._code_zero(None)

        if endpoint == MANUAL_FEEDING_ENDPOINT:
            return self._code_zero(None)

        if endpoint == PLATE_POSITION_CHANGE_ENDPOINT:
            self.plate_position = (self.plate_position + self.rotate_advance) % 3
            return self._code_zero(None)

        if endpoint.startswith(SETTING_ENDPOINT_PREFIX):
            return self._code_zero({"updated": True})

        raise AssertionError(f"Unexpected endpoint: {endpoint}")

    async def get_json(
        self,
        endpoint: str,
        params: dict[str, Any],
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        self._record_call(endpoint, params, token, timeout)
        if endpoint == DEFAULT_MATRIX_ENDPOINT:
            return self._code_zero({"matrix": [1, 2, 3]})
        raise AssertionError(f"Unexpected GET endpoint: {endpoint}")


@pytest.fixture
def config() -> PetlibroConfig:
    return PetlibroConfig(
        email="owner@example.com",
        password="secret",
        device_id="SN1",
        portions=2,
        settle_delay=0.0,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> FakePetlibroBackend:
    fake = FakePetlibroBackend()

    async def fake_post_json(_self: Any, endpoint: str, payload: Any, **kwargs: Any) -> dict[str, Any]:
        return await fake.post_json(endpoint, payload, **kwargs)

    async def fake_get_json(_self: Any, endpoint: str, params: Any, **kwargs: Any) -> dict[str, Any]:
        return await fake.get_json(endpoint, params, **kwargs)

    monkeypatch.setattr("pypetlibro._transport.JsonTransport.post_json", fake_post_json)
    monkeypatch.setattr("pypetlibro._transport.JsonTransport.get_json", fake_get_json)
    return fake
