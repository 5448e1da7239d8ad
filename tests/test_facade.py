from __future__ import annotations

import asyncio
import logging

import pytest

from conftest import FakeClock, FakePetlibroBackend
from pypetlibro._constants import (
    DEVICE_LIST_ENDPOINT,
    FEED_AUDIO_ENDPOINT,
    GRAIN_STATUS_ENDPOINT,
    LOGIN_ENDPOINT,
    MANUAL_FEED_NOW_ENDPOINT,
    MANUAL_FEEDING_ENDPOINT,
    PLATE_POSITION_CHANGE_ENDPOINT,
    REAL_INFO_ENDPOINT,
    STOP_FEED_NOW_ENDPOINT,
)
from pypetlibro.config import PetlibroConfig
from pypetlibro.facade import CachedPetlibroClient, control_key, feeding_status_key, real_info_key
from pypetlibro.models.result import ErrorKind


@pytest.fixture
def facade_config() -> PetlibroConfig:
    return PetlibroConfig(email="owner@example.com", password="secret", settle_delay=0.0)


@pytest.mark.asyncio
async def test_start_login_and_device_list_cache(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend, clock: FakeClock
) -> None:
    async with CachedPetlibroClient(facade_config, clock=clock) as feeder:
        started = await feeder.start()
        assert started.success and started.data is not None
        assert (started.data.device_id, started.data.model) == ("SN1", "PLAF109")
        assert feeder.device_id == "SN1"

        session = feeder.client.sessions.session
        assert session is not None
        assert session.access_token == "abc123"
        assert session.expires_at > clock.now

        clock.advance(29 * 60)
        again = await feeder.get_devices()

        assert again.data is not None and again.data[0].device_id == "SN1"
        assert backend.calls[DEVICE_LIST_ENDPOINT] == 1
        assert feeder.stats().hits == 1

        clock.advance(2 * 60)
        await feeder.get_devices()
        assert backend.calls[DEVICE_LIST_ENDPOINT] == 2

    assert backend.calls[LOGIN_ENDPOINT] == 1


@pytest.mark.asyncio
async def test_missing_configured_device_falls_back_to_first(
    backend: FakePetlibroBackend, caplog: pytest.LogCaptureFixture
) -> None:
    config = PetlibroConfig(email="owner@example.com", password="secret", device_id="GONE")
    with caplog.at_level(logging.WARNING, logger="pypetlibro.facade"):
        async with CachedPetlibroClient(config) as feeder:
            result = await feeder.start()
            assert feeder.device_id == "SN1"

    assert result.success
    assert "Configured device GONE not found on the account; falling back to SN1" in caplog.text


@pytest.mark.asyncio
async def test_account_without_devices_is_not_found(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    backend.devices = []
    async with CachedPetlibroClient(facade_config) as feeder:
        result = await feeder.start()

    assert result.error is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_failed_start_can_be_retried(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend, caplog: pytest.LogCaptureFixture
) -> None:
    backend.login_code = 1001
    async with CachedPetlibroClient(facade_config) as feeder:
        with caplog.at_level(logging.ERROR, logger="pypetlibro.facade"):
            failed = await feeder.start()
        assert failed.error is ErrorKind.AUTH
        assert "initialization failed" in caplog.text

        backend.login_code = 0
        retried = await feeder.start()

    assert retried.success
    assert backend.calls[LOGIN_ENDPOINT] == 2


@pytest.mark.asyncio
async def test_snapshot_is_cached_until_a_rotation(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        before = await feeder.get_snapshot()
        cached = await feeder.get_snapshot()
        assert cached is before
        assert backend.calls[REAL_INFO_ENDPOINT] == 1

        rotated = await feeder.rotate_once()
        assert rotated.success
        assert feeder.cache.peek(real_info_key("SN1")) is None

        after = await feeder.get_snapshot(force_refresh=True)

    assert before.data is not None and after.data is not None
    assert before.data.tray_position == 0
    assert after.data.tray_position == 1
    assert backend.calls[REAL_INFO_ENDPOINT] == 2


@pytest.mark.asyncio
async def test_repeated_action_is_suppressed_within_dedupe_window(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend, clock: FakeClock
) -> None:
    async with CachedPetlibroClient(facade_config, clock=clock) as feeder:
        await feeder.start()
        first = await feeder.play_audio()
        second = await feeder.play_audio()
        assert second is first
        assert backend.calls[FEED_AUDIO_ENDPOINT] == 1

        forced = await feeder.play_audio(force=True)
        assert forced.success
        assert backend.calls[FEED_AUDIO_ENDPOINT] == 2

        clock.advance(5)
        await feeder.play_audio()

    assert backend.calls[FEED_AUDIO_ENDPOINT] == 3


@pytest.mark.asyncio
async def test_failed_action_is_not_deduplicated(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    backend.errors[PLATE_POSITION_CHANGE_ENDPOINT] = {"code": 2001, "msg": "Device offline"}
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        await feeder.get_snapshot()
        first = await feeder.rotate_once()
        second = await feeder.rotate_once()

        assert not first.success and not second.success
        assert backend.calls[PLATE_POSITION_CHANGE_ENDPOINT] == 2
        assert feeder.cache.peek(real_info_key("SN1")) is not None


@pytest.mark.asyncio
async def test_feed_cycle_tracks_feed_id_and_invalidates(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        await feeder.get_snapshot()
        await feeder.get_feeding_status()
        assert backend.calls[GRAIN_STATUS_ENDPOINT] == 1

        started = await feeder.start_feed()
        assert started.feed_id == "feed-42"
        active = feeder.active_feed()
        assert active is not None and active.feed_id == "feed-42"
        assert feeder.cache.peek(real_info_key("SN1")) is None
        assert feeder.cache.peek(feeding_status_key("SN1")) is None

        stopped = await feeder.stop_feed()
        assert stopped.success
        assert feeder.active_feed() is None
        # Stopping clears the start dedupe so the door can be opened again.
        assert feeder.cache.peek(control_key("startFeed", "SN1")) is None

        await feeder.start_feed()

    assert backend.payloads[STOP_FEED_NOW_ENDPOINT] == [{"deviceSn": "SN1", "feedId": "feed-42"}]
    assert backend.calls[MANUAL_FEED_NOW_ENDPOINT] == 2


@pytest.mark.asyncio
async def test_stop_feed_with_nothing_recorded_is_a_state_error(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        result = await feeder.stop_feed()

    assert result.error is ErrorKind.STATE
    assert STOP_FEED_NOW_ENDPOINT not in backend.calls


@pytest.mark.asyncio
async def test_abandon_feed_forgets_without_contacting_device(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        await feeder.start_feed()

        abandoned = feeder.abandon_feed()

        assert abandoned is not None and abandoned.feed_id == "feed-42"
        assert feeder.active_feed() is None
        assert (await feeder.stop_feed()).error is ErrorKind.STATE

    assert STOP_FEED_NOW_ENDPOINT not in backend.calls


@pytest.mark.asyncio
async def test_operations_without_device_fail_with_state_error(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        snapshot = await feeder.get_snapshot()
        rotated = await feeder.rotate_once()

    assert snapshot.error is ErrorKind.STATE
    assert rotated.error is ErrorKind.STATE
    assert backend.calls == {}


@pytest.mark.asyncio
async def test_standard_feeder_feed(facade_config: PetlibroConfig, backend: FakePetlibroBackend) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        result = await feeder.feed(3)

    assert result.data == 3
    assert backend.payloads[MANUAL_FEEDING_ENDPOINT][0]["grainNum"] == 3


@pytest.mark.asyncio
async def test_feed_with_invalid_portions_returns_failure(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        result = await feeder.feed(0, force=True)

    assert result.error is ErrorKind.CONFIG
    assert MANUAL_FEEDING_ENDPOINT not in backend.calls


@pytest.mark.asyncio
async def test_rotate_once_scenario_without_mismatch(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend, caplog: pytest.LogCaptureFixture
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        with caplog.at_level(logging.WARNING, logger="pypetlibro.tray"):
            result = await feeder.tray.step("SN1", 0)

        assert result.data == 1
        assert feeder.tray.estimate("SN1") == 1
    assert "mismatch" not in caplog.text


@pytest.mark.asyncio
async def test_rotate_once_scenario_with_mismatch(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend, caplog: pytest.LogCaptureFixture
) -> None:
    backend.rotate_advance = 2
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        with caplog.at_level(logging.WARNING, logger="pypetlibro.tray"):
            result = await feeder.tray.step("SN1", 0)

        assert result.data == 2
        assert feeder.tray.estimate("SN1") == 2
    assert "Tray position mismatch for SN1" in caplog.text


@pytest.mark.asyncio
async def test_multi_step_plan_bypasses_dedupe(facade_config: PetlibroConfig, backend: FakePetlibroBackend) -> None:
    backend.plate_position = 1
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        result = await feeder.tray.move_to_percentage("SN1", 0)

    assert result.data == 0
    assert backend.calls[PLATE_POSITION_CHANGE_ENDPOINT] == 2
    assert backend.plate_position == 0


@pytest.mark.asyncio
async def test_background_refresh_and_reset_timers_are_cancelled_on_close(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    fired: list[str] = []
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        assert feeder.start_background_refresh(interval=0.01)
        feeder.schedule_reset("feed-switch", 60, lambda: fired.append("feed-switch"))
        await asyncio.sleep(0.05)

        assert backend.calls.get(REAL_INFO_ENDPOINT, 0) >= 1
        assert feeder.pending_resets() == ["feed-switch"]

        await feeder.close()

        assert not feeder.cache.is_refreshing(real_info_key("SN1"))
        assert feeder.pending_resets() == []
        calls = backend.calls[REAL_INFO_ENDPOINT]
        await asyncio.sleep(0.03)

    assert backend.calls[REAL_INFO_ENDPOINT] == calls
    assert fired == []


@pytest.mark.asyncio
async def test_schedule_reset_fires_and_replaces(facade_config: PetlibroConfig, backend: FakePetlibroBackend) -> None:
    fired: list[str] = []
    async with CachedPetlibroClient(facade_config) as feeder:
        feeder.schedule_reset("audio", 60, lambda: fired.append("old"))
        feeder.schedule_reset("audio", 0.01, lambda: fired.append("new"))
        assert feeder.cancel_reset("missing") is False
        await asyncio.sleep(0.05)

        assert fired == ["new"]
        assert feeder.pending_resets() == []


@pytest.mark.asyncio
async def test_move_after_single_rotation_reads_the_device_again(
    facade_config: PetlibroConfig, backend: FakePetlibroBackend
) -> None:
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        first = await feeder.tray.move_to_percentage("SN1", 50)
        assert first.data == 1 and backend.plate_position == 1

        rotated = await feeder.rotate_once(force=True)
        assert rotated.success and backend.plate_position == 2
        assert feeder.tray.estimate("SN1") is None

        reads_before = backend.calls[REAL_INFO_ENDPOINT]
        second = await feeder.tray.move_to_percentage("SN1", 50)

    assert second.data == 1
    assert backend.plate_position == 1
    assert backend.calls[REAL_INFO_ENDPOINT] > reads_before


@pytest.mark.asyncio
async def test_snapshot_read_updates_tray_estimate(facade_config: PetlibroConfig, backend: FakePetlibroBackend) -> None:
    backend.plate_position = 2
    async with CachedPetlibroClient(facade_config) as feeder:
        await feeder.start()
        assert feeder.tray.estimate("SN1") is None

        await feeder.get_snapshot()

        assert feeder.tray.estimate("SN1") == 2
