"""Feeding and tray control endpoints.

Endpoints:
  - /device/device/manualFeeding              (standard feeders, portions)
  - /device/wetFeedingPlan/manualFeedNow      (Polar: open the door)
  - /device/wetFeedingPlan/stopFeedNow        (Polar: close the door)
  - /device/wetFeedingPlan/platePositionChange (rotate tray one step)
  - /device/wetFeedingPlan/feedAudio          (play the feed call)
"""

from __future__ import annotations

import uuid
from typing import Any

from pypetlibro._api._common import post_envelope
from pypetlibro._constants import (
    FEED_AUDIO_ENDPOINT,
    MANUAL_FEED_NOW_ENDPOINT,
    MANUAL_FEEDING_ENDPOINT,
    PLATE_POSITION_CHANGE_ENDPOINT,
    STOP_FEED_NOW_ENDPOINT,
)
from pypetlibro._normalize import safe_str
from pypetlibro._transport import Transport
from pypetlibro.config import PetlibroConfig
from pypetlibro.session import Session

_FEED_ID_KEYS: tuple[str, ...] = ("manualFeedId", "feedId", "id")


def extract_feed_id(data: Any) -> str | None:
    """Pull the feed id out of a start-feed reply, if the vendor sent one."""
    if isinstance(data, dict):
        for key in _FEED_ID_KEYS:
            feed_id = safe_str(data.get(key))
            if feed_id:
                return feed_id
        return None
    # Some firmware answers with the bare id.
    if isinstance(data, (str, int)) and not isinstance(data, bool):
        return safe_str(data)
    return None


async def manual_feeding(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
    portions: int,
) -> Any:
    """Dispense *portions* on a standard (dry food) feeder."""
    return await post_envelope(
        endpoint=MANUAL_FEEDING_ENDPOINT,
        session=session,
        transport=transport,
        payload={"deviceSn": device_id, "grainNum": portions, "requestId": uuid.uuid4().hex},
        timeout=config.feed_timeout,
    )


async def start_manual_feed(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
) -> str | None:
    """Open the Polar feeder door; returns the feed id when provided."""
    data = await post_envelope(
        endpoint=MANUAL_FEED_NOW_ENDPOINT,
        session=session,
        transport=transport,
        payload={"deviceSn": device_id, "plate": 1},
        timeout=config.feed_timeout,
    )
    return extract_feed_id(data)


async def stop_manual_feed(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
    feed_id: str,
) -> None:
    """Close the door for a known (real) feed id."""
    await post_envelope(
        endpoint=STOP_FEED_NOW_ENDPOINT,
        session=session,
        transport=transport,
        payload={"deviceSn": device_id, "feedId": feed_id},
        timeout=config.feed_timeout,
    )


async def rotate_plate(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
) -> None:
    """Advance the tray exactly one position forward."""
    await post_envelope(
        endpoint=PLATE_POSITION_CHANGE_ENDPOINT,
        session=session,
        transport=transport,
        payload={"deviceSn": device_id, "plate": 1},
        timeout=config.request_timeout,
    )


async def play_feed_audio(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
) -> None:
    await post_envelope(
        endpoint=FEED_AUDIO_ENDPOINT,
        session=session,
        transport=transport,
        payload={"deviceSn": device_id},
        timeout=config.request_timeout,
    )
