"""Device read endpoints.

Endpoints:
  - /device/device/list
  - /device/device/realInfo
  - /device/data/grainStatus
  - /device/device/getfeedingplantoday_new
  - /device/device/wetFeedingPlan
  - /device/device/workRecord
  - /device/device/getDefaultMatrix  (GET)
"""

from __future__ import annotations

import logging
from typing import Any

from pypetlibro._api._common import device_payload, get_envelope, post_envelope
from pypetlibro._constants import (
    DEFAULT_MATRIX_ENDPOINT,
    DEVICE_LIST_ENDPOINT,
    FEEDING_PLAN_TODAY_ENDPOINT,
    GRAIN_STATUS_ENDPOINT,
    REAL_INFO_ENDPOINT,
    WET_FEEDING_PLAN_ENDPOINT,
    WORK_RECORD_ENDPOINT,
)
from pypetlibro._transport import Transport
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import PetlibroApiError
from pypetlibro.models.device import DeviceRecord
from pypetlibro.models.snapshot import DeviceSnapshot
from pypetlibro.session import Session

_logger = logging.getLogger(__name__)


def _device_items(data: Any) -> list[dict[str, Any]]:
    """Older API generations nest the list under ``deviceList``."""
    if isinstance(data, dict):
        data = data.get("deviceList")
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


async def fetch_device_list(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
) -> list[DeviceRecord]:
    """Fetch all feeders bound to the account."""
    data = await post_envelope(
        endpoint=DEVICE_LIST_ENDPOINT,
        session=session,
        transport=transport,
        payload={},
        timeout=config.request_timeout,
    )
    devices = [DeviceRecord.model_validate(item) for item in _device_items(data)]
    _logger.debug("Fetched %d device(s)", len(devices))
    return devices


async def fetch_real_info(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
) -> DeviceSnapshot:
    """Fetch the real-time snapshot (tray position, temperature)."""
    data = await post_envelope(
        endpoint=REAL_INFO_ENDPOINT,
        session=session,
        transport=transport,
        payload=device_payload(device_id),
        timeout=config.request_timeout,
    )
    if not isinstance(data, dict):
        raise PetlibroApiError(
            f"{REAL_INFO_ENDPOINT} returned no data for {device_id}",
            code=0,
            endpoint=REAL_INFO_ENDPOINT,
        )
    return DeviceSnapshot.model_validate(data)


async def _fetch_device_data(
    endpoint: str,
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    device_id: str,
) -> Any:
    return await post_envelope(
        endpoint=endpoint,
        session=session,
        transport=transport,
        payload=device_payload(device_id),
        timeout=config.request_timeout,
    )


async def fetch_grain_status(config: PetlibroConfig, session: Session, transport: Transport, device_id: str) -> Any:
    return await _fetch_device_data(GRAIN_STATUS_ENDPOINT, config, session, transport, device_id)


async def fetch_feeding_plan_today(
    config: PetlibroConfig, session: Session, transport: Transport, device_id: str
) -> Any:
    return await _fetch_device_data(FEEDING_PLAN_TODAY_ENDPOINT, config, session, transport, device_id)


async def fetch_wet_feeding_plan(config: PetlibroConfig, session: Session, transport: Transport, device_id: str) -> Any:
    return await _fetch_device_data(WET_FEEDING_PLAN_ENDPOINT, config, session, transport, device_id)


async def fetch_work_record(config: PetlibroConfig, session: Session, transport: Transport, device_id: str) -> Any:
    return await _fetch_device_data(WORK_RECORD_ENDPOINT, config, session, transport, device_id)


async def fetch_default_matrix(config: PetlibroConfig, session: Session, transport: Transport, device_id: str) -> Any:
    """The only GET endpoint in use; the serial travels as a query parameter."""
    return await get_envelope(
        endpoint=DEFAULT_MATRIX_ENDPOINT,
        session=session,
        transport=transport,
        params={"deviceSn": device_id},
        timeout=config.request_timeout,
    )
