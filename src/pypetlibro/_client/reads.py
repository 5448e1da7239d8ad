"""Internal read operations for :class:`pypetlibro.client.PetlibroClient`.

These functions keep `client.py` small without changing the public API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pypetlibro._api import devices as _devices_api
from pypetlibro.models.device import DeviceRecord
from pypetlibro.models.result import Result
from pypetlibro.models.snapshot import DeviceSnapshot

if TYPE_CHECKING:
    from pypetlibro.client import PetlibroClient


async def get_devices(client: PetlibroClient) -> Result[list[DeviceRecord]]:
    return await client._call(
        "get_devices",
        lambda session, transport: _devices_api.fetch_device_list(client.config, session, transport),
    )


async def get_snapshot(client: PetlibroClient, device_id: str | None) -> Result[DeviceSnapshot]:
    return await client._device_call(
        "get_snapshot",
        device_id,
        lambda session, transport, device: _devices_api.fetch_real_info(client.config, session, transport, device),
    )


async def get_grain_status(client: PetlibroClient, device_id: str | None) -> Result[Any]:
    return await client._device_call(
        "get_grain_status",
        device_id,
        lambda session, transport, device: _devices_api.fetch_grain_status(client.config, session, transport, device),
    )


async def get_feeding_plan_today(client: PetlibroClient, device_id: str | None) -> Result[Any]:
    return await client._device_call(
        "get_feeding_plan_today",
        device_id,
        lambda session, transport, device: _devices_api.fetch_feeding_plan_today(
            client.config, session, transport, device
        ),
    )


async def get_wet_feeding_plan(client: PetlibroClient, device_id: str | None) -> Result[Any]:
    return await client._device_call(
        "get_wet_feeding_plan",
        device_id,
        lambda session, transport, device: _devices_api.fetch_wet_feeding_plan(
            client.config, session, transport, device
        ),
    )


async def get_work_record(client: PetlibroClient, device_id: str | None) -> Result[Any]:
    return await client._device_call(
        "get_work_record",
        device_id,
        lambda session, transport, device: _devices_api.fetch_work_record(client.config, session, transport, device),
    )


async def get_default_matrix(client: PetlibroClient, device_id: str | None) -> Result[Any]:
    return await client._device_call(
        "get_default_matrix",
        device_id,
        lambda session, transport, device: _devices_api.fetch_default_matrix(
            client.config, session, transport, device
        ),
    )
