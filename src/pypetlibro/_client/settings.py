"""Internal device setting operations for :class:`pypetlibro.client.PetlibroClient`.

All settings share one envelope, so every operation only differs in the
setting name and the value/companion fields it sends.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pypetlibro._api import settings as _settings_api
from pypetlibro._transport import Transport
from pypetlibro.exceptions import PetlibroError
from pypetlibro.models.requests import SettingRequest
from pypetlibro.models.result import Result
from pypetlibro.session import Session

if TYPE_CHECKING:
    from pypetlibro.client import PetlibroClient


async def apply_setting(
    client: PetlibroClient,
    device_id: str | None,
    setting: str,
    value: Any = None,
    **extra: Any,
) -> Result[Any]:
    """Validate and post one setting change for *device_id*."""
    try:
        request = client._validate(
            SettingRequest, device_id=client._require_device(device_id), setting=setting, value=value, extra=extra
        )
    except PetlibroError as exc:
        return client._failed(setting, exc)

    async def _apply(session: Session, transport: Transport, device: str) -> Any:
        return await _settings_api.apply_setting(client.config, session, transport, request)

    return await client._device_call(setting, request.device_id, _apply)


async def set_lid_close_time(client: PetlibroClient, device_id: str | None, seconds: int) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.LID_CLOSE_TIME, seconds)


async def set_lid_speed(client: PetlibroClient, device_id: str | None, speed: str) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.LID_SPEED, speed)


async def set_lid_mode(client: PetlibroClient, device_id: str | None, mode: str) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.LID_MODE, mode)


async def open_lid(client: PetlibroClient, device_id: str | None) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.MANUAL_LID_OPEN)


async def set_water_interval(
    client: PetlibroClient,
    device_id: str | None,
    minutes: int,
    *,
    current_mode: Any = None,
    current_duration: Any = None,
) -> Result[Any]:
    # The vendor expects the unchanged companion values alongside the new one.
    return await apply_setting(
        client,
        device_id,
        _settings_api.WATER_INTERVAL,
        minutes,
        currentMode=current_mode,
        currentDuration=current_duration,
    )


async def set_water_dispensing_duration(
    client: PetlibroClient,
    device_id: str | None,
    seconds: int,
    *,
    current_mode: Any = None,
    current_interval: Any = None,
) -> Result[Any]:
    return await apply_setting(
        client,
        device_id,
        _settings_api.WATER_DISPENSING_DURATION,
        seconds,
        currentMode=current_mode,
        currentInterval=current_interval,
    )


async def set_water_dispensing_mode(client: PetlibroClient, device_id: str | None, mode: Any) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.WATER_DISPENSING_MODE, mode)


async def set_display_icon(client: PetlibroClient, device_id: str | None, icon: Any) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.DISPLAY_ICON, icon)


async def set_display_text(client: PetlibroClient, device_id: str | None, text: str) -> Result[Any]:
    return await apply_setting(client, device_id, _settings_api.DISPLAY_TEXT, text)


async def set_display(client: PetlibroClient, device_id: str | None, on: bool) -> Result[Any]:
    setting = _settings_api.DISPLAY_ON if on else _settings_api.DISPLAY_OFF
    return await apply_setting(client, device_id, setting)


async def set_sound(client: PetlibroClient, device_id: str | None, on: bool) -> Result[Any]:
    setting = _settings_api.SOUND_ON if on else _settings_api.SOUND_OFF
    return await apply_setting(client, device_id, setting)


async def set_reposition_schedule(
    client: PetlibroClient,
    device_id: str | None,
    plan: Any,
    template_name: str | None = None,
) -> Result[Any]:
    return await apply_setting(
        client,
        device_id,
        _settings_api.REPOSITION_SCHEDULE,
        plan=plan,
        templateName=template_name,
    )
