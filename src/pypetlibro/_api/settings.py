"""Device setting endpoints.

Every setting lives under ``/device/setting/<name>`` and shares the same
request/response envelope, so one helper builds them all.
"""

from __future__ import annotations

import logging
from typing import Any

from pypetlibro._api._common import post_envelope
from pypetlibro._constants import SETTING_ENDPOINT_PREFIX
from pypetlibro._transport import Transport
from pypetlibro.config import PetlibroConfig
from pypetlibro.models.requests import SettingRequest
from pypetlibro.session import Session

_logger = logging.getLogger(__name__)

# Lid
LID_CLOSE_TIME = "setLidCloseTime"
LID_SPEED = "setLidSpeed"
LID_MODE = "setLidMode"
MANUAL_LID_OPEN = "setManualLidOpen"
# Water dispensing
WATER_INTERVAL = "setWaterInterval"
WATER_DISPENSING_DURATION = "setWaterDispensingDuration"
WATER_DISPENSING_MODE = "setWaterDispensingMode"
# Display
DISPLAY_ICON = "setDisplayIcon"
DISPLAY_TEXT = "setDisplayText"
DISPLAY_ON = "setDisplayOn"
DISPLAY_OFF = "setDisplayOff"
# Sound
SOUND_ON = "setSoundOn"
SOUND_OFF = "setSoundOff"
# Schedule
REPOSITION_SCHEDULE = "setRepositionSchedule"


def setting_endpoint(setting: str) -> str:
    return f"{SETTING_ENDPOINT_PREFIX}{setting}"


async def apply_setting(
    config: PetlibroConfig,
    session: Session,
    transport: Transport,
    request: SettingRequest,
) -> Any:
    """Post one setting change and return the envelope's ``data``."""
    endpoint = setting_endpoint(request.setting)
    data = await post_envelope(
        endpoint=endpoint,
        session=session,
        transport=transport,
        payload=request.to_payload(),
        timeout=config.request_timeout,
    )
    _logger.debug("Setting applied device=%s setting=%s", request.device_id, request.setting)
    return data
