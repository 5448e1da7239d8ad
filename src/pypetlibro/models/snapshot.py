"""Real-time device snapshot model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pypetlibro._constants import TRAY_POSITIONS
from pypetlibro._normalize import safe_float, safe_int, safe_str
from pypetlibro.models._base import PetlibroBaseModel


class DeviceSnapshot(PetlibroBaseModel):
    """Latest telemetry from ``/device/device/realInfo``.

    ``tray_position`` is zero based and always within ``0..2``.
    """

    tray_position: int = Field(
        default=0,
        validation_alias=AliasChoices("platePosition", "plate", "currentPlate", "tray_position"),
    )
    temperature: float | None = Field(
        default=None,
        validation_alias=AliasChoices("temperature", "temp", "currentTemp"),
    )
    """Device temperature in °C."""
    active_feed_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("activeFeedId", "currentFeedId", "feedId", "active_feed_id"),
    )
    """Identifier of an in-progress manual feed, when the device reports one."""
    online: bool | None = Field(default=None, validation_alias=AliasChoices("online"))

    @field_validator("tray_position", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> int:
        parsed = safe_int(value)
        if parsed is None or parsed < 0:
            return 0
        return parsed % TRAY_POSITIONS

    @field_validator("temperature", mode="before")
    @classmethod
    def _coerce_temperature(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("active_feed_id", mode="before")
    @classmethod
    def _coerce_feed_id(cls, value: Any) -> str | None:
        return safe_str(value)
