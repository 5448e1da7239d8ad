"""Pydantic request models for client entrypoints.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`pypetlibro.client.PetlibroClient`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DeviceRequest(BaseModel):
    """Request addressed to a single device."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    device_id: str

    @field_validator("device_id")
    @classmethod
    def _device_id_non_empty(cls, value: str) -> str:
        device_id = value.strip()
        if not device_id:
            raise ValueError("device_id must be non-empty")
        return device_id


class ManualFeedRequest(DeviceRequest):
    portions: int = Field(default=1, ge=1, le=50)


class StopFeedRequest(DeviceRequest):
    feed_id: str

    @field_validator("feed_id")
    @classmethod
    def _feed_id_non_empty(cls, value: str) -> str:
        feed_id = value.strip()
        if not feed_id:
            raise ValueError("feed_id must be non-empty")
        return feed_id


class SettingRequest(DeviceRequest):
    """A device setting change.

    ``value`` is omitted from the payload for toggle endpoints such as
    ``setDisplayOn``.  ``extra`` carries endpoint specific companion
    fields (e.g. the current water mode when changing the interval).
    """

    setting: str
    value: Any = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("setting")
    @classmethod
    def _setting_non_empty(cls, value: str) -> str:
        setting = value.strip().strip("/")
        if not setting:
            raise ValueError("setting must be non-empty")
        return setting

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"deviceSn": self.device_id}
        if self.value is not None:
            payload["value"] = self.value
        payload.update({key: value for key, value in self.extra.items() if value is not None})
        return payload
