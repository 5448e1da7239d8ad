"""Device list model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator

from pypetlibro._constants import POLAR_MODEL
from pypetlibro._normalize import safe_str
from pypetlibro.models._base import PetlibroBaseModel


class DeviceRecord(PetlibroBaseModel):
    """A feeder bound to the account.

    Fields are mapped from the ``/device/device/list`` response.  Records
    are replaced wholesale on every device-list fetch, never patched.
    """

    device_id: str = Field(
        default="",
        validation_alias=AliasChoices("deviceSn", "device_id", "deviceId", "id", "serial"),
    )
    """Device serial used as ``deviceSn`` in every device request."""
    model: str = Field(
        default="",
        validation_alias=AliasChoices("productIdentifier", "deviceModel", "model"),
    )
    """Product identifier (e.g. ``"PLAF109"``)."""
    name: str = Field(
        default="",
        validation_alias=AliasChoices("deviceName", "device_name", "name", "productName"),
    )
    """User-visible device name."""

    @property
    def is_polar(self) -> bool:
        """Whether this is a Polar wet-food feeder with a rotating tray."""
        return self.model == POLAR_MODEL or "polar" in self.name.lower()

    @field_validator("device_id", "model", "name", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return safe_str(value) or ""
