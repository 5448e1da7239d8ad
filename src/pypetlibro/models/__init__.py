"""Data models for PetLibro API responses."""

from pypetlibro.models._base import PetlibroBaseModel
from pypetlibro.models.device import DeviceRecord
from pypetlibro.models.feed import ManualFeedSession
from pypetlibro.models.result import ErrorKind, Result
from pypetlibro.models.snapshot import DeviceSnapshot
from pypetlibro.models.token import AuthToken

__all__ = [
    "AuthToken",
    "DeviceRecord",
    "DeviceSnapshot",
    "ErrorKind",
    "ManualFeedSession",
    "PetlibroBaseModel",
    "Result",
]
