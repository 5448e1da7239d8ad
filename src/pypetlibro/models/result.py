"""Operation result values returned by every client and facade call.

Callers (for example a smart-home bridge) never receive exceptions from
device operations; they receive a :class:`Result` and decide on retries
and on reverting optimistic UI state themselves.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from pypetlibro.exceptions import PetlibroError

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced in :class:`Result.error`."""

    AUTH = "auth"
    NETWORK = "network"
    API = "api"
    NOT_FOUND = "not_found"
    STATE = "state"
    CONFIG = "config"


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of a single operation.

    ``success=True`` carries ``data`` (and ``feed_id`` for feed starts);
    ``success=False`` carries ``error`` plus the vendor ``code`` and a
    human readable ``message`` when available.
    """

    success: bool
    data: T | None = None
    feed_id: str | None = None
    error: ErrorKind | None = None
    message: str = ""
    code: int | None = None

    @classmethod
    def ok(cls, data: T | None = None, *, feed_id: str | None = None) -> Result[T]:
        return cls(success=True, data=data, feed_id=feed_id)

    @classmethod
    def fail(cls, error: ErrorKind, message: str = "", *, code: int | None = None) -> Result[T]:
        return cls(success=False, error=error, message=message, code=code)

    @classmethod
    def from_exception(cls, exc: PetlibroError) -> Result[T]:
        """Wrap a library exception, keeping the vendor code if it has one."""
        code = getattr(exc, "code", None)
        return cls(success=False, error=exc.kind, message=str(exc), code=code)

    @classmethod
    def failure_of(cls, other: Result[Any]) -> Result[T]:
        """Re-type a failed result, e.g. when a step failure ends a larger operation."""
        return cls(success=False, error=other.error, message=other.message, code=other.code)

    def __bool__(self) -> bool:
        return self.success
