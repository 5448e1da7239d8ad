"""Custom exception hierarchy for pypetlibro."""

from __future__ import annotations

from typing import ClassVar

from pypetlibro.models.result import ErrorKind


class PetlibroError(Exception):
    """Base exception for all pypetlibro errors."""

    kind: ClassVar[ErrorKind] = ErrorKind.API


class PetlibroConfigError(PetlibroError):
    """Invalid configuration."""

    kind = ErrorKind.CONFIG


class PetlibroRequestError(PetlibroConfigError):
    """Arguments of a client operation failed validation; nothing was sent."""


class PetlibroNetworkError(PetlibroError):
    """HTTP-level failure (timeout, DNS, connection, non-200, invalid JSON).

    A timeout never implies a partial state change on the vendor side.
    """

    kind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class PetlibroApiError(PetlibroError):
    """API envelope reported a non-zero code."""

    kind = ErrorKind.API

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class PetlibroAuthError(PetlibroApiError):
    """Login failed: bad credentials or an unexpected login response shape."""

    kind = ErrorKind.AUTH


class PetlibroNotFoundError(PetlibroError):
    """Configured device id is not present in the account's device list."""

    kind = ErrorKind.NOT_FOUND


class PetlibroStateError(PetlibroError):
    """Operation is not possible in the current local state.

    Raised when no device id has been resolved, or when a feed stop is
    requested without any recorded feed identifier.
    """

    kind = ErrorKind.STATE
