"""Shared helpers for PetLibro endpoint modules.

This module centralizes the most repeated patterns:
- building the ``id``/``deviceSn`` device payload
- posting an authenticated request
- unwrapping the ``{code, data, msg}`` response envelope

It is internal to pypetlibro and may change at any time.
"""

from __future__ import annotations

from typing import Any

from pypetlibro._normalize import safe_int
from pypetlibro._transport import Transport
from pypetlibro.exceptions import PetlibroApiError
from pypetlibro.session import Session


def device_payload(device_id: str, **extra: Any) -> dict[str, Any]:
    """Payload identifying a device the way the read endpoints expect it."""
    return {"id": device_id, "deviceSn": device_id, **extra}


def unwrap_envelope(endpoint: str, response: dict[str, Any]) -> Any:
    """Return ``data`` from a success envelope.

    Raises
    ------
    PetlibroApiError
        If ``code`` is missing or non-zero.
    """
    code = safe_int(response.get("code"))
    if code != 0:
        message = str(response.get("msg") or response.get("message") or "Unknown error")
        raise PetlibroApiError(
            f"{endpoint} failed: code={response.get('code')} message={message}",
            code=code,
            endpoint=endpoint,
        )
    return response.get("data")


async def post_envelope(
    *,
    endpoint: str,
    session: Session,
    transport: Transport,
    payload: dict[str, Any],
    timeout: float | None = None,
) -> Any:
    """Post an authenticated request and return the envelope's ``data``.

    This is a thin helper for endpoint modules; it intentionally returns
    `Any` since endpoints may return objects, lists or nothing.
    """
    response = await transport.post_json(
        endpoint,
        payload,
        token=session.access_token,
        timeout=timeout,
    )
    return unwrap_envelope(endpoint, response)


async def get_envelope(
    *,
    endpoint: str,
    session: Session,
    transport: Transport,
    params: dict[str, Any],
    timeout: float | None = None,
) -> Any:
    """GET counterpart of :func:`post_envelope`."""
    response = await transport.get_json(
        endpoint,
        params,
        token=session.access_token,
        timeout=timeout,
    )
    return unwrap_envelope(endpoint, response)
