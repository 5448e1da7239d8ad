"""Masking of PetLibro request and response bodies for DEBUG logs.

Login bodies carry the account email, the MD5 password digest and the
app serial; every authenticated reply may echo the access or refresh
token.  Those values are replaced outright.  Device serials are only
shortened to their last four characters so that multi-feeder accounts
stay readable in logs.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

REDACTED = "<redacted>"

# Compared after lowercasing and dropping "_" and "-", so ``access_token``
# and ``accessToken`` share one entry.
_SECRET_KEYS: frozenset[str] = frozenset(
    {"password", "email", "token", "accesstoken", "refreshtoken", "authorization", "appsn"}
)
_SERIAL_KEYS: frozenset[str] = frozenset({"devicesn", "sn", "id"})
_MAX_DEPTH = 20


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def mask_serial(serial: str) -> str:
    """Keep the last four characters of a device serial."""
    if len(serial) <= 4:
        return serial
    return f"…{serial[-4:]}"


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to pass to a DEBUG log call."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        masked: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = str(raw_key)
            normalized = _normalize_key(key)
            if normalized in _SECRET_KEYS:
                masked[key] = REDACTED
            elif normalized in _SERIAL_KEYS and isinstance(item, str):
                masked[key] = mask_serial(item)
            else:
                masked[key] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return masked

    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)
