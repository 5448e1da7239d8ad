"""Password digest required by the PetLibro login protocol."""

from __future__ import annotations

import hashlib


def md5_hex(value: str) -> str:
    """Compute MD5 of a UTF-8 string, returning lowercase hex.

    The mobile app sends the account password as this digest.  It is a
    protocol compatibility requirement and must not be changed.
    """
    return hashlib.md5(value.encode("utf-8")).hexdigest()  # noqa: S324
