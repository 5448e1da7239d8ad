"""Authentication token model."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class AuthToken(BaseModel):
    """Token material returned by login or refresh.

    Parameters
    ----------
    access_token : str
        Credential sent as ``Authorization: Bearer`` and ``token`` headers.
    refresh_token : str or None
        Credential exchanged for a new access token, when issued.
    expires_in : float or None
        Lifetime in seconds stated by the server, if any.
    raw : dict
        Full decoded payload.
    """

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    expires_in: float | None = None
    raw: dict[str, Any]
