"""Login and token refresh endpoints.

Endpoints:
  - /member/auth/login
  - /member/auth/refresh

The login body must match the mobile app byte for byte, including the
fixed ``appSn`` and the MD5 password digest.
"""

from __future__ import annotations

import logging
from typing import Any

from pypetlibro._constants import APP_ID, APP_SN, LOGIN_ENDPOINT, REFRESH_ENDPOINT
from pypetlibro._hashing import md5_hex
from pypetlibro._normalize import safe_float, safe_int, safe_str
from pypetlibro._redact import redact_for_log
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import PetlibroAuthError
from pypetlibro.models.token import AuthToken

_logger = logging.getLogger(__name__)


def build_login_request(config: PetlibroConfig) -> dict[str, Any]:
    """Build the JSON body for the login endpoint.

    Raises
    ------
    PetlibroAuthError
        If email or password is missing.
    """
    if not config.has_credentials:
        raise PetlibroAuthError("Email and password are required", endpoint=LOGIN_ENDPOINT)

    return {
        "appId": APP_ID,
        "appSn": APP_SN,
        "country": config.country,
        "email": config.email,
        "password": md5_hex(config.password),
        "phoneBrand": "",
        "phoneSystemVersion": "",
        "timezone": config.time_zone,
        "thirdId": None,
        "type": None,
    }


def _lifetime(data: dict[str, Any]) -> float | None:
    value = safe_float(data.get("expires_in", data.get("expiresIn")))
    if value is None or value <= 0:
        return None
    return value


def parse_login_response(response: dict[str, Any]) -> AuthToken:
    """Parse the login envelope and extract the token.

    Raises
    ------
    PetlibroAuthError
        If login failed or the response has no ``data.token``.
    """
    code = safe_int(response.get("code"))
    if code != 0:
        message = response.get("msg") or response.get("message") or "Unknown error"
        raise PetlibroAuthError(
            f"Login failed: code={response.get('code')} message={message}",
            code=code,
            endpoint=LOGIN_ENDPOINT,
        )

    data = response.get("data")
    _logger.debug("Login response data=%s", redact_for_log(data))
    token = safe_str(data.get("token")) if isinstance(data, dict) else None
    if not isinstance(data, dict) or not token:
        raise PetlibroAuthError("Login response missing data.token", endpoint=LOGIN_ENDPOINT)

    return AuthToken(
        access_token=token,
        refresh_token=safe_str(data.get("refreshToken") or data.get("refresh_token")),
        expires_in=_lifetime(data),
        raw=data,
    )


def build_refresh_request(refresh_token: str) -> dict[str, Any]:
    """Build the JSON body for the token refresh endpoint."""
    return {"refresh_token": refresh_token}


def parse_refresh_response(response: dict[str, Any], *, refresh_token: str) -> AuthToken:
    """Parse a refresh reply.

    The refresh endpoint answers either with a bare OAuth style body
    (``access_token``, ``expires_in``) or with the usual envelope.  A new
    refresh token is optional; the previous one stays in use otherwise.

    Raises
    ------
    PetlibroAuthError
        If the reply carries an error code or no access token.
    """
    if "code" in response and safe_int(response.get("code")) != 0:
        raise PetlibroAuthError(
            f"Token refresh failed: code={response.get('code')} message={response.get('msg', '')}",
            code=safe_int(response.get("code")),
            endpoint=REFRESH_ENDPOINT,
        )

    data = response.get("data") if isinstance(response.get("data"), dict) else response
    access_token = safe_str(data.get("access_token") or data.get("token"))
    if not access_token:
        raise PetlibroAuthError("Invalid refresh response", endpoint=REFRESH_ENDPOINT)

    return AuthToken(
        access_token=access_token,
        refresh_token=safe_str(data.get("refresh_token") or data.get("refreshToken")) or refresh_token,
        expires_in=_lifetime(data),
        raw=data,
    )
