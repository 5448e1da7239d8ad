"""HTTP transport with PetLibro header handling."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pypetlibro._constants import APP_LANGUAGE, APP_SOURCE
from pypetlibro._redact import redact_for_log
from pypetlibro.config import PetlibroConfig
from pypetlibro.exceptions import PetlibroNetworkError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`JsonTransport`) concrete.
    """

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        ...

    async def get_json(
        self,
        endpoint: str,
        params: Mapping[str, Any],
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        ...


def build_headers(config: PetlibroConfig, token: str | None = None) -> dict[str, str]:
    """Build the fixed request headers.

    Authenticated requests carry the token twice: the vendor's two
    endpoint families read it from either ``Authorization`` or ``token``.
    """
    headers: dict[str, str] = {
        "Content-Type": "application/json",
        "source": APP_SOURCE,
        "language": APP_LANGUAGE,
        "timezone": config.time_zone,
        "version": config.app_version,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
        headers["token"] = token
    return headers


class JsonTransport:
    """aiohttp transport that sends JSON bodies and decodes JSON replies."""

    def __init__(self, config: PetlibroConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def post_json(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """POST *payload* to *endpoint* and return the decoded reply."""
        return await self._request("POST", endpoint, token=token, timeout=timeout, json_body=dict(payload))

    async def get_json(
        self,
        endpoint: str,
        params: Mapping[str, Any],
        *,
        token: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """GET *endpoint* with query *params* and return the decoded reply."""
        return await self._request(
            "GET",
            endpoint,
            token=token,
            timeout=timeout,
            params={k: str(v) for k, v in params.items()},
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None,
        timeout: float | None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        total = timeout if timeout is not None else self._config.request_timeout
        headers = build_headers(self._config, token)

        _logger.debug("%s %s payload=%s", method, url, redact_for_log(json_body or params))

        try:
            async with self._http.request(
                method,
                url,
                json=json_body,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=total),
            ) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise PetlibroNetworkError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except PetlibroNetworkError:
            raise
        except asyncio.TimeoutError as exc:
            raise PetlibroNetworkError(
                f"Request to {endpoint} timed out after {total}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise PetlibroNetworkError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PetlibroNetworkError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if not isinstance(body, dict):
            raise PetlibroNetworkError(
                f"Unexpected response shape from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            )

        _logger.debug("%s %s response=%s", method, url, redact_for_log(body))
        return body
