"""Client configuration for pypetlibro."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pypetlibro._constants import (
    APP_VERSION,
    BASE_URL,
    DEFAULT_BACKGROUND_REFRESH_INTERVAL,
    DEFAULT_FEED_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SETTLE_DELAY,
)
from pypetlibro.exceptions import PetlibroConfigError


@dataclasses.dataclass(frozen=True)
class PetlibroConfig:
    """Client configuration.

    Parameters
    ----------
    email : str
        PetLibro account email.
    password : str
        PetLibro account password (plaintext; hashed before transport).
    device_id : str or None
        Serial of the feeder to control.  When absent, or not found on
        the account, the first device returned by the API is used.
    portions : int
        Portions dispensed by a manual feed on standard feeders.
    time_zone : str
        IANA time zone string sent with every request.
    country : str
        Account country code used at login.
    base_url : str
        API base URL.  Defaults to the US endpoint.
    app_version : str
        App version string sent in the ``version`` header.
    request_timeout : float
        Total timeout in seconds for ordinary requests.
    feed_timeout : float
        Total timeout in seconds for feed commands, which the vendor
        answers only after the dispenser has reacted.
    settle_delay : float
        Seconds to wait between consecutive tray rotations.
    background_refresh_interval : float
        Seconds between forced real-time refreshes when background
        refresh is enabled for a device.
    """

    email: str = ""
    password: str = ""
    device_id: str | None = None
    portions: int = 1
    time_zone: str = "America/New_York"
    country: str = "US"
    base_url: str = BASE_URL
    app_version: str = APP_VERSION
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    feed_timeout: float = DEFAULT_FEED_TIMEOUT
    settle_delay: float = DEFAULT_SETTLE_DELAY
    background_refresh_interval: float = DEFAULT_BACKGROUND_REFRESH_INTERVAL

    @property
    def has_credentials(self) -> bool:
        return bool(self.email and self.password)

    def validate(self) -> PetlibroConfig:
        """Reject values the client can never work with.

        Missing credentials are deliberately not checked here: they are
        reported by the first login attempt so callers can retry later.

        Raises
        ------
        PetlibroConfigError
            If a numeric setting is out of range or the base URL is empty.
        """
        if self.portions < 1:
            raise PetlibroConfigError(f"portions must be >= 1, got {self.portions}")
        if self.request_timeout <= 0 or self.feed_timeout <= 0:
            raise PetlibroConfigError("timeouts must be positive")
        if self.settle_delay < 0:
            raise PetlibroConfigError(f"settle_delay must be >= 0, got {self.settle_delay}")
        if self.background_refresh_interval <= 0:
            raise PetlibroConfigError("background_refresh_interval must be positive")
        if not self.base_url:
            raise PetlibroConfigError("base_url must be non-empty")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> PetlibroConfig:
        """Create configuration from environment variables.

        Reads ``PETLIBRO_EMAIL``, ``PETLIBRO_PASSWORD`` and the optional
        ``PETLIBRO_*`` variables below.  Explicit keyword arguments
        override environment values.

        Returns
        -------
        PetlibroConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "PETLIBRO_EMAIL": "email",
            "PETLIBRO_PASSWORD": "password",
            "PETLIBRO_DEVICE_ID": "device_id",
            "PETLIBRO_TIME_ZONE": "time_zone",
            "PETLIBRO_COUNTRY": "country",
            "PETLIBRO_BASE_URL": "base_url",
            "PETLIBRO_APP_VERSION": "app_version",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        portions_env = env.get("PETLIBRO_PORTIONS")
        if portions_env is not None and "portions" not in overrides:
            config_kwargs["portions"] = int(portions_env)

        _ENV_FLOAT_MAP = {
            "PETLIBRO_REQUEST_TIMEOUT": "request_timeout",
            "PETLIBRO_FEED_TIMEOUT": "feed_timeout",
            "PETLIBRO_SETTLE_DELAY": "settle_delay",
            "PETLIBRO_REFRESH_INTERVAL": "background_refresh_interval",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = float(val)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
