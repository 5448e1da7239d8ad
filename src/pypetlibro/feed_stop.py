"""Feed identifier placeholders and the ordered feed-stop chain.

Starting a manual feed on the Polar feeder should return the feed id
needed to stop it, but the vendor sometimes omits it.  The client then
hands out a placeholder id (:data:`PLACEHOLDER_PREFIX` + device id +
epoch milliseconds).  A placeholder is never sent to the stop endpoint:
the client first tries to resolve the real id from the real-time
snapshot and otherwise walks :class:`FeedStopChain`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any

from pypetlibro._constants import MANUAL_FEED_NOW_ENDPOINT, SET_STOP_FEED_NOW_ENDPOINT, STOP_FEED_NOW_ENDPOINT
from pypetlibro.exceptions import PetlibroApiError, PetlibroError

_logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "manual_feed_"

#: Posts ``payload`` to ``endpoint``; raises :class:`PetlibroError` unless
#: the reply is a success envelope.
PostFn = Callable[[str, dict[str, Any]], Awaitable[Any]]


def make_placeholder_feed_id(device_id: str, now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{PLACEHOLDER_PREFIX}{device_id}_{now_ms}"


def is_placeholder_feed_id(feed_id: str | None) -> bool:
    return bool(feed_id) and str(feed_id).startswith(PLACEHOLDER_PREFIX)


@dataclass(frozen=True, slots=True)
class StopStrategy:
    """One way of stopping a feed when the real feed id is unknown."""

    name: str
    endpoint: str
    build_payload: Callable[[str], dict[str, Any]]


DEFAULT_STOP_STRATEGIES: tuple[StopStrategy, ...] = (
    StopStrategy(
        name="sentinel_feed_id",
        endpoint=STOP_FEED_NOW_ENDPOINT,
        build_payload=lambda device_id: {"deviceSn": device_id, "feedId": 0},
    ),
    StopStrategy(
        name="alternate_endpoint",
        endpoint=SET_STOP_FEED_NOW_ENDPOINT,
        build_payload=lambda device_id: {"deviceSn": device_id},
    ),
    StopStrategy(
        name="start_endpoint_stop_action",
        endpoint=MANUAL_FEED_NOW_ENDPOINT,
        build_payload=lambda device_id: {"deviceSn": device_id, "action": "stop"},
    ),
)


class FeedStopChain:
    """Try stop strategies in a fixed order until one succeeds."""

    def __init__(self, strategies: Sequence[StopStrategy] = DEFAULT_STOP_STRATEGIES) -> None:
        if not strategies:
            raise ValueError("FeedStopChain needs at least one strategy")
        self._strategies = tuple(strategies)

    @property
    def strategies(self) -> tuple[StopStrategy, ...]:
        return self._strategies

    async def run(self, device_id: str, post: PostFn) -> StopStrategy:
        """Run the chain for *device_id*.

        Returns
        -------
        StopStrategy
            The first strategy that got a success envelope.

        Raises
        ------
        PetlibroApiError
            If every strategy failed; the message aggregates each failure.
        """
        failures: list[str] = []
        total = len(self._strategies)
        for index, strategy in enumerate(self._strategies, start=1):
            _logger.debug("Trying feed stop strategy %d/%d (%s)", index, total, strategy.name)
            try:
                await post(strategy.endpoint, strategy.build_payload(device_id))
            except PetlibroError as exc:
                _logger.warning("Feed stop strategy %s failed for %s: %s", strategy.name, device_id, exc)
                failures.append(f"{strategy.name}: {exc}")
                continue
            _logger.info("Feed stopped for %s using strategy %s", device_id, strategy.name)
            return strategy
        raise PetlibroApiError(
            f"All feed stop strategies failed for {device_id}: " + "; ".join(failures),
            endpoint=STOP_FEED_NOW_ENDPOINT,
        )
