"""Internal feeding and tray commands for :class:`pypetlibro.client.PetlibroClient`."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pypetlibro._api import devices as _devices_api
from pypetlibro._api import feeding as _feeding_api
from pypetlibro._api._common import post_envelope
from pypetlibro._transport import Transport
from pypetlibro.exceptions import PetlibroError, PetlibroStateError
from pypetlibro.feed_stop import is_placeholder_feed_id, make_placeholder_feed_id
from pypetlibro.models.feed import ManualFeedSession
from pypetlibro.models.requests import ManualFeedRequest, StopFeedRequest
from pypetlibro.models.result import Result
from pypetlibro.session import Session

if TYPE_CHECKING:
    from pypetlibro.client import PetlibroClient

_logger = logging.getLogger(__name__)


async def start_manual_feed(client: PetlibroClient, device_id: str | None) -> Result[ManualFeedSession]:
    async def _start(session: Session, transport: Transport, device: str) -> ManualFeedSession:
        feed_id = await _feeding_api.start_manual_feed(client.config, session, transport, device)
        if feed_id is None:
            feed_id = make_placeholder_feed_id(device)
            _logger.warning("Feed start for %s returned no feed id; using placeholder %s", device, feed_id)
        return ManualFeedSession(device_id=device, feed_id=feed_id)

    result = await client._device_call("start_manual_feed", device_id, _start)
    if not result.success or result.data is None:
        return result
    return Result.ok(result.data, feed_id=result.data.feed_id)


async def _resolve_feed_id(client: PetlibroClient, session: Session, transport: Transport, device: str) -> str | None:
    """Look for the real feed id of an in-progress feed in the snapshot."""
    try:
        snapshot = await _devices_api.fetch_real_info(client.config, session, transport, device)
    except PetlibroError as exc:
        _logger.warning("Could not read snapshot to resolve feed id for %s: %s", device, exc)
        return None
    feed_id = snapshot.active_feed_id
    if feed_id is None or is_placeholder_feed_id(feed_id):
        return None
    return feed_id


async def stop_manual_feed(client: PetlibroClient, device_id: str | None, feed_id: str | None) -> Result[str]:
    try:
        if not (feed_id or "").strip():
            raise PetlibroStateError("No feed id recorded; nothing to stop")
        request = client._validate(StopFeedRequest, device_id=client._require_device(device_id), feed_id=feed_id)
    except PetlibroError as exc:
        return client._failed("stop_manual_feed", exc)

    async def _stop(session: Session, transport: Transport, device: str) -> str:
        if not is_placeholder_feed_id(request.feed_id):
            await _feeding_api.stop_manual_feed(client.config, session, transport, device, request.feed_id)
            return "feed_id"

        real_id = await _resolve_feed_id(client, session, transport, device)
        if real_id is not None:
            _logger.info("Resolved placeholder %s to feed id %s", request.feed_id, real_id)
            await _feeding_api.stop_manual_feed(client.config, session, transport, device, real_id)
            return "resolved_feed_id"

        async def _post(endpoint: str, payload: dict[str, Any]) -> Any:
            return await post_envelope(
                endpoint=endpoint,
                session=session,
                transport=transport,
                payload=payload,
                timeout=client.config.feed_timeout,
            )

        strategy = await client.stop_chain.run(device, _post)
        return strategy.name

    return await client._device_call("stop_manual_feed", request.device_id, _stop)


async def manual_feed(client: PetlibroClient, device_id: str | None, portions: int | None) -> Result[int]:
    count = portions if portions is not None else client.config.portions
    try:
        request = client._validate(ManualFeedRequest, device_id=client._require_device(device_id), portions=count)
    except PetlibroError as exc:
        return client._failed("manual_feed", exc)

    async def _feed(session: Session, transport: Transport, device: str) -> int:
        await _feeding_api.manual_feeding(client.config, session, transport, device, request.portions)
        _logger.info("Dispensed %d portion(s) on %s", request.portions, device)
        return request.portions

    return await client._device_call("manual_feed", request.device_id, _feed)


async def rotate_tray(client: PetlibroClient, device_id: str | None) -> Result[None]:
    return await client._device_call(
        "rotate_tray",
        device_id,
        lambda session, transport, device: _feeding_api.rotate_plate(client.config, session, transport, device),
    )


async def play_feed_audio(client: PetlibroClient, device_id: str | None) -> Result[None]:
    return await client._device_call(
        "play_feed_audio",
        device_id,
        lambda session, transport, device: _feeding_api.play_feed_audio(client.config, session, transport, device),
    )
