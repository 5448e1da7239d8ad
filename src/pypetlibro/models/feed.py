"""Manual feed session model."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


class ManualFeedSession(BaseModel):
    """An open dispense ("door open") on a wet-food feeder.

    Exists between a successful start-feed call and a successful (or
    abandoned) stop-feed call.  ``feed_id`` may be a locally synthesized
    placeholder, see :mod:`pypetlibro.feed_stop`.
    """

    model_config = ConfigDict(frozen=True)

    device_id: str
    feed_id: str | None = None
    started_at: float = Field(default_factory=time.monotonic)
