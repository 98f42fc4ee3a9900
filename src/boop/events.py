"""Best-effort domain event broadcast over Redis pub/sub.

Events are published after the owning transaction commits. A publish
failure is logged and never affects the committed operation.
"""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "pubsub:"


async def publish_event(redis: object | None, event: str, payload: dict[str, Any]) -> bool:
    """Publish payload on pubsub:<event>. Returns True when sent."""
    if redis is None:
        return False
    try:
        await redis.publish(  # type: ignore[union-attr]
            f"{CHANNEL_PREFIX}{event}",
            json.dumps(payload, default=str),
        )
    except Exception:
        logger.warning("Failed to publish %s event", event, exc_info=True)
        return False
    return True
