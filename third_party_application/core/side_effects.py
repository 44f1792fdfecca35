"""Best-effort execution of non-critical side effects."""

import logging
from collections.abc import Awaitable

from ..telemetry import TelemetryEvents, track_event

logger = logging.getLogger(__name__)


async def best_effort(operation: str, call: Awaitable[object]) -> bool:
    """Await a side effect, logging instead of raising if it fails.

    Used for email, platform events and gateway calls made after the primary
    mutation has committed.

    Returns:
        True if the side effect completed, False if it failed
    """
    try:
        await call
    except Exception as e:
        logger.warning(f"{operation} failed: {type(e).__name__}: {e}")
        track_event(
            TelemetryEvents.EXTERNAL_SERVICE_ERROR,
            {"operation": operation, "error_type": type(e).__name__},
        )
        return False
    return True
