"""
Development Logger

Keeps the most recent telemetry events in memory so they can be inspected
locally and in tests without Application Insights.
"""

import json
from collections import deque
from datetime import UTC, datetime
from typing import Any

_debug_enabled = False
_max_events = 1000

_event_buffer: deque[dict[str, Any]] = deque(maxlen=_max_events)


def set_debug(enabled: bool) -> None:
    """Enable or disable debug console output."""
    global _debug_enabled
    _debug_enabled = enabled


def is_debug_enabled() -> bool:
    """Check if debug mode is enabled."""
    return _debug_enabled


def log_dev_event(event_name: str, properties: dict[str, Any]) -> None:
    """Record a telemetry event in the in-memory buffer."""
    _event_buffer.append(
        {
            "timestamp": datetime.now(UTC).isoformat(),
            "event_name": event_name,
            "properties": properties,
        }
    )

    if _debug_enabled:
        print(f"[Telemetry] {event_name}: {json.dumps(properties, default=str)}")


def export_dev_logs() -> str:
    """Export all logged events as JSON Lines."""
    return "\n".join(json.dumps(event, default=str) for event in _event_buffer)


def clear_dev_logs() -> None:
    """Clear all logged events."""
    _event_buffer.clear()


def get_dev_logs(event_name: str | None = None) -> list[dict[str, Any]]:
    """Get logged events, optionally only those with the given name."""
    if event_name is None:
        return list(_event_buffer)
    return [event for event in _event_buffer if event["event_name"] == event_name]
