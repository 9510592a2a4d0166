"""Shared operation log entry helper utilities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def domain_build_log_entry(
    event: str,
    data: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Build one structured operation log entry payload.

    Args:
        event: Event code, for example `start` or `rn-vt`.
        data: Optional structured data object.

    Returns:
        dict[str, object]: Structured log entry.

    Raises:
        ValueError: Raised when event is blank.
    """

    normalized_event = event.strip()
    if not normalized_event:
        raise ValueError("event must not be blank")

    return {
        "event": normalized_event,
        "data": dict(data) if data is not None else {},
        "at_utc": datetime.now(timezone.utc).isoformat(),
    }
