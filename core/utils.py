"""Utility functions for the Spanish Rain game."""

import time
from datetime import datetime, timezone


def monotonic_ms() -> float:
    """Milliseconds from a monotonic clock, the engine's default time source."""
    return time.monotonic() * 1000


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()
