"""System Clock — the production Clock implementation.

Invariants:
    - now() is always timezone-aware UTC
"""

from datetime import datetime, timezone


class SystemClock:
    """Wall-clock time. Tests inject a fixed clock instead."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)
