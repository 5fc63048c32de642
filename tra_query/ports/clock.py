"""Clock port - Injectable source of the current local time.

Every "now"/"today" decision in the query core goes through this port
so parsing and filtering stay deterministic under test.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol


class ClockPort(Protocol):
    """Port for reading the current local time.

    Implementations:
    - adapters/clock.py (SystemClock) - Production, railway timezone
    - adapters/clock.py (FixedClock) - Testing
    """

    def now(self) -> datetime:
        """Return the current local time as a timezone-aware datetime."""
        ...

    def today(self) -> date:
        """Return the current local calendar date."""
        ...
