"""Clock adapters - Implementations of the ClockPort.

Available implementations:
- SystemClock: wall clock in the railway's local timezone
- FixedClock: frozen instant for tests and replays
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import FilterConfig, get_config
from ..domain.errors import ConfigurationError


def load_timezone(name: str) -> ZoneInfo:
    """Load an IANA timezone, raising ConfigurationError when unknown."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(
            f"Unknown timezone: {name}",
            setting_name="TRA_FILTER_TIMEZONE",
            expected_type="IANA timezone name",
            cause=e,
        )


@dataclass
class SystemClock:
    """Wall clock reading in the configured timezone.

    Attributes:
        config: Filter configuration (timezone name)
    """

    config: FilterConfig = field(default_factory=lambda: get_config().filter)
    _tz: ZoneInfo = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._tz = load_timezone(self.config.timezone)

    def now(self) -> datetime:
        return datetime.now(self._tz)

    def today(self) -> date:
        return self.now().date()


@dataclass
class FixedClock:
    """Clock frozen at a given instant.

    Naive instants are interpreted in ``timezone``.

    Example:
        clock = FixedClock(datetime(2024, 10, 25, 7, 30))
        clock.advance(minutes=45)
    """

    instant: datetime
    timezone: str = "Asia/Taipei"

    def __post_init__(self) -> None:
        if self.instant.tzinfo is None:
            self.instant = self.instant.replace(tzinfo=load_timezone(self.timezone))

    def now(self) -> datetime:
        return self.instant

    def today(self) -> date:
        return self.instant.date()

    def advance(self, **delta: float) -> None:
        """Move the clock forward by a timedelta expressed as keywords."""
        self.instant = self.instant + timedelta(**delta)
