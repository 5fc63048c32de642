"""Typed domain errors for the railway query core.

Only contract violations and data-loading failures are raised to callers.
Unparseable utterances, empty or ambiguous matches and malformed temporal
input are local degradations handled inside the components.

All errors inherit from TrainQueryError and can optionally
wrap a root cause exception for debugging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class TrainQueryError(Exception):
    """Base error for the railway query domain.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class IndexNotReadyError(TrainQueryError):
    """A lookup was attempted before the station index was ever built.

    Attributes:
        query: The text that was being resolved
    """

    query: str = ""


@dataclass
class DirectoryDataError(TrainQueryError):
    """Station, alias or catalog data could not be loaded.

    Attributes:
        file_path: Path to the data file if relevant
    """

    file_path: Optional[str] = None


@dataclass
class TemporalInputError(TrainQueryError):
    """A date or time component failed validation.

    Raised by the temporal validators and always caught by the filter
    engine, which falls back to the current time.

    Attributes:
        field_name: Which input was invalid ('date' or 'time')
        value: The rejected raw value
    """

    field_name: str = ""
    value: str = ""


@dataclass
class TimetableUnavailableError(TrainQueryError):
    """The timetable source could not provide rows for a route.

    Attributes:
        origin_id: Origin station id
        destination_id: Destination station id
        date: Requested service date
    """

    origin_id: str = ""
    destination_id: str = ""
    date: str = ""


@dataclass
class ConfigurationError(TrainQueryError):
    """Invalid or missing configuration.

    Attributes:
        setting_name: Name of the problematic setting
        expected_type: Expected type or format
    """

    setting_name: str = ""
    expected_type: Optional[str] = None
