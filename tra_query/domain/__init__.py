"""Domain layer - Core railway query models and errors.

This module contains the domain models and typed errors used
throughout the query core. No external dependencies.
"""

from .errors import (
    ConfigurationError,
    DirectoryDataError,
    IndexNotReadyError,
    TemporalInputError,
    TimetableUnavailableError,
    TrainQueryError,
)
from .models import (
    GeoLocation,
    LiveDelayEntry,
    MatchStrategy,
    ParsedQuery,
    Popularity,
    RawTimetableRow,
    SearchPreferences,
    StationCandidate,
    StationRecord,
    StopTime,
    TimeWindow,
    TrainCandidate,
    TrainCatalogEntry,
    TrainNumberSearch,
    TrainSearchResult,
)

__all__ = [
    # Models
    "GeoLocation",
    "StationRecord",
    "StationCandidate",
    "SearchPreferences",
    "ParsedQuery",
    "MatchStrategy",
    "Popularity",
    "TrainCatalogEntry",
    "TrainCandidate",
    "TrainNumberSearch",
    "StopTime",
    "RawTimetableRow",
    "LiveDelayEntry",
    "TrainSearchResult",
    "TimeWindow",
    # Errors
    "TrainQueryError",
    "IndexNotReadyError",
    "DirectoryDataError",
    "TemporalInputError",
    "TimetableUnavailableError",
    "ConfigurationError",
]
