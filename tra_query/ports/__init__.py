"""Ports layer - Abstract interfaces (Protocols) for the query core.

Services depend on these protocols only; adapters and the in-memory
directories implement them and are wired together in container.py.
"""

from .cache import CachePort
from .clock import ClockPort
from .nlp import QueryParserPort
from .resolution import StationRepositoryPort, StationResolverPort, TrainNumberResolverPort
from .timetable import TimetableSourcePort

__all__ = [
    "CachePort",
    "ClockPort",
    "QueryParserPort",
    "StationRepositoryPort",
    "StationResolverPort",
    "TrainNumberResolverPort",
    "TimetableSourcePort",
]
