"""Timetable processing - result building, time arithmetic and temporal filtering."""

from .results import build_search_results
from .temporal_filter import TemporalFilterEngine, index_delays
from .time_utils import add_minutes, travel_minutes

__all__ = [
    "build_search_results",
    "TemporalFilterEngine",
    "index_delays",
    "add_minutes",
    "travel_minutes",
]
