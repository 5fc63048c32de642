"""Timetable adapters - Implementations of the TimetableSourcePort."""

from .static_source import StaticTimetableSource

__all__ = ["StaticTimetableSource"]
