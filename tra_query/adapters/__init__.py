"""Adapters layer - Concrete implementations of ports.

- cache: in-memory TTL cache and a no-op cache
- clock: system and fixed clocks
- stations: JSON station directory repository
- timetable: in-memory timetable source
"""
