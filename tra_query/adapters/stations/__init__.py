"""Station directory adapters - Implementations of the StationRepositoryPort."""

from .json_repository import JsonStationRepository

__all__ = ["JsonStationRepository"]
