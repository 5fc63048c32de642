"""Resolution ports - Abstractions for station and train-number lookup.

These protocols define the contracts between the orchestration service
and the in-memory directories, and between the directory and whatever
loads the upstream station list.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import StationCandidate, StationRecord, TrainNumberSearch


class StationRepositoryPort(Protocol):
    """Port for loading the station directory.

    Implementation: adapters/stations/json_repository.py
    """

    def list_stations(self) -> Sequence[StationRecord]:
        """Load all stations.

        Returns:
            Sequence of station records.

        Raises:
            DirectoryDataError: If the station data cannot be loaded.
        """
        ...


class StationResolverPort(Protocol):
    """Port for resolving free text to ranked station candidates.

    Implementation: resolution/station_index.py (StationDirectoryIndex)
    """

    def resolve(self, text: str) -> list[StationCandidate]:
        """Resolve text to candidates, best first.

        Raises:
            IndexNotReadyError: If the directory was never built.
        """
        ...

    def is_firm_match(self, candidates: Sequence[StationCandidate]) -> bool:
        """Whether the top candidate can be taken without asking the user."""
        ...


class TrainNumberResolverPort(Protocol):
    """Port for train-number lookup.

    Implementation: resolution/train_numbers.py (TrainNumberResolver)
    """

    def search(self, token: str, partial: bool = False) -> TrainNumberSearch:
        """Search the train catalog for a (possibly partial) number."""
        ...
