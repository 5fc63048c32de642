"""Timetable port - Abstraction over the upstream timetable provider.

The authenticated HTTP client that talks to the open-data provider lives
outside this package; it plugs in by implementing this protocol.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import LiveDelayEntry, RawTimetableRow


class TimetableSourcePort(Protocol):
    """Port for fetching timetable rows and live delays.

    Implementations:
    - adapters/timetable/static_source.py (StaticTimetableSource) - in-memory
    """

    def fetch_timetable(
        self,
        origin_id: str,
        destination_id: str,
        service_date: str,
    ) -> Sequence[RawTimetableRow]:
        """Fetch the day's timetable rows serving an origin/destination pair.

        Args:
            origin_id: Resolved origin station id.
            destination_id: Resolved destination station id.
            service_date: Service date as 'YYYY-MM-DD'.

        Returns:
            Rows for every train stopping at both stations.

        Raises:
            TimetableUnavailableError: If the provider cannot serve the request.
        """
        ...

    def fetch_live_delays(self, station_id: str) -> Sequence[LiveDelayEntry]:
        """Fetch the live departure board for a station.

        Args:
            station_id: Station whose board is requested.

        Returns:
            Delay entries keyed by train number.
        """
        ...
