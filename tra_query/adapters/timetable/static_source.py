"""In-memory timetable source.

Serves pre-loaded timetable rows and live delay boards. Used by tests and
the demo launcher; a production deployment plugs an HTTP client for the
upstream provider into the same port.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Sequence

from ...domain.errors import TimetableUnavailableError
from ...domain.models import LiveDelayEntry, RawTimetableRow

ANY_DATE = "*"


def serves_route(row: RawTimetableRow, origin_id: str, destination_id: str) -> bool:
    stations = {stop.station_id for stop in row.stops}
    return origin_id in stations and destination_id in stations


@dataclass
class StaticTimetableSource:
    """TimetableSourcePort backed by dictionaries.

    Attributes:
        timetables: Rows per service date ('YYYY-MM-DD'); the ``"*"`` key
            serves any date without its own entry
        live_delays: Delay board per station id

    Example:
        source = StaticTimetableSource(timetables={"*": rows})
        source.fetch_timetable("1000", "3300", "2024-10-25")
    """

    timetables: Mapping[str, Sequence[RawTimetableRow]] = field(default_factory=dict)
    live_delays: Mapping[str, Sequence[LiveDelayEntry]] = field(default_factory=dict)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def fetch_timetable(
        self,
        origin_id: str,
        destination_id: str,
        service_date: str,
    ) -> List[RawTimetableRow]:
        """Return the rows for ``service_date`` that call at both stations.

        Raises:
            TimetableUnavailableError: If no timetable is loaded for the date.
        """
        rows = self.timetables.get(service_date, self.timetables.get(ANY_DATE))
        if rows is None:
            raise TimetableUnavailableError(
                f"No timetable loaded for {service_date}",
                origin_id=origin_id,
                destination_id=destination_id,
                date=service_date,
            )
        matching = [row for row in rows if serves_route(row, origin_id, destination_id)]
        self._logger.debug(
            "Timetable served",
            extra={
                "origin_id": origin_id,
                "destination_id": destination_id,
                "date": service_date,
                "rows": len(matching),
            },
        )
        return matching

    def fetch_live_delays(self, station_id: str) -> List[LiveDelayEntry]:
        return list(self.live_delays.get(station_id, ()))
