"""Turn raw timetable rows into journey options for one station pair."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from ..domain.models import RawTimetableRow, StopTime, TrainSearchResult
from .time_utils import is_clock, travel_minutes

logger = logging.getLogger(__name__)


def _find_stop(row: RawTimetableRow, station_id: str) -> Optional[StopTime]:
    for stop in row.stops:
        if stop.station_id == station_id:
            return stop
    return None


def build_search_results(
    rows: Iterable[RawTimetableRow],
    origin_id: str,
    destination_id: str,
    restricted_types: Sequence[str] = (),
    max_travel_hours: int = 8,
    limit: int = 50,
) -> List[TrainSearchResult]:
    """Build one TrainSearchResult per train serving origin then destination.

    Departure is the origin's departure time (its arrival time when the
    departure is blank); arrival is the destination's arrival time (its
    departure time when blank). Rows are skipped when:

    - the train does not call at both stations
    - it calls at the destination before the origin
    - either time is missing or malformed
    - the journey takes longer than ``max_travel_hours`` (bad upstream data)

    Args:
        rows: Timetable rows for the service date.
        origin_id: Resolved origin station id.
        destination_id: Resolved destination station id.
        restricted_types: Train type codes not covered by the monthly pass.
        max_travel_hours: Longest plausible journey.
        limit: Maximum number of results returned.

    Returns:
        Results in row order, at most ``limit`` of them.
    """
    restricted = set(restricted_types)
    results: List[TrainSearchResult] = []

    for row in rows:
        origin = _find_stop(row, origin_id)
        destination = _find_stop(row, destination_id)
        if origin is None or destination is None:
            continue
        if destination.stop_sequence <= origin.stop_sequence:
            continue

        departure = origin.departure_time or origin.arrival_time
        arrival = destination.arrival_time or destination.departure_time
        if not (is_clock(departure) and is_clock(arrival)):
            logger.warning(
                "Dropping timetable row with malformed times",
                extra={
                    "train_no": row.train_no,
                    "departure": departure,
                    "arrival": arrival,
                },
            )
            continue

        minutes = travel_minutes(departure, arrival)
        if minutes > max_travel_hours * 60:
            logger.warning(
                "Skipping train due to abnormal travel time",
                extra={
                    "train_no": row.train_no,
                    "travel_minutes": minutes,
                    "threshold_hours": max_travel_hours,
                },
            )
            continue

        results.append(
            TrainSearchResult(
                train_no=row.train_no,
                train_type=row.train_type_name or row.train_type_code,
                departure_time=departure,
                arrival_time=arrival,
                travel_time_minutes=minutes,
                intermediate_stop_count=destination.stop_sequence - origin.stop_sequence - 1,
                is_monthly_pass_eligible=row.train_type_code not in restricted,
                train_type_code=row.train_type_code,
            )
        )
        if len(results) >= limit:
            break

    return results
