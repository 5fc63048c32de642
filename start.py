"""Interactive demo for the railway query core.

Type a question such as "台北到台中明天早上八點" or "152" and the answer
is printed. Timetables come from a small built-in sample (Taipei, Banqiao,
Taichung, Kaohsiung) since the upstream provider client is not part of
this package. Empty input quits.
"""

from __future__ import annotations

import sys

from tra_query.adapters.timetable import StaticTimetableSource
from tra_query.container import get_container
from tra_query.domain import LiveDelayEntry, RawTimetableRow, StopTime
from tra_query.observability import configure_logging
from tra_query.ports.timetable import TimetableSourcePort
from tra_query.services import OutcomeKind, QueryOutcome, TrainQueryService
from tra_query.timetable.time_utils import format_duration

# (train_no, type code, type name, [(station_id, departure), ...])
SAMPLE_TRAINS = [
    ("152", "4", "莒光號", [("1000", "07:10"), ("1020", "07:18"), ("3300", "09:05"), ("4400", "11:40")]),
    ("1121", "6", "區間車", [("1000", "07:35"), ("1020", "07:46"), ("3300", "10:20")]),
    ("2", "2", "普悠瑪號", [("1000", "08:00"), ("3300", "09:38"), ("4400", "11:55")]),
    ("1234", "6", "區間車", [("1000", "08:20"), ("1020", "08:31"), ("3300", "11:02")]),
    ("562", "5", "復興號", [("1000", "22:40"), ("1020", "22:51"), ("3300", "01:10")]),
]


def sample_rows() -> list[RawTimetableRow]:
    rows = []
    for train_no, code, name, stops in SAMPLE_TRAINS:
        rows.append(
            RawTimetableRow(
                train_no=train_no,
                train_type_code=code,
                train_type_name=name,
                stops=tuple(
                    StopTime(station_id=sid, stop_sequence=seq, arrival_time=t, departure_time=t)
                    for seq, (sid, t) in enumerate(stops, start=1)
                ),
            )
        )
    return rows


def describe(outcome: QueryOutcome) -> str:
    if outcome.kind is OutcomeKind.INCOMPLETE:
        return "請提供出發站與抵達站 / Please give both an origin and a destination."
    if outcome.kind is OutcomeKind.STATION_NOT_FOUND:
        return f"找不到車站 / Station not found: {outcome.unresolved_text}"
    if outcome.kind is OutcomeKind.AMBIGUOUS_STATION:
        names = ", ".join(f"{c.display_name} ({c.confidence:.1f})" for c in outcome.candidates)
        return f"請選擇車站 / Which station did you mean: {names}"
    if outcome.kind is OutcomeKind.TRAIN_CANDIDATES and outcome.train_search:
        lines = [f"車次 / Train candidates ({outcome.train_search.strategy.value}):"]
        for candidate in outcome.train_search.candidates:
            entry = candidate.entry
            lines.append(
                f"  {entry.train_no:>5} {entry.train_type_name} "
                f"{entry.origin_name}→{entry.destination_name} {entry.departure_time}"
            )
        return "\n".join(lines)

    if not outcome.trains:
        return "此時段沒有班次 / No trains in this time window."
    header = (
        f"{outcome.origin.display_name if outcome.origin else ''} → "
        f"{outcome.destination.display_name if outcome.destination else ''} "
        f"({outcome.service_date})"
    )
    lines = [header]
    for train in outcome.trains:
        flags = []
        if train.is_backup_option:
            flags.append("backup")
        if train.is_imminent:
            flags.append("imminent")
        if train.delay_minutes:
            flags.append(f"+{train.delay_minutes}min")
        lines.append(
            f"  {train.train_no:>5} {train.train_type} {train.departure_time}-{train.arrival_time} "
            f"{format_duration(train.travel_time_minutes)} {' '.join(flags)}".rstrip()
        )
    return "\n".join(lines)


def main() -> None:
    configure_logging()
    container = get_container()
    container.register(
        TimetableSourcePort,
        lambda: StaticTimetableSource(
            timetables={"*": sample_rows()},
            live_delays={"1000": [LiveDelayEntry("2", 5, "delayed")]},
        ),
    )
    service: TrainQueryService = container.resolve(TrainQueryService)

    print("=== 台鐵查詢 / TRA query demo ===")
    while True:
        try:
            text = input("> ").strip()
        except EOFError:
            break
        if not text:
            break
        print(describe(service.answer(text)))
    sys.exit(0)


if __name__ == "__main__":
    main()
