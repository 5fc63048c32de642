"""Bilingual (Chinese/English) natural-language query core for Taiwan Railway.

Turns utterances such as "台北到台中明天早上八點" into structured queries,
resolves station and train-number mentions against versioned directories,
and filters a day's timetable into a short, time-relevant list of trains.

Entry point:
    from tra_query.container import get_container
    from tra_query.services import TrainQueryService

    service = get_container().resolve(TrainQueryService)
    outcome = service.answer("北車到台中")
"""

__version__ = "0.1.0"
