"""Train-number lookup against a catalog of known trains.

Strategies run in order and the first one producing candidates wins:

1. exact   - the token is a catalog train number (skipped for partial tokens)
2. prefix  - catalog numbers starting with the token
3. fuzzy   - substring or edit-distance similarity, padded with popular
             trains when too few match

Anything but a single exact hit must be shown to the user for
disambiguation; the resolver never picks for them.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, Field, ValidationError
from rapidfuzz.distance import Levenshtein

from ..config import DirectoryConfig, get_config
from ..domain.errors import DirectoryDataError
from ..domain.models import (
    MatchStrategy,
    Popularity,
    RawTimetableRow,
    TrainCandidate,
    TrainCatalogEntry,
    TrainNumberSearch,
)

logger = logging.getLogger(__name__)

EXACT_CONFIDENCE = 1.0
PREFIX_CONFIDENCE = 0.8
SUBSTRING_CONFIDENCE = 0.6
PADDING_CONFIDENCE = 0.2
MIN_FUZZY_RESULTS = 3

POPULARITY_RANK = {Popularity.HOT: 0, Popularity.NORMAL: 1, Popularity.RARE: 2}


class CatalogRow(BaseModel):
    """On-disk schema of one catalog train."""

    train_no: str
    train_type_code: str = ""
    train_type_name: str = ""
    origin_name: str = ""
    destination_name: str = ""
    departure_time: str = ""
    popularity: Literal["hot", "normal", "rare"] = "normal"
    tags: List[str] = Field(default_factory=list)


class CatalogFile(BaseModel):
    """On-disk schema of the train catalog."""

    version: str
    trains: List[CatalogRow] = Field(default_factory=list)


def normalize_train_no(token: str) -> str:
    return token.strip().upper()


def load_train_catalog(path: Path) -> Tuple[TrainCatalogEntry, ...]:
    """Load the train catalog from JSON.

    Raises:
        DirectoryDataError: If the file is missing or malformed.
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        parsed = CatalogFile.model_validate(payload)
    except (OSError, ValueError, ValidationError) as e:
        raise DirectoryDataError(
            f"Failed to load train catalog: {e}",
            file_path=str(path),
            cause=e,
        )

    entries = tuple(
        TrainCatalogEntry(
            train_no=normalize_train_no(row.train_no),
            train_type_code=row.train_type_code,
            train_type_name=row.train_type_name,
            origin_name=row.origin_name,
            destination_name=row.destination_name,
            departure_time=row.departure_time,
            popularity=Popularity(row.popularity),
            tags=tuple(row.tags),
        )
        for row in parsed.trains
    )
    logger.info(
        "Train catalog loaded",
        extra={"version": parsed.version, "trains": len(entries)},
    )
    return entries


def catalog_from_timetable(
    rows: Iterable[RawTimetableRow],
    station_names: Optional[Mapping[str, str]] = None,
    known: Sequence[TrainCatalogEntry] = (),
) -> Tuple[TrainCatalogEntry, ...]:
    """Derive catalog entries from a day's timetable rows.

    Popularity and tags are carried over from ``known`` entries with the
    same number; new trains default to normal popularity.
    """
    names = station_names or {}
    previous = {entry.train_no: entry for entry in known}
    entries: Dict[str, TrainCatalogEntry] = {}

    for row in rows:
        if not row.stops:
            continue
        stops = sorted(row.stops, key=lambda s: s.stop_sequence)
        first, last = stops[0], stops[-1]
        train_no = normalize_train_no(row.train_no)
        earlier = previous.get(train_no)
        entries[train_no] = TrainCatalogEntry(
            train_no=train_no,
            train_type_code=row.train_type_code,
            train_type_name=row.train_type_name,
            origin_name=names.get(first.station_id, first.station_id),
            destination_name=names.get(last.station_id, last.station_id),
            departure_time=(first.departure_time or first.arrival_time)[:5],
            popularity=earlier.popularity if earlier else Popularity.NORMAL,
            tags=earlier.tags if earlier else (),
        )
    return tuple(entries.values())


def _number_sort_key(train_no: str) -> Tuple[int, str]:
    digits = "".join(ch for ch in train_no if ch.isdigit())
    return (int(digits) if digits else 0, train_no)


@dataclass
class TrainNumberResolver:
    """Searches the train catalog for (possibly partial) train numbers.

    Implements TrainNumberResolverPort.

    Attributes:
        catalog: Initial catalog entries
        config: Directory configuration (suggestion limit, fuzzy threshold)
    """

    catalog: Sequence[TrainCatalogEntry] = ()
    config: DirectoryConfig = field(default_factory=lambda: get_config().directory)

    _entries: Dict[str, TrainCatalogEntry] = field(default_factory=dict, repr=False)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self.replace_catalog(self.catalog)

    def replace_catalog(self, entries: Iterable[TrainCatalogEntry]) -> None:
        """Swap in a new catalog."""
        with self._write_lock:
            rebuilt = {normalize_train_no(e.train_no): e for e in entries}
            self._entries = rebuilt
        self._logger.debug("Train catalog replaced", extra={"trains": len(rebuilt)})

    @property
    def catalog_size(self) -> int:
        return len(self._entries)

    def lookup(self, train_no: str) -> Optional[TrainCatalogEntry]:
        return self._entries.get(normalize_train_no(train_no))

    def search(self, token: str, partial: bool = False) -> TrainNumberSearch:
        """Search the catalog.

        Args:
            token: Train number as typed by the user.
            partial: True when the parser flagged the token as too short
                to identify a train; skips the exact strategy.

        Returns:
            The strategy used and its ranked candidates.
        """
        query = normalize_train_no(token)
        entries = self._entries

        if not partial and query in entries:
            return TrainNumberSearch(
                query=query,
                strategy=MatchStrategy.EXACT,
                candidates=(TrainCandidate(entries[query], EXACT_CONFIDENCE),),
                requires_disambiguation=False,
            )

        strategy = MatchStrategy.PREFIX
        candidates = self._prefix_matches(query, entries)
        if not candidates:
            strategy = MatchStrategy.FUZZY
            candidates = self._fuzzy_matches(query, entries)

        ranked = self._rank(candidates)
        self._logger.debug(
            "Train number searched",
            extra={
                "query": query,
                "partial": partial,
                "strategy": strategy.value,
                "matches": len(ranked),
            },
        )
        return TrainNumberSearch(
            query=query,
            strategy=strategy,
            candidates=ranked,
            requires_disambiguation=True,
        )

    @staticmethod
    def _prefix_matches(
        query: str, entries: Mapping[str, TrainCatalogEntry]
    ) -> List[TrainCandidate]:
        if not query:
            return []
        matches = []
        for train_no, entry in entries.items():
            if train_no == query:
                matches.append(TrainCandidate(entry, EXACT_CONFIDENCE))
            elif train_no.startswith(query):
                matches.append(TrainCandidate(entry, PREFIX_CONFIDENCE))
        return matches

    def _fuzzy_matches(
        self, query: str, entries: Mapping[str, TrainCatalogEntry]
    ) -> List[TrainCandidate]:
        matches: Dict[str, TrainCandidate] = {}
        if query:
            for train_no, entry in entries.items():
                if query in train_no:
                    confidence = SUBSTRING_CONFIDENCE
                else:
                    confidence = Levenshtein.normalized_similarity(query, train_no)
                    if confidence <= self.config.train_fuzzy_threshold:
                        continue
                matches[train_no] = TrainCandidate(entry, round(confidence, 3))

        if len(matches) < MIN_FUZZY_RESULTS:
            hot = [
                (train_no, entry)
                for train_no, entry in entries.items()
                if entry.popularity is Popularity.HOT
            ]
            for train_no, entry in hot[:MIN_FUZZY_RESULTS]:
                matches.setdefault(train_no, TrainCandidate(entry, PADDING_CONFIDENCE))
        return list(matches.values())

    def _rank(self, candidates: Iterable[TrainCandidate]) -> Tuple[TrainCandidate, ...]:
        ordered = sorted(
            candidates,
            key=lambda c: (
                -c.confidence,
                POPULARITY_RANK[c.entry.popularity],
                _number_sort_key(c.train_no),
            ),
        )
        return tuple(ordered[: self.config.train_suggestion_limit])
