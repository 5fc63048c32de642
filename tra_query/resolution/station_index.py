"""In-memory station directory with tiered fuzzy resolution.

The directory owns one immutable snapshot of three views over the station
list (exact names, 1-3 character prefixes, aliases through AliasTable).
A rebuild assembles a complete new snapshot off to the side and then
publishes it with a single reference swap, so readers never observe a
half-built index and need no lock.

Confidence tiers:
- 1.0: exact local or romanized name (raw or alias-expanded query)
- 0.9: station name starts with the query (prefix bucket)
- 0.7: station name contains the query (prefix bucket)
- 0.5: long-tail fallback (2-char bucket, containment, romanized fuzzy)
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from rapidfuzz import fuzz, process

from ..config import DirectoryConfig, get_config
from ..domain.errors import IndexNotReadyError
from ..domain.models import StationCandidate, StationRecord
from .aliases import AliasTable, romanized_key

EXACT_CONFIDENCE = 1.0
STARTS_WITH_CONFIDENCE = 0.9
CONTAINS_CONFIDENCE = 0.7
FALLBACK_CONFIDENCE = 0.5

MAX_PREFIX_LENGTH = 3
EARTH_RADIUS_KM = 6371.0

Offer = Callable[[Iterable[str], float], None]


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


@dataclass(frozen=True)
class DirectorySnapshot:
    """One fully built, never mutated generation of the index."""

    stations: Dict[str, StationRecord]
    local_keys: Dict[str, str]
    romanized_keys: Dict[str, str]
    by_local: Dict[str, Tuple[str, ...]]
    by_romanized: Dict[str, Tuple[str, ...]]
    by_prefix: Dict[str, Tuple[str, ...]]


def _prefixes(key: str) -> Iterable[str]:
    for length in range(1, min(MAX_PREFIX_LENGTH, len(key)) + 1):
        yield key[:length]


def build_snapshot(
    stations: Sequence[StationRecord], aliases: AliasTable
) -> DirectorySnapshot:
    """Build all index views for a station list."""
    records: Dict[str, StationRecord] = {}
    for station in stations:
        if not station.id or not station.name_local:
            continue
        records[station.id] = station

    local_keys = {sid: aliases.normalize(s.name_local) for sid, s in records.items()}
    romanized_keys = {sid: romanized_key(s.name_romanized) for sid, s in records.items()}

    by_local: Dict[str, List[str]] = {}
    by_romanized: Dict[str, List[str]] = {}
    by_prefix: Dict[str, List[str]] = {}
    for sid in records:
        by_local.setdefault(local_keys[sid], []).append(sid)
        if romanized_keys[sid]:
            by_romanized.setdefault(romanized_keys[sid], []).append(sid)

        keys = set(_prefixes(local_keys[sid])) | set(_prefixes(romanized_keys[sid]))
        for prefix in keys:
            by_prefix.setdefault(prefix, []).append(sid)

    return DirectorySnapshot(
        stations=records,
        local_keys=local_keys,
        romanized_keys=romanized_keys,
        by_local={k: tuple(v) for k, v in by_local.items()},
        by_romanized={k: tuple(v) for k, v in by_romanized.items()},
        by_prefix={k: tuple(v) for k, v in by_prefix.items()},
    )


@dataclass
class StationDirectoryIndex:
    """Resolves free text to ranked station candidates.

    Implements StationResolverPort.

    Attributes:
        aliases: Alias and variant table used for query and name folding
        config: Directory configuration (top-N, thresholds)

    Example:
        index = StationDirectoryIndex(aliases=load_alias_table(path))
        index.build_index(repository.list_stations())
        index.resolve("北車")[0].station_id  # '1000'
    """

    aliases: AliasTable = field(default_factory=AliasTable)
    config: DirectoryConfig = field(default_factory=lambda: get_config().directory)

    _snapshot: Optional[DirectorySnapshot] = field(default=None, repr=False)
    _write_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    # -- lifecycle ------------------------------------------------------------

    def build_index(self, stations: Sequence[StationRecord]) -> None:
        """Build a new snapshot and publish it.

        Resolution keeps serving the previous snapshot until the new one
        is complete.

        Args:
            stations: The full station list.
        """
        with self._write_lock:
            snapshot = build_snapshot(stations, self.aliases)
            self._snapshot = snapshot

        skipped = len(stations) - len(snapshot.stations)
        self._logger.info(
            "Station index built",
            extra={
                "stations": len(snapshot.stations),
                "prefix_buckets": len(snapshot.by_prefix),
                "alias_version": self.aliases.version,
            },
        )
        if skipped:
            self._logger.warning(
                "Stations skipped during index build",
                extra={"skipped": skipped},
            )

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    @property
    def station_count(self) -> int:
        snapshot = self._snapshot
        return len(snapshot.stations) if snapshot else 0

    def _require_snapshot(self, query: str = "") -> DirectorySnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexNotReadyError(
                "Station index used before it was built",
                query=query,
            )
        return snapshot

    # -- lookups --------------------------------------------------------------

    def get_station(self, station_id: str) -> Optional[StationRecord]:
        return self._require_snapshot(station_id).stations.get(station_id)

    def resolve(self, text: str) -> list[StationCandidate]:
        """Resolve text to station candidates.

        Args:
            text: A station mention in Chinese, English, or an alias.

        Returns:
            Candidates sorted by confidence (desc) then display name,
            truncated to the configured top-N. Empty when nothing matches.

        Raises:
            IndexNotReadyError: If build_index was never called.
        """
        snapshot = self._require_snapshot(text)
        forms = self.aliases.query_forms(text or "")
        if not forms:
            return []

        scores: Dict[str, float] = {}

        def offer(station_ids: Iterable[str], confidence: float) -> None:
            for sid in station_ids:
                if confidence > scores.get(sid, 0.0):
                    scores[sid] = confidence

        for form in forms:
            self._exact_tier(snapshot, form, offer)
            self._prefix_tier(snapshot, form, offer)

        if len(scores) < self.config.fallback_min_candidates and len(forms[0]) >= 2:
            self._fallback_tier(snapshot, forms, offer)

        candidates = [
            self._to_candidate(snapshot.stations[sid], confidence)
            for sid, confidence in scores.items()
        ]
        candidates.sort(key=lambda c: (-c.confidence, c.display_name))

        self._logger.debug(
            "Station resolved",
            extra={"query": text, "forms": forms, "matches": len(candidates)},
        )
        return candidates[: self.config.top_n]

    def is_firm_match(self, candidates: Sequence[StationCandidate]) -> bool:
        """Whether the top candidate may be used without asking the user.

        A match is firm when the best confidence reaches the firm-match
        threshold and no other candidate ties it.
        """
        if not candidates:
            return False
        top = candidates[0]
        if top.confidence < self.config.firm_match_threshold:
            return False
        return len(candidates) == 1 or candidates[1].confidence < top.confidence

    def nearest_station(
        self, latitude: float, longitude: float
    ) -> Optional[Tuple[StationRecord, float]]:
        """Find the station closest to a coordinate.

        Returns:
            (station, distance_km), or None when no station has coordinates.
        """
        snapshot = self._require_snapshot()
        best: Optional[Tuple[StationRecord, float]] = None
        for station in snapshot.stations.values():
            if station.location is None:
                continue
            distance = haversine_km(
                latitude,
                longitude,
                station.location.latitude,
                station.location.longitude,
            )
            if best is None or distance < best[1]:
                best = (station, distance)
        return best

    # -- tiers ----------------------------------------------------------------

    @staticmethod
    def _exact_tier(snapshot: DirectorySnapshot, form: str, offer: Offer) -> None:
        offer(snapshot.by_local.get(form, ()), EXACT_CONFIDENCE)
        roman = romanized_key(form)
        if roman:
            offer(snapshot.by_romanized.get(roman, ()), EXACT_CONFIDENCE)

    @staticmethod
    def _prefix_tier(snapshot: DirectorySnapshot, form: str, offer: Offer) -> None:
        roman = romanized_key(form)
        for query, keys in ((form, snapshot.local_keys), (roman, snapshot.romanized_keys)):
            if not query:
                continue
            for length in range(min(MAX_PREFIX_LENGTH, len(query)), 0, -1):
                for sid in snapshot.by_prefix.get(query[:length], ()):
                    name = keys[sid]
                    if name.startswith(query):
                        offer((sid,), STARTS_WITH_CONFIDENCE)
                    elif query in name:
                        offer((sid,), CONTAINS_CONFIDENCE)

    def _fallback_tier(
        self, snapshot: DirectorySnapshot, forms: Sequence[str], offer: Offer
    ) -> None:
        found: Set[str] = set()
        for form in forms:
            roman = romanized_key(form)
            for query in (form, roman):
                if len(query) >= 2:
                    found.update(snapshot.by_prefix.get(query[:2], ()))

            for sid, local in snapshot.local_keys.items():
                if local and (local in form or form in local):
                    found.add(sid)
            if len(roman) >= 3:
                for sid, name in snapshot.romanized_keys.items():
                    if name and (name in roman or roman in name):
                        found.add(sid)
                found.update(self._fuzzy_romanized(snapshot, roman))

        offer(found, FALLBACK_CONFIDENCE)

    def _fuzzy_romanized(self, snapshot: DirectorySnapshot, roman: str) -> Set[str]:
        choices = {sid: name for sid, name in snapshot.romanized_keys.items() if name}
        matches = process.extract(
            roman,
            choices,
            scorer=fuzz.ratio,
            score_cutoff=self.config.romanized_fuzzy_cutoff,
            limit=self.config.top_n,
        )
        return {sid for _, _, sid in matches}

    @staticmethod
    def _to_candidate(station: StationRecord, confidence: float) -> StationCandidate:
        return StationCandidate(
            station_id=station.id,
            display_name=station.name_local,
            confidence=confidence,
            name_romanized=station.name_romanized,
            address=station.address,
            location=station.location,
        )
