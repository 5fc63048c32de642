"""JSON station repository adapter.

Reads a station list in the upstream open-data provider's layout, either a
bare list or wrapped as ``{"Stations": [...]}``:

    {"StationID": "1000",
     "StationName": {"Zh_tw": "臺北", "En": "Taipei"},
     "StationAddress": "...",
     "StationPosition": {"PositionLat": 25.04775, "PositionLon": 121.51718}}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...config import DirectoryConfig, get_config
from ...domain.errors import DirectoryDataError
from ...domain.models import GeoLocation, StationRecord


class StationName(BaseModel):
    """Bilingual station name."""

    model_config = ConfigDict(populate_by_name=True)

    zh_tw: str = Field(alias="Zh_tw")
    en: str = Field(default="", alias="En")


class StationPosition(BaseModel):
    """WGS84 coordinates of a station."""

    model_config = ConfigDict(populate_by_name=True)

    lat: float = Field(alias="PositionLat")
    lon: float = Field(alias="PositionLon")


class StationPayload(BaseModel):
    """One station as published upstream."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    station_id: str = Field(alias="StationID")
    name: StationName = Field(alias="StationName")
    address: Optional[str] = Field(default=None, alias="StationAddress")
    position: Optional[StationPosition] = Field(default=None, alias="StationPosition")

    def to_record(self) -> StationRecord:
        return StationRecord(
            id=self.station_id.strip(),
            name_local=self.name.zh_tw.strip(),
            name_romanized=self.name.en.strip(),
            address=self.address or None,
            location=_to_location(self.position),
        )


def _to_location(position: Optional[StationPosition]) -> Optional[GeoLocation]:
    # Upstream publishes 0/0 for stations without a surveyed position
    if position is None or (position.lat == 0 and position.lon == 0):
        return None
    try:
        return GeoLocation(latitude=position.lat, longitude=position.lon)
    except ValueError:
        return None


@dataclass
class JsonStationRepository:
    """Station repository backed by a JSON file.

    Implements StationRepositoryPort. The file is read once and the parsed
    list is kept until ``clear_cache``.

    Attributes:
        config: Directory configuration (data directory, file names)
        path: Explicit file path, overriding the configured one
    """

    config: DirectoryConfig = field(default_factory=lambda: get_config().directory)
    path: Optional[Path] = None

    _stations: Optional[List[StationRecord]] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @property
    def source_path(self) -> Path:
        return self.path or self.config.stations_path

    def list_stations(self) -> Sequence[StationRecord]:
        """Load all stations.

        Entries that fail validation are skipped with a warning; a file
        that cannot be read or holds no usable station is an error.

        Raises:
            DirectoryDataError: If the file is missing, malformed or empty.
        """
        if self._stations is not None:
            return list(self._stations)

        path = self.source_path
        self._logger.debug("Loading stations", extra={"path": str(path)})
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise DirectoryDataError(
                f"Failed to load station data: {e}",
                file_path=str(path),
                cause=e,
            )

        stations: List[StationRecord] = []
        skipped = 0
        for item in self._station_items(payload, path):
            try:
                record = StationPayload.model_validate(item).to_record()
            except ValidationError as e:
                skipped += 1
                self._logger.warning(
                    "Skipping malformed station entry",
                    extra={"entry": str(item)[:80], "error": str(e)},
                )
                continue
            if record.id and record.name_local:
                stations.append(record)
            else:
                skipped += 1

        if not stations:
            raise DirectoryDataError("No station data found", file_path=str(path))

        self._stations = stations
        self._logger.info(
            "Stations loaded",
            extra={"stations": len(stations), "skipped": skipped, "path": str(path)},
        )
        return list(stations)

    @staticmethod
    def _station_items(payload: Any, path: Path) -> List[Any]:
        if isinstance(payload, dict):
            payload = payload.get("Stations", payload.get("data"))
        if not isinstance(payload, list):
            raise DirectoryDataError(
                "Station data must be a list or an object with a 'Stations' list",
                file_path=str(path),
            )
        return payload

    def clear_cache(self) -> None:
        """Forget the parsed station list so the next call re-reads the file."""
        self._stations = None
        self._logger.debug("Station cache cleared")
