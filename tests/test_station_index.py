"""Tests for the station directory index."""

import pytest

from tra_query.config import DirectoryConfig
from tra_query.domain.errors import IndexNotReadyError
from tra_query.domain.models import StationCandidate, StationRecord
from tra_query.resolution import AliasTable, StationDirectoryIndex
from tra_query.resolution.station_index import haversine_km


class TestResolve:
    @pytest.mark.parametrize(
        "text",
        ["臺北", "台北", "北車", "台北車站", "Taipei", "taipei main station", "  TAIPEI  "],
    )
    def test_taipei_spellings(self, station_index, text):
        """Variants, aliases and romanized names all land on Taipei."""
        candidates = station_index.resolve(text)

        assert candidates[0].station_id == "1000"
        assert candidates[0].confidence == 1.0
        assert station_index.is_firm_match(candidates)

    def test_alias_gives_single_exact_candidate(self, station_index):
        candidates = station_index.resolve("北車")

        assert [(c.station_id, c.confidence) for c in candidates] == [("1000", 1.0)]
        assert candidates[0].display_name == "臺北"
        assert candidates[0].name_romanized == "Taipei"

    def test_suffixed_alias_does_not_claim_bare_character(self, station_index):
        assert station_index.resolve("北") == []
        assert station_index.resolve("北站")[0].station_id == "1000"
        assert station_index.resolve("北站")[0].confidence == 1.0

    def test_variant_character(self, station_index):
        candidates = station_index.resolve("台中")

        assert [c.station_id for c in candidates] == ["3300"]

    def test_single_character_prefix_is_ambiguous(self, station_index):
        """Four stations start with 臺; they tie so nothing is picked."""
        candidates = station_index.resolve("台")

        assert {c.station_id for c in candidates} == {"1000", "3300", "4220", "6000"}
        assert all(c.confidence == 0.9 for c in candidates)
        assert not station_index.is_firm_match(candidates)

    def test_prefix_candidates_sorted_by_name(self, station_index):
        candidates = station_index.resolve("新")

        assert sorted(c.station_id for c in candidates) == ["1210", "3340", "4350"]
        names = [c.display_name for c in candidates]
        assert names == sorted(names)

    def test_unknown_name(self, station_index):
        assert station_index.resolve("火星") == []
        assert station_index.resolve("") == []

    def test_romanized_prefix_is_firm(self, station_index):
        candidates = station_index.resolve("Kaohsiun")

        assert candidates[0].station_id == "4400"
        assert candidates[0].confidence == 0.9
        assert station_index.is_firm_match(candidates)

    def test_misspelling_falls_back(self, station_index):
        """A misspelled romanized name is offered but never firm."""
        candidates = station_index.resolve("Kaohsiong")

        assert candidates[0].station_id == "4400"
        assert candidates[0].confidence == 0.5
        assert not station_index.is_firm_match(candidates)

    @pytest.mark.parametrize("text", ["台", "Taipei", "Kaohsiong", "新", "Ta"])
    def test_confidence_never_increases(self, station_index, text):
        confidences = [c.confidence for c in station_index.resolve(text)]

        assert confidences == sorted(confidences, reverse=True)

    def test_results_truncated_to_top_n(self, aliases, stations):
        index = StationDirectoryIndex(aliases=aliases, config=DirectoryConfig(top_n=2))
        index.build_index(stations)

        assert len(index.resolve("台")) == 2


class TestFirmMatch:
    def test_empty(self, station_index):
        assert not station_index.is_firm_match([])

    def test_below_threshold(self, station_index):
        assert not station_index.is_firm_match([StationCandidate("1", "甲", 0.7)])

    def test_tie_at_top(self, station_index):
        candidates = [StationCandidate("1", "甲", 0.9), StationCandidate("2", "乙", 0.9)]

        assert not station_index.is_firm_match(candidates)

    def test_clear_winner(self, station_index):
        candidates = [StationCandidate("1", "甲", 1.0), StationCandidate("2", "乙", 0.9)]

        assert station_index.is_firm_match(candidates)


class TestLifecycle:
    def test_resolve_before_build_raises(self):
        index = StationDirectoryIndex(config=DirectoryConfig())

        assert not index.is_ready
        with pytest.raises(IndexNotReadyError) as exc_info:
            index.resolve("台北")
        assert exc_info.value.query == "台北"

    def test_rebuild_replaces_snapshot(self, station_index, stations):
        station_index.build_index(stations)
        first = station_index.resolve("台中")
        station_index.build_index(stations)

        assert station_index.resolve("台中") == first
        assert station_index.station_count == len(stations)

    def test_rebuild_with_new_list(self, station_index):
        station_index.build_index([StationRecord(id="9999", name_local="測試", name_romanized="Test")])

        assert station_index.resolve("台北") == []
        assert station_index.resolve("測試")[0].station_id == "9999"

    def test_invalid_records_skipped(self, aliases):
        index = StationDirectoryIndex(aliases=aliases, config=DirectoryConfig())
        index.build_index(
            [
                StationRecord(id="", name_local="無名", name_romanized="Nameless"),
                StationRecord(id="1000", name_local="臺北", name_romanized="Taipei"),
            ]
        )

        assert index.station_count == 1

    def test_get_station(self, station_index):
        assert station_index.get_station("4400").name_local == "高雄"
        assert station_index.get_station("0000") is None

    def test_works_without_aliases(self, stations):
        index = StationDirectoryIndex(aliases=AliasTable(), config=DirectoryConfig())
        index.build_index(stations)

        assert index.resolve("臺北")[0].station_id == "1000"
        assert index.resolve("北車") == []


class TestNearestStation:
    def test_nearest_to_taipei_main(self, station_index):
        station, distance = station_index.nearest_station(25.0478, 121.5170)

        assert station.id == "1000"
        assert distance < 1.0

    def test_no_locations(self, aliases):
        index = StationDirectoryIndex(aliases=aliases, config=DirectoryConfig())
        index.build_index([StationRecord(id="1", name_local="甲", name_romanized="A")])

        assert index.nearest_station(25.0, 121.5) is None


def test_haversine_known_distance():
    # Taipei to Kaohsiung main stations, roughly 300 km
    assert 290 < haversine_km(25.04775, 121.51718, 22.63963, 120.30244) < 310
