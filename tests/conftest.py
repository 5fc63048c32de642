"""Shared fixtures: a frozen clock and the packaged station directory."""

from datetime import datetime

import pytest

from tra_query.adapters.clock import FixedClock
from tra_query.adapters.stations import JsonStationRepository
from tra_query.config import DirectoryConfig, FilterConfig, ParserConfig, reset_config
from tra_query.container import reset_container
from tra_query.nlp.query_parser import QueryParser
from tra_query.resolution import (
    StationDirectoryIndex,
    TrainNumberResolver,
    load_alias_table,
    load_train_catalog,
)
from tra_query.timetable import TemporalFilterEngine

# Friday morning, Taipei time
NOW = datetime(2024, 10, 25, 7, 30)


@pytest.fixture(autouse=True)
def _fresh_config():
    reset_config()
    reset_container()
    yield
    reset_config()
    reset_container()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def directory_config():
    return DirectoryConfig()


@pytest.fixture
def filter_config():
    return FilterConfig()


@pytest.fixture
def parser(clock):
    return QueryParser(clock=clock, config=ParserConfig())


@pytest.fixture
def aliases(directory_config):
    return load_alias_table(directory_config.aliases_path)


@pytest.fixture
def stations(directory_config):
    return JsonStationRepository(directory_config).list_stations()


@pytest.fixture
def station_index(aliases, stations, directory_config):
    index = StationDirectoryIndex(aliases=aliases, config=directory_config)
    index.build_index(stations)
    return index


@pytest.fixture
def train_resolver(directory_config):
    return TrainNumberResolver(
        load_train_catalog(directory_config.catalog_path), directory_config
    )


@pytest.fixture
def filter_engine(clock, filter_config):
    return TemporalFilterEngine(clock=clock, config=filter_config)
