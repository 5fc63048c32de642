"""Entity resolution - station directory and train-number lookup."""

from .aliases import AliasTable, load_alias_table
from .station_index import StationDirectoryIndex
from .train_numbers import TrainNumberResolver, catalog_from_timetable, load_train_catalog

__all__ = [
    "AliasTable",
    "load_alias_table",
    "StationDirectoryIndex",
    "TrainNumberResolver",
    "catalog_from_timetable",
    "load_train_catalog",
]
