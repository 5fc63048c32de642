"""Centralized configuration using Pydantic Settings.

This module is the single source of truth for the thresholds and data
locations used by the query core:
- parser limits and confidence gates
- station directory / train catalog data tables and ranking limits
- temporal filter windows and day-rollover heuristics
- service-level caching
- logging

Configuration can be overridden via environment variables:
- TRA_FILTER_DEFAULT_WINDOW_HOURS=4
- TRA_DIRECTORY_TOP_N=10
- TRA_DIRECTORY_DATA_DIR=/path/to/data
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"


class ParserConfig(BaseSettings):
    """Query parser configuration.

    Environment variables prefixed with TRA_PARSER_.
    """

    model_config = SettingsConfigDict(env_prefix="TRA_PARSER_")

    max_query_length: int = 500
    min_confidence: float = 0.4
    partial_train_digits: int = 2


class DirectoryConfig(BaseSettings):
    """Station directory and train catalog configuration.

    Environment variables prefixed with TRA_DIRECTORY_.
    """

    model_config = SettingsConfigDict(env_prefix="TRA_DIRECTORY_")

    data_dir: Path = Field(default_factory=lambda: PACKAGE_DATA_DIR)
    stations_file: str = "stations.json"
    aliases_file: str = "aliases.json"
    catalog_file: str = "train_catalog.json"

    top_n: int = 5
    firm_match_threshold: float = 0.9
    fallback_min_candidates: int = 3
    romanized_fuzzy_cutoff: float = 80.0

    train_suggestion_limit: int = 5
    train_fuzzy_threshold: float = 0.3

    @property
    def stations_path(self) -> Path:
        """Full path to the station directory JSON file."""
        return self.data_dir / self.stations_file

    @property
    def aliases_path(self) -> Path:
        """Full path to the alias table JSON file."""
        return self.data_dir / self.aliases_file

    @property
    def catalog_path(self) -> Path:
        """Full path to the train catalog JSON file."""
        return self.data_dir / self.catalog_file


class FilterConfig(BaseSettings):
    """Temporal filter configuration.

    Environment variables prefixed with TRA_FILTER_.
    """

    model_config = SettingsConfigDict(env_prefix="TRA_FILTER_")

    timezone: str = "Asia/Taipei"

    lookback_hours: int = 1
    default_window_hours: int = 2
    min_window_hours: int = 1
    max_window_hours: int = 24

    max_results: int = 3
    backfill_threshold: int = 3
    imminent_minutes: int = 15

    # Day-rollover heuristics for bare HH:MM departures
    late_clock_hour: int = 20
    early_morning_end_hour: int = 6
    next_day_gap_hours: int = 18

    # Taroko (1) and Puyuma (2) are reserved-seat only, not monthly-pass trains
    restricted_train_types: List[str] = Field(default_factory=lambda: ["1", "2"])
    max_travel_hours: int = 8
    max_trains_per_result: int = 50


class ServiceConfig(BaseSettings):
    """Orchestration service configuration.

    Environment variables prefixed with TRA_SERVICE_.
    """

    model_config = SettingsConfigDict(env_prefix="TRA_SERVICE_")

    live_board_ttl_seconds: float = 120.0


class ObservabilityConfig(BaseSettings):
    """Logging and observability configuration.

    Environment variables prefixed with TRA_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="TRA_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False  # Set True for JSON logging


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

    Sub-configurations can be accessed via attributes:

        config = get_config()
        print(config.filter.default_window_hours)
        print(config.directory.stations_path)

    Environment variables prefixed with TRA_.
    """

    model_config = SettingsConfigDict(env_prefix="TRA_")

    parser: ParserConfig = Field(default_factory=ParserConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    filter: FilterConfig = Field(default_factory=FilterConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @property
    def project_root(self) -> Path:
        """Return the project root directory."""
        return Path(__file__).resolve().parent.parent


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the singleton application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.

    Returns:
        The application configuration instance.
    """
    return AppConfig()


def reset_config() -> None:
    """Reset the configuration cache.

    Call this in tests to ensure a fresh configuration is loaded.
    """
    get_config.cache_clear()
