"""Dependency injection container.

Wires ports to their adapters for the query core. Registrations are lazy:
nothing is loaded until first resolved, so a test can override any binding
(a FixedClock, a stub timetable source) before the service is built.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .config import AppConfig, get_config


@dataclass
class Container:
    """Dependency injection container.

    Usage:
        # Production
        container = Container.create_default()
        service = container.resolve(TrainQueryService)

        # Testing
        container = Container.create_default()
        container.register(ClockPort, lambda: FixedClock(datetime(2024, 10, 25, 7, 30)))
        service = container.resolve(TrainQueryService)

    Attributes:
        config: Application configuration
    """

    config: AppConfig = field(default_factory=get_config)

    _factories: Dict[type[Any], Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _singletons: Dict[type[Any], Any] = field(default_factory=dict, repr=False)
    _singleton_types: set[type[Any]] = field(default_factory=set, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Register a factory for a port type.

        Args:
            port_type: The type (usually a Protocol) to register.
            factory: A callable that creates instances of the type.
            singleton: If True, only one instance is created.
        """
        with self._lock:
            self._factories[port_type] = factory
            if singleton:
                self._singleton_types.add(port_type)

    def resolve(self, port_type: type[Any]) -> Any:
        """Resolve an instance of a port type.

        Args:
            port_type: The type to resolve.

        Returns:
            An instance of the requested type.

        Raises:
            KeyError: If the type is not registered.
        """
        with self._lock:
            if port_type not in self._factories:
                raise KeyError(f"Type not registered: {port_type}")

            if port_type in self._singleton_types:
                if port_type not in self._singletons:
                    self._singletons[port_type] = self._factories[port_type]()
                return self._singletons[port_type]

            return self._factories[port_type]()

    def is_registered(self, port_type: type[Any]) -> bool:
        return port_type in self._factories

    def clear_singletons(self) -> None:
        """Drop built instances; registrations stay."""
        with self._lock:
            self._singletons.clear()

    def clear_all(self) -> None:
        """Drop every registration and built instance."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()
            self._singleton_types.clear()

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Create a container with default production bindings.

        The station directory is loaded and indexed on first resolution of
        StationResolverPort. The timetable source defaults to an empty
        in-memory source; register a real provider client over it.

        Args:
            config: Optional configuration override.

        Returns:
            A configured Container instance.
        """
        from .adapters.cache import InMemoryCache
        from .adapters.clock import SystemClock
        from .adapters.stations import JsonStationRepository
        from .adapters.timetable import StaticTimetableSource
        from .nlp.query_parser import QueryParser
        from .ports.cache import CachePort
        from .ports.clock import ClockPort
        from .ports.nlp import QueryParserPort
        from .ports.resolution import (
            StationRepositoryPort,
            StationResolverPort,
            TrainNumberResolverPort,
        )
        from .ports.timetable import TimetableSourcePort
        from .resolution import (
            StationDirectoryIndex,
            TrainNumberResolver,
            load_alias_table,
            load_train_catalog,
        )
        from .services import TrainQueryService
        from .timetable import TemporalFilterEngine

        config = config or get_config()
        container = cls(config=config)

        container.register(ClockPort, lambda: SystemClock(config.filter))
        container.register(
            CachePort,
            lambda: InMemoryCache(
                name="live_delays",
                default_ttl_seconds=config.service.live_board_ttl_seconds,
            ),
        )

        # Query understanding
        container.register(
            QueryParserPort,
            lambda: QueryParser(container.resolve(ClockPort), config.parser),
        )

        # Station directory
        container.register(
            StationRepositoryPort,
            lambda: JsonStationRepository(config.directory),
        )

        def create_station_index() -> StationDirectoryIndex:
            index = StationDirectoryIndex(
                aliases=load_alias_table(config.directory.aliases_path),
                config=config.directory,
            )
            index.build_index(container.resolve(StationRepositoryPort).list_stations())
            return index

        container.register(StationResolverPort, create_station_index)

        # Train catalog
        container.register(
            TrainNumberResolverPort,
            lambda: TrainNumberResolver(
                load_train_catalog(config.directory.catalog_path),
                config.directory,
            ),
        )

        # Timetable
        container.register(TimetableSourcePort, lambda: StaticTimetableSource())
        container.register(
            TemporalFilterEngine,
            lambda: TemporalFilterEngine(container.resolve(ClockPort), config.filter),
        )

        # Main service
        def create_query_service() -> TrainQueryService:
            return TrainQueryService(
                parser=container.resolve(QueryParserPort),
                station_resolver=container.resolve(StationResolverPort),
                train_resolver=container.resolve(TrainNumberResolverPort),
                timetable_source=container.resolve(TimetableSourcePort),
                filter_engine=container.resolve(TemporalFilterEngine),
                clock=container.resolve(ClockPort),
                cache=container.resolve(CachePort),
                config=config,
            )

        container.register(TrainQueryService, create_query_service)

        return container


# Global default container (lazy initialized)
_default_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get the default application container.

    Returns:
        The default Container instance (creates one if needed).
    """
    global _default_container
    if _default_container is None:
        with _container_lock:
            if _default_container is None:
                _default_container = Container.create_default()
    return _default_container


def reset_container() -> None:
    """Reset the default container.

    Call this in tests to ensure a fresh container.
    """
    global _default_container
    with _container_lock:
        if _default_container is not None:
            _default_container.clear_all()
        _default_container = None
