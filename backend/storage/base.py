"""Time-series storage interface used for consumption history and meter lookups."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Type

logger = logging.getLogger(__name__)

# {"measurement": str, "tags": {str: str}, "fields": {str: value}, "time": ns}
Point = Dict[str, Any]


class StorageError(Exception):
    """A storage backend could not be reached or used."""


class WriteError(StorageError):
    """Points were rejected or lost."""


class QueryError(StorageError):
    """A read query failed."""


class BaseStorage(ABC):
    """
    Time-series backend shared by the reading recorder and the meter reader.

    The recorder writes from every monitoring worker, so the lazy connect
    in ensure_connected() runs at most once even under concurrent writes.
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        self.config = config
        self.is_connected = False
        self._connect_lock = threading.Lock()
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def connect(self) -> bool:
        """
        Open the connection and set is_connected.

        Raises:
            StorageError: Backend unreachable.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Release the connection; safe to call when not connected."""

    @abstractmethod
    def write(self, data: List[Point]) -> bool:
        """
        Store a batch of points.

        Raises:
            WriteError: Batch not stored.
        """

    @abstractmethod
    def latest_value(self, measurement: str, field: str, tags: Dict[str, str]) -> Optional[Any]:
        """
        Most recent value of `field` in the series selected by `tags`.

        Returns:
            The value, or None when the series is empty.

        Raises:
            QueryError: Query failed.
        """

    def health_check(self) -> bool:
        return self.is_connected

    def ensure_connected(self) -> None:
        if self.is_connected:
            return
        with self._connect_lock:
            if not self.is_connected:
                self.connect()

    @contextmanager
    def connected(self) -> Iterator["BaseStorage"]:
        """Hold a connection for the duration of a block."""
        self.ensure_connected()
        try:
            yield self
        finally:
            self.disconnect()


class StorageRegistry:
    """
    Named storage backends.

    A name maps to exactly one backend class; registering the same class
    again is allowed, claiming a taken name for another class is not.
    """

    _backends: Dict[str, Type[BaseStorage]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type[BaseStorage]], Type[BaseStorage]]:
        key = name.lower()

        def decorator(backend: Type[BaseStorage]) -> Type[BaseStorage]:
            if not (isinstance(backend, type) and issubclass(backend, BaseStorage)):
                raise TypeError(f"{backend!r} is not a BaseStorage subclass")
            current = cls._backends.get(key)
            if current is not None and current is not backend:
                raise ValueError(f"Storage name '{key}' already taken by {current.__name__}")
            cls._backends[key] = backend
            return backend

        return decorator

    @classmethod
    def create(cls, name: str, config: Dict[str, Any]) -> BaseStorage:
        """
        Raises:
            ValueError: No backend under that name.
        """
        backend = cls._backends.get(name.lower())
        if backend is None:
            raise ValueError(f"Unknown storage backend '{name}' (registered: {', '.join(cls.names()) or 'none'})")
        logger.debug(f"Creating {backend.__name__} for '{name}'")
        return backend(config)

    @classmethod
    def from_settings(cls, settings, name: str = "influxdb") -> BaseStorage:
        """Backend `name` configured from the INFLUXDB_* settings."""
        return cls.create(name, influx_config_from_settings(settings))

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._backends)


def influx_config_from_settings(settings) -> Dict[str, Any]:
    """Collect the INFLUXDB_* settings into a storage config."""
    return {
        "url": getattr(settings, "INFLUXDB_URL", None),
        "host": getattr(settings, "INFLUXDB_HOST", "localhost"),
        "port": getattr(settings, "INFLUXDB_PORT", 8086),
        "token": getattr(settings, "INFLUXDB_TOKEN", ""),
        "org": getattr(settings, "INFLUXDB_ORG", "default"),
        "bucket": getattr(settings, "INFLUXDB_BUCKET", "default"),
    }
