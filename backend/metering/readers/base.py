"""Base meter reader interface and registry."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Type

from common.exceptions import ReadFailure

logger = logging.getLogger(__name__)


class MeterReader(ABC):
    """
    Low-level capability that turns a meter identifier into a volume.

    The monitoring engine only depends on this interface; concrete readers
    (simulated, time-series, image/OCR pipelines) are plugged in by name.
    """

    def __init__(self, options: Dict[str, Any] = None) -> None:
        """
        Initialize reader with its options.

        Args:
            options: Reader-specific parameters
        """
        self.options = dict(options or {})
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def read_consumption(self, meter_id: int) -> float:
        """
        Read the current cumulative volume of a meter.

        Args:
            meter_id: Meter identifier (positive integer)

        Returns:
            Volume in cubic metres.

        Raises:
            ReadFailure: If the meter cannot be read.
        """
        pass

    def close(self) -> None:
        """Release any connection held by the reader."""
        pass

    @staticmethod
    def validate_meter_id(meter_id: int) -> int:
        try:
            meter_id = int(meter_id)
        except (TypeError, ValueError):
            raise ReadFailure(f"Invalid meter id: {meter_id!r}") from None
        if meter_id <= 0:
            raise ReadFailure(f"Meter id must be positive, got {meter_id}", meter_id=meter_id)
        return meter_id


class ReaderRegistry:
    """
    Registry for meter reader implementations.

    Uses factory pattern to instantiate readers by name.
    """

    _readers: Dict[str, Type[MeterReader]] = {}

    @classmethod
    def register(cls, reader_name: str) -> callable:
        """
        Decorator to register a reader implementation.

        Usage:
            @ReaderRegistry.register('simulated')
            class SimulatedMeterReader(MeterReader):
                ...
        """
        def decorator(reader_class: Type[MeterReader]) -> Type[MeterReader]:
            if not issubclass(reader_class, MeterReader):
                raise TypeError(f"{reader_class} must inherit from MeterReader")
            cls._readers[reader_name.lower()] = reader_class
            logger.debug(f"Registered meter reader: {reader_name} -> {reader_class.__name__}")
            return reader_class
        return decorator

    @classmethod
    def create(cls, reader_name: str, options: Dict[str, Any] = None) -> MeterReader:
        """
        Factory method to create a reader instance.

        Raises:
            ValueError: If reader is not registered.
        """
        reader_name = reader_name.lower()
        if reader_name not in cls._readers:
            raise ValueError(
                f"Meter reader '{reader_name}' not registered. "
                f"Available: {list(cls._readers.keys())}"
            )
        return cls._readers[reader_name](options or {})

    @classmethod
    def list_readers(cls) -> List[str]:
        """Return list of registered reader names."""
        return list(cls._readers.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registered readers (mainly for testing)."""
        cls._readers.clear()
