"""Storage backends for consumption history."""
from .base import BaseStorage, QueryError, StorageError, StorageRegistry, WriteError, influx_config_from_settings
from .influxdb import InfluxDBStorage
from .recorder import ReadingRecorder

__all__ = [
    "BaseStorage",
    "InfluxDBStorage",
    "QueryError",
    "ReadingRecorder",
    "StorageError",
    "StorageRegistry",
    "WriteError",
    "influx_config_from_settings",
]
