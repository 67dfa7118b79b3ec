"""Mock storage backend for testing."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from storage.base import BaseStorage, QueryError, StorageRegistry, WriteError


class MockInfluxDBStorage(BaseStorage):
    """
    In-memory stand-in for the InfluxDB backend.

    Config:
        _test_latest: first tag value -> value returned by latest_value()
        _test_write_fail: every write raises WriteError
        _test_query_fail: every lookup raises QueryError
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        super().__init__(config)
        self.written_data: List[Dict[str, Any]] = []
        self.latest: Dict[str, Any] = dict(config.get("_test_latest", {}))
        self.write_should_fail = config.get("_test_write_fail", False)
        self.query_should_fail = config.get("_test_query_fail", False)

    def connect(self) -> bool:
        self.is_connected = True
        return True

    def disconnect(self) -> None:
        self.is_connected = False

    def write(self, data: List[Dict[str, Any]]) -> bool:
        if self.write_should_fail:
            raise WriteError("Simulated write failure")
        self.written_data.extend(data)
        return True

    def latest_value(self, measurement: str, field: str, tags: Dict[str, str]) -> Optional[Any]:
        if self.query_should_fail:
            raise QueryError("Simulated query failure")
        key = next(iter(tags.values()), None)
        return self.latest.get(key)

    def get_written_data(self) -> List[Dict[str, Any]]:
        return self.written_data


def register_mock_storage():
    """Register all mock storage backends."""
    StorageRegistry.register("mock_influxdb")(MockInfluxDBStorage)
