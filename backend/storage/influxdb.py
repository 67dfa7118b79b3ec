"""InfluxDB 2.x backend."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from influxdb_client import InfluxDBClient as InfluxClient
from influxdb_client import Point as InfluxPoint
from influxdb_client import WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from .base import BaseStorage, Point, QueryError, StorageError, StorageRegistry, WriteError


def _flux_string(value: str) -> str:
    return '"' + str(value).replace("\\", "\\\\").replace('"', '\\"') + '"'


@StorageRegistry.register("influxdb")
class InfluxDBStorage(BaseStorage):
    """
    Writes account readings and looks up the latest meter values.

    Config keys: url (or host/port), token, org, bucket.
    """

    def __init__(self, config: Dict[str, Any]) -> None:
        super().__init__(config)
        self.url = config.get("url") or f"http://{config.get('host', 'localhost')}:{config.get('port', 8086)}"
        self.token = config.get("token")
        self.org = config.get("org", "default")
        self.bucket = config.get("bucket", "default")
        self.client = None
        self.write_api = None

    def connect(self) -> bool:
        try:
            self.client = InfluxClient(url=self.url, token=self.token, org=self.org)
            self.write_api = self.client.write_api(write_options=SYNCHRONOUS)
        except Exception as e:
            self.is_connected = False
            self.logger.error(f"Cannot connect to InfluxDB at {self.url}: {e}")
            raise StorageError(f"InfluxDB connection failed: {e}") from e
        self.is_connected = True
        self.logger.info(f"Connected to InfluxDB at {self.url} (bucket={self.bucket})")
        return True

    def disconnect(self) -> None:
        write_api, client = self.write_api, self.client
        self.write_api = None
        self.client = None
        self.is_connected = False
        for closable in (write_api, client):
            if closable is None:
                continue
            try:
                closable.close()
            except Exception as e:
                self.logger.warning(f"Error closing {closable.__class__.__name__}: {e}")
        if client is not None:
            self.logger.info("Disconnected from InfluxDB")

    def write(self, data: List[Point]) -> bool:
        if not data:
            return True
        self.ensure_connected()

        records = [record for record in (self._to_record(point) for point in data) if record is not None]
        try:
            self.write_api.write(bucket=self.bucket, org=self.org, record=records)
        except Exception as e:
            self.logger.error(f"InfluxDB rejected {len(records)} points: {e}")
            raise WriteError(f"InfluxDB write failed: {e}") from e
        self.logger.debug(f"Wrote {len(records)} points to {self.bucket}")
        return True

    def health_check(self) -> bool:
        if not self.is_connected or self.client is None:
            return False
        try:
            return self.client.ping()
        except Exception as e:
            self.logger.warning(f"InfluxDB ping failed: {e}")
            return False

    def query(self, flux_query: str) -> List[Dict[str, Any]]:
        """
        Run a Flux query and flatten the tables into record dicts.

        Raises:
            QueryError: Query failed.
        """
        self.ensure_connected()
        try:
            tables = self.client.query_api().query(query=flux_query, org=self.org)
        except Exception as e:
            self.logger.error(f"Flux query failed: {e}")
            raise QueryError(f"InfluxDB query failed: {e}") from e
        return [record.values for table in tables for record in table.records]

    def latest_value(self, measurement: str, field: str, tags: Dict[str, str]) -> Optional[Any]:
        predicates = [
            f"r._measurement == {_flux_string(measurement)}",
            f"r._field == {_flux_string(field)}",
        ]
        predicates += [f"r[{_flux_string(key)}] == {_flux_string(value)}" for key, value in tags.items()]
        flux_query = (
            f"from(bucket: {_flux_string(self.bucket)})\n"
            f"  |> range(start: 0)\n"
            f"  |> filter(fn: (r) => {' and '.join(predicates)})\n"
            f"  |> last()"
        )
        records = self.query(flux_query)
        return records[-1].get("_value") if records else None

    def _to_record(self, point: Point) -> Optional[InfluxPoint]:
        """Build an influx Point; points without measurement or fields are dropped."""
        if not point.get("measurement") or not point.get("fields"):
            self.logger.warning(f"Dropping point without measurement or fields: {point}")
            return None
        record = InfluxPoint(point["measurement"])
        for key, value in point.get("tags", {}).items():
            record = record.tag(key, str(value))
        for key, value in point["fields"].items():
            record = record.field(key, value if isinstance(value, (int, float, str, bool)) else str(value))
        if point.get("time"):
            record = record.time(int(point["time"]), WritePrecision.NS)
        return record
