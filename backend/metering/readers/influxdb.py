"""Reader backed by the time-series written by the edge meter collectors."""
from __future__ import annotations

from typing import Any, Dict

from common.exceptions import ReadFailure
from storage import StorageRegistry

from .base import MeterReader, ReaderRegistry


@ReaderRegistry.register("influxdb")
class InfluxDBMeterReader(MeterReader):
    """
    Returns the latest volume stored for a meter.

    Options:
        measurement: Measurement name (default "meter_reading")
        field: Field holding the volume (default "volume")
        tag: Tag carrying the meter id (default "meter")
        storage: Storage backend name (default "influxdb")
        storage_config: Connection parameters for the backend
    """

    def __init__(self, options: Dict[str, Any] = None) -> None:
        super().__init__(options)
        self.measurement = self.options.get("measurement", "meter_reading")
        self.field = self.options.get("field", "volume")
        self.tag = self.options.get("tag", "meter")
        self.storage = StorageRegistry.create(
            self.options.get("storage", "influxdb"),
            self.options.get("storage_config", {}),
        )

    def read_consumption(self, meter_id: int) -> float:
        meter_id = self.validate_meter_id(meter_id)
        try:
            value = self.storage.latest_value(self.measurement, self.field, {self.tag: str(meter_id)})
        except Exception as e:
            self.logger.error(f"Query for meter {meter_id} failed: {e}")
            raise ReadFailure(f"Meter {meter_id} could not be read: {e}", meter_id=meter_id) from e

        if value is None:
            raise ReadFailure(f"No reading stored for meter {meter_id}", meter_id=meter_id)
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ReadFailure(f"Meter {meter_id} returned a non-numeric value: {value!r}", meter_id=meter_id) from None

    def close(self) -> None:
        self.storage.disconnect()
