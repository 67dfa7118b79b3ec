"""Simulated reader for development without meter hardware."""
from __future__ import annotations

import random
from typing import Any, Dict

from .base import MeterReader, ReaderRegistry


@ReaderRegistry.register("simulated")
class SimulatedMeterReader(MeterReader):
    """Returns a random volume between 0 and `max_volume` m³ (2 decimals)."""

    def __init__(self, options: Dict[str, Any] = None) -> None:
        super().__init__(options)
        self.max_volume = float(self.options.get("max_volume", 100.0))
        self._random = random.Random(self.options.get("seed"))

    def read_consumption(self, meter_id: int) -> float:
        meter_id = self.validate_meter_id(meter_id)
        volume = round(self._random.random() * self.max_volume, 2)
        self.logger.debug(f"Simulated meter {meter_id}: {volume:.2f} m³")
        return volume
