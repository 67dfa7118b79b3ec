"""Writes every account reading to the time-series history."""
from __future__ import annotations

import logging
from typing import Any, Dict, List

from .base import BaseStorage

logger = logging.getLogger(__name__)

MEASUREMENT = "account_consumption"


class ReadingRecorder:
    """
    Reading listener that stores consumption history.

    Storage problems are logged and swallowed so that a history outage
    never fails a monitoring tick.
    """

    def __init__(self, storage: BaseStorage, measurement: str = MEASUREMENT) -> None:
        self.storage = storage
        self.measurement = measurement
        self.written = 0
        self.failed = 0

    def attach(self, engine) -> "ReadingRecorder":
        engine.subscribe(self.on_reading)
        return self

    def detach(self, engine) -> None:
        engine.unsubscribe(self.on_reading)

    def format_point(self, event) -> Dict[str, Any]:
        return {
            "measurement": self.measurement,
            "tags": {"account": event.account_id},
            "fields": {"volume": float(event.volume)},
            "time": int(event.timestamp.timestamp() * 1e9),
        }

    def on_reading(self, event) -> None:
        points: List[Dict[str, Any]] = [self.format_point(event)]
        try:
            self.storage.write(points)
            self.written += 1
        except Exception as e:
            self.failed += 1
            logger.error(f"Failed to record reading of account {event.account_id}: {e}")

    def close(self) -> None:
        try:
            self.storage.disconnect()
        except Exception as e:
            logger.warning(f"Error disconnecting storage: {e}")
