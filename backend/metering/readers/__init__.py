"""Meter readers: the capability that turns a meter id into a volume."""
from .base import MeterReader, ReaderRegistry

# Import all reader implementations to trigger registration
from . import influxdb  # noqa: F401
from . import simulated  # noqa: F401

__all__ = ["MeterReader", "ReaderRegistry"]
