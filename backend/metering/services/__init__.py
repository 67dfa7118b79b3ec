"""Monitoring sessions and the engine that schedules them."""
from .engine import MonitoringEngine, ReadingEvent, Ticker
from .session import MonitoringSession, SessionSnapshot, SessionState

__all__ = [
    "MonitoringEngine",
    "MonitoringSession",
    "ReadingEvent",
    "SessionSnapshot",
    "SessionState",
    "Ticker",
]
