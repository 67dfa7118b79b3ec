"""Notification strategies and the dispatcher that fans alerts out to them."""
from .base import (
    ALL_KINDS,
    CONCESSIONAIRE,
    EMAIL,
    INTERNAL_PANEL,
    PUSH,
    SMS,
    NotificationStrategy,
    StrategyRegistry,
)

# Import all strategy implementations to trigger registration
from . import email  # noqa: F401
from . import panel  # noqa: F401
from . import push  # noqa: F401
from . import sms  # noqa: F401

from .dispatcher import DispatchReport, NotificationDispatcher

__all__ = [
    "ALL_KINDS",
    "CONCESSIONAIRE",
    "EMAIL",
    "INTERNAL_PANEL",
    "PUSH",
    "SMS",
    "DispatchReport",
    "NotificationDispatcher",
    "NotificationStrategy",
    "StrategyRegistry",
]
