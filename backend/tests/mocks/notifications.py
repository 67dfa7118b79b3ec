"""Mock notification strategies for testing."""
from __future__ import annotations

from typing import List, Tuple

from alerts.notifications.base import NotificationStrategy, StrategyRegistry
from common.exceptions import NotificationError


class RecordingNotification(NotificationStrategy):
    """Records every notification instead of delivering it."""

    def __init__(self, options=None) -> None:
        super().__init__(options)
        self.sent: List[Tuple[int, str, str]] = []

    def notify(self, alert, account, customer) -> None:
        self.sent.append((alert.id, account.account_id, customer.document))


class FailingNotification(RecordingNotification):
    """Records the attempt, then fails like an unreachable gateway."""

    def notify(self, alert, account, customer) -> None:
        super().notify(alert, account, customer)
        raise NotificationError(self.kind, "Simulated gateway failure")


class CrashingNotification(RecordingNotification):
    """Fails with an error outside the notification hierarchy."""

    def notify(self, alert, account, customer) -> None:
        super().notify(alert, account, customer)
        raise RuntimeError("Simulated crash")


def register_mock_strategies():
    """Register all mock strategies."""
    StrategyRegistry.register("mock_ok")(RecordingNotification)
    StrategyRegistry.register("mock_fail")(FailingNotification)
    StrategyRegistry.register("mock_crash")(CrashingNotification)
