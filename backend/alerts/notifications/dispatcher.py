"""Fan-out of alerts to the notification strategies configured per account."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from accounts.registry import Account, AccountRegistry
from alerts.store import Alert
from common.exceptions import NotificationError

from .base import NotificationStrategy, StrategyRegistry

logger = logging.getLogger(__name__)

StrategyFactory = Callable[[str], NotificationStrategy]


@dataclass
class DispatchReport:
    """Outcome of one dispatch: kinds delivered and kinds that failed."""

    alert_id: int
    delivered: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def attempted(self) -> int:
        return len(self.delivered) + len(self.failed)


class NotificationDispatcher:
    """
    Holds an ordered strategy list per account and runs the enabled ones.

    A failing strategy is logged and never prevents the others from
    running.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        factory: Optional[StrategyFactory] = None,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            registry: Used to look up the account owner
            factory: Builds a strategy from its kind (StrategyRegistry by default)
        """
        self.registry = registry
        self.factory = factory or StrategyRegistry.create
        self._lock = threading.Lock()
        self._strategies: Dict[str, List[NotificationStrategy]] = {}

    def configure(self, account_id: str, kinds: Iterable[str]) -> List[NotificationStrategy]:
        """
        Replace the strategy list of an account.

        Raises:
            ValueError: Unknown kind (nothing is changed).
        """
        seen = []
        for kind in kinds:
            kind = kind.lower()
            if kind not in seen:
                seen.append(kind)
        strategies = [self.factory(kind) for kind in seen]
        with self._lock:
            self._strategies[account_id] = strategies
        logger.info(f"Notification strategies for account {account_id}: {seen}")
        return list(strategies)

    def set_enabled(self, account_id: str, kind: str, enabled: bool) -> bool:
        """Toggle one strategy; False if the account has no such strategy."""
        kind = kind.lower()
        with self._lock:
            for strategy in self._strategies.get(account_id, []):
                if strategy.kind == kind:
                    strategy.enabled = enabled
                    break
            else:
                return False
        logger.info(f"Strategy {kind} {'enabled' if enabled else 'disabled'} for account {account_id}")
        return True

    def strategies(self, account_id: str) -> List[NotificationStrategy]:
        with self._lock:
            return list(self._strategies.get(account_id, []))

    def active_kinds(self, account_id: str) -> List[str]:
        return [s.kind for s in self.strategies(account_id) if s.enabled]

    def remove(self, account_id: str) -> bool:
        with self._lock:
            return self._strategies.pop(account_id, None) is not None

    def dispatch(self, alert: Alert, account: Account) -> DispatchReport:
        """
        Invoke every enabled strategy of the account, in order.

        No strategies configured is a silent no-op.
        """
        report = DispatchReport(alert_id=alert.id)
        strategies = [s for s in self.strategies(account.account_id) if s.enabled]
        if not strategies:
            return report

        customer = self.registry.get_customer(account.customer_document)
        if customer is None:
            logger.error(
                f"Customer {account.customer_document} not found; alert #{alert.id} not notified"
            )
            return report

        for strategy in strategies:
            try:
                strategy.notify(alert, account, customer)
                report.delivered.append(strategy.kind)
            except NotificationError as e:
                logger.error(f"Notification via {strategy.kind} failed for alert #{alert.id}: {e}")
                report.failed[strategy.kind] = str(e)
            except Exception as e:
                logger.error(
                    f"Unexpected error in {strategy.kind} strategy for alert #{alert.id}: {e}",
                    exc_info=True,
                )
                report.failed[strategy.kind] = str(e)
        return report
