"""Alert engine: turns over-limit readings into alerts and notifications."""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

from django.utils import timezone

from accounts.registry import AccountRegistry

from .notifications import NotificationDispatcher
from .store import Alert, AlertChannels, AlertStore
from .thresholds import AlertThresholdConfig, ThresholdBook

logger = logging.getLogger(__name__)


class AlertSequence:
    """Monotonic alert id counter; never hands out the same id twice."""

    def __init__(self, start: int = 1) -> None:
        self._next = max(int(start), 1)
        self._lock = threading.Lock()

    @classmethod
    def from_store(cls, store: AlertStore) -> "AlertSequence":
        return cls(store.max_id() + 1)

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value

    def peek(self) -> int:
        with self._lock:
            return self._next


class AlertEngine:
    """
    Reading observer that raises alerts.

    Every reading above the configured limit creates a new alert; there is
    no suppression of repeats across ticks.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        store: AlertStore,
        dispatcher: NotificationDispatcher,
        thresholds: Optional[ThresholdBook] = None,
        sequence: Optional[AlertSequence] = None,
        monitor=None,
    ) -> None:
        """
        Args:
            registry: Account lookup for owners and persisted limits
            store: Where raised alerts are kept
            dispatcher: Notification fan-out
            thresholds: Per-account limits (empty when omitted)
            sequence: Alert id source (continues from the store when omitted)
            monitor: MonitoringEngine to subscribe to right away
        """
        self.registry = registry
        self.store = store
        self.dispatcher = dispatcher
        self.thresholds = thresholds or ThresholdBook()
        self.sequence = sequence or AlertSequence.from_store(store)
        if monitor is not None:
            self.attach(monitor)

    def attach(self, engine) -> "AlertEngine":
        """Subscribe to every reading published by a MonitoringEngine."""
        engine.subscribe(self.on_reading)
        return self

    def detach(self, engine) -> None:
        engine.unsubscribe(self.on_reading)

    def load_limits(self) -> int:
        """Seed thresholds from the limits persisted on the accounts."""
        loaded = 0
        for account in self.registry.list_accounts():
            if account.consumption_limit > 0 and self.thresholds.get(account.account_id) is None:
                self.thresholds.configure_limit(account.account_id, account.consumption_limit)
                loaded += 1
        if loaded:
            logger.info(f"Loaded {loaded} alert limits from accounts")
        return loaded

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure_limit(self, account_id: str, limit_volume: float) -> AlertThresholdConfig:
        """
        Set the consumption limit and persist it on the account.

        Raises:
            AccountNotFound: Unknown account.
            ValueError: Negative limit.
        """
        limit_volume = float(limit_volume)
        if limit_volume < 0:
            raise ValueError(f"Limit must not be negative, got {limit_volume}")
        self.registry.require_account(account_id)
        config = self.thresholds.configure_limit(account_id, limit_volume)
        self.registry.set_consumption_limit(account_id, limit_volume)
        logger.info(f"Alert limit for account {account_id} set to {limit_volume:.2f} m³")
        return config

    def enable_email(self, account_id: str, enabled: bool = True) -> AlertThresholdConfig:
        return self.thresholds.enable_email(account_id, enabled)

    def enable_concessionaire(self, account_id: str, enabled: bool = True) -> AlertThresholdConfig:
        return self.thresholds.enable_concessionaire(account_id, enabled)

    def get_config(self, account_id: str) -> Optional[AlertThresholdConfig]:
        return self.thresholds.get(account_id)

    # ------------------------------------------------------------------
    # Readings
    # ------------------------------------------------------------------

    def on_reading(self, event) -> Optional[Alert]:
        """Handle a ReadingEvent."""
        return self.evaluate(event.account_id, event.volume)

    def evaluate(self, account_id: str, volume: float) -> Optional[Alert]:
        """
        Raise an alert if `volume` exceeds the account's limit.

        Returns:
            The new alert, or None when no threshold applies.
        """
        config = self.thresholds.get(account_id)
        if config is None or not config.exceeded_by(volume):
            return None

        account = self.registry.get_account(account_id)
        if account is None:
            logger.warning(f"Reading over limit for unknown account {account_id}; no alert raised")
            return None

        alert = Alert(
            id=self.sequence.next(),
            account_id=account_id,
            customer_document=account.customer_document,
            current_volume=volume,
            limit_volume=config.limit_volume,
            timestamp=timezone.now(),
            read=False,
            channels=AlertChannels(
                email=config.email_enabled,
                concessionaire=config.concessionaire_enabled,
            ),
        )
        self.store.save(alert)
        logger.warning(alert.message)

        self.dispatcher.dispatch(alert, account)
        return alert

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def alerts_for_account(self, account_id: str) -> List[Alert]:
        if not account_id or not account_id.strip():
            return []
        return self.store.for_account(account_id)

    def pending_alerts(self) -> List[Alert]:
        return self.store.pending()

    def all_alerts(self) -> List[Alert]:
        return self.store.all()

    def mark_read(self, alert_id: int) -> bool:
        marked = self.store.mark_read(alert_id)
        if not marked:
            logger.warning(f"Alert #{alert_id} not found")
        return marked
