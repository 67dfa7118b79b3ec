"""Alert value type and alert stores."""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlertChannels:
    """Channel flags copied from the threshold config when the alert fires."""

    email: bool = False
    concessionaire: bool = False


@dataclass(frozen=True)
class Alert:
    """An over-limit reading. Immutable apart from the read flag (via the store)."""

    id: int
    account_id: str
    customer_document: str
    current_volume: float
    limit_volume: float
    timestamp: datetime
    read: bool = False
    channels: AlertChannels = field(default_factory=AlertChannels)

    @property
    def message(self) -> str:
        return (
            f"ALERT: consumption exceeded! Account: {self.account_id} | "
            f"Consumption: {self.current_volume:.2f} m³ | Limit: {self.limit_volume:.2f} m³"
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "customer_document": self.customer_document,
            "current_volume": self.current_volume,
            "limit_volume": self.limit_volume,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
            "email_enabled": self.channels.email,
            "concessionaire_enabled": self.channels.concessionaire,
            "message": self.message,
        }


class AlertStore(ABC):
    """Persistence of alerts; ids are assigned by the caller."""

    @abstractmethod
    def save(self, alert: Alert) -> Alert:
        pass

    @abstractmethod
    def get(self, alert_id: int) -> Optional[Alert]:
        pass

    @abstractmethod
    def max_id(self) -> int:
        """Highest stored id, 0 when empty."""
        pass

    @abstractmethod
    def for_account(self, account_id: str) -> List[Alert]:
        """Alerts of one account, newest first."""
        pass

    @abstractmethod
    def pending(self) -> List[Alert]:
        """Unread alerts, newest first."""
        pass

    @abstractmethod
    def all(self) -> List[Alert]:
        pass

    @abstractmethod
    def mark_read(self, alert_id: int) -> bool:
        """Set the read flag; False if the alert does not exist."""
        pass


def _newest_first(alerts: List[Alert]) -> List[Alert]:
    return sorted(alerts, key=lambda alert: (alert.timestamp, alert.id), reverse=True)


class InMemoryAlertStore(AlertStore):
    def __init__(self, alerts: Optional[List[Alert]] = None) -> None:
        self._lock = threading.Lock()
        self._alerts: Dict[int, Alert] = {alert.id: alert for alert in alerts or []}

    def save(self, alert: Alert) -> Alert:
        with self._lock:
            self._alerts[alert.id] = alert
        return alert

    def get(self, alert_id: int) -> Optional[Alert]:
        with self._lock:
            return self._alerts.get(alert_id)

    def max_id(self) -> int:
        with self._lock:
            return max(self._alerts, default=0)

    def for_account(self, account_id: str) -> List[Alert]:
        with self._lock:
            alerts = [a for a in self._alerts.values() if a.account_id == account_id]
        return _newest_first(alerts)

    def pending(self) -> List[Alert]:
        with self._lock:
            alerts = [a for a in self._alerts.values() if not a.read]
        return _newest_first(alerts)

    def all(self) -> List[Alert]:
        with self._lock:
            alerts = list(self._alerts.values())
        return _newest_first(alerts)

    def mark_read(self, alert_id: int) -> bool:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                return False
            self._alerts[alert_id] = replace(alert, read=True)
            return True


class DatabaseAlertStore(AlertStore):
    """Store backed by the AlertRecord model."""

    def save(self, alert: Alert) -> Alert:
        from .models import AlertRecord

        AlertRecord.objects.update_or_create(
            id=alert.id,
            defaults={
                "account_id": alert.account_id,
                "customer_document": alert.customer_document,
                "current_volume": alert.current_volume,
                "limit_volume": alert.limit_volume,
                "raised_at": alert.timestamp,
                "read": alert.read,
                "email_enabled": alert.channels.email,
                "concessionaire_enabled": alert.channels.concessionaire,
                "message": alert.message,
            },
        )
        return alert

    def get(self, alert_id: int) -> Optional[Alert]:
        from .models import AlertRecord

        row = AlertRecord.objects.filter(id=alert_id).first()
        return self._to_alert(row) if row else None

    def max_id(self) -> int:
        from django.db.models import Max

        from .models import AlertRecord

        return AlertRecord.objects.aggregate(max_id=Max("id"))["max_id"] or 0

    def for_account(self, account_id: str) -> List[Alert]:
        from .models import AlertRecord

        return [self._to_alert(row) for row in AlertRecord.objects.filter(account_id=account_id)]

    def pending(self) -> List[Alert]:
        from .models import AlertRecord

        return [self._to_alert(row) for row in AlertRecord.objects.filter(read=False)]

    def all(self) -> List[Alert]:
        from .models import AlertRecord

        return [self._to_alert(row) for row in AlertRecord.objects.all()]

    def mark_read(self, alert_id: int) -> bool:
        from .models import AlertRecord

        return AlertRecord.objects.filter(id=alert_id).update(read=True) > 0

    @staticmethod
    def _to_alert(row) -> Alert:
        return Alert(
            id=row.id,
            account_id=row.account_id,
            customer_document=row.customer_document,
            current_volume=row.current_volume,
            limit_volume=row.limit_volume,
            timestamp=row.raised_at,
            read=row.read,
            channels=AlertChannels(email=row.email_enabled, concessionaire=row.concessionaire_enabled),
        )
