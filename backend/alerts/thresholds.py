"""Per-account alert threshold configuration."""
from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AlertThresholdConfig:
    """Limit and channel flags for one account. A limit <= 0 disables alerts."""

    account_id: str
    limit_volume: float = 0.0
    email_enabled: bool = False
    concessionaire_enabled: bool = False

    @property
    def active(self) -> bool:
        return self.limit_volume > 0

    def exceeded_by(self, volume: float) -> bool:
        return self.active and volume > self.limit_volume


class ThresholdBook:
    """
    Thread-safe map of account id -> AlertThresholdConfig.

    Configuration calls may race with readings from every ticker, so the
    whole map sits behind one lock and readers get immutable snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._configs: Dict[str, AlertThresholdConfig] = {}

    def _update(self, account_id: str, **changes) -> AlertThresholdConfig:
        with self._lock:
            current = self._configs.get(account_id) or AlertThresholdConfig(account_id=account_id)
            updated = replace(current, **changes)
            self._configs[account_id] = updated
            return updated

    def configure_limit(self, account_id: str, limit_volume: float) -> AlertThresholdConfig:
        return self._update(account_id, limit_volume=float(limit_volume))

    def enable_email(self, account_id: str, enabled: bool = True) -> AlertThresholdConfig:
        return self._update(account_id, email_enabled=bool(enabled))

    def enable_concessionaire(self, account_id: str, enabled: bool = True) -> AlertThresholdConfig:
        return self._update(account_id, concessionaire_enabled=bool(enabled))

    def get(self, account_id: str) -> Optional[AlertThresholdConfig]:
        with self._lock:
            return self._configs.get(account_id)

    def remove(self, account_id: str) -> bool:
        with self._lock:
            return self._configs.pop(account_id, None) is not None

    def all(self) -> List[AlertThresholdConfig]:
        with self._lock:
            return [self._configs[key] for key in sorted(self._configs)]
