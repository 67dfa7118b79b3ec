"""SMS notification through an HTTP gateway."""
from __future__ import annotations

import requests
from django.conf import settings

from accounts.registry import Account, Customer
from alerts.store import Alert
from common.exceptions import NotificationError

from .base import SMS, NotificationStrategy, StrategyRegistry


@StrategyRegistry.register(SMS)
class SMSNotification(NotificationStrategy):
    """
    Posts the alert to an SMS gateway.

    The gateway receives JSON `{"to": phone, "message": text}` and an
    optional bearer token.
    """

    def __init__(self, options=None) -> None:
        super().__init__(options)
        self.gateway_url = self.options.get("gateway_url") or getattr(settings, "SMS_GATEWAY_URL", "")
        self.token = self.options.get("token") or getattr(settings, "SMS_GATEWAY_TOKEN", "")
        self.timeout = float(self.options.get("timeout") or getattr(settings, "SMS_GATEWAY_TIMEOUT", 5.0))

    def notify(self, alert: Alert, account: Account, customer: Customer) -> None:
        if not self.gateway_url:
            raise NotificationError(self.kind, "SMS gateway is not configured")
        if not customer.phone:
            raise NotificationError(self.kind, f"Customer {customer.document} has no phone number")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = requests.post(
                self.gateway_url,
                json={"to": customer.phone, "message": alert.message},
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationError(self.kind, f"SMS gateway request failed: {e}") from e
        self.logger.info(f"Alert #{alert.id} sent by SMS to {customer.phone}")
