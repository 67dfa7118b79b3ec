"""E-mail notification through Django's mail framework."""
from __future__ import annotations

from django.conf import settings
from django.core.mail import send_mail

from accounts.registry import Account, Customer
from alerts.store import Alert
from common.exceptions import NotificationError

from .base import EMAIL, NotificationStrategy, StrategyRegistry


@StrategyRegistry.register(EMAIL)
class EmailNotification(NotificationStrategy):
    """Sends the alert message to the customer's e-mail address."""

    def notify(self, alert: Alert, account: Account, customer: Customer) -> None:
        if not customer.email:
            raise NotificationError(self.kind, f"Customer {customer.document} has no e-mail address")

        sender = self.options.get("from_email") or getattr(
            settings, "ALERT_EMAIL_FROM", "alerts@hydropanel.local"
        )
        subject = f"Consumption alert for account {account.account_id}"
        body = (
            f"Hello {customer.name},\n\n"
            f"{alert.message}\n\n"
            f"Alert #{alert.id} raised at {alert.timestamp:%Y-%m-%d %H:%M:%S}."
        )
        try:
            send_mail(subject, body, sender, [customer.email], fail_silently=False)
        except Exception as e:
            raise NotificationError(self.kind, f"Failed to send e-mail to {customer.email}: {e}") from e
        self.logger.info(f"Alert #{alert.id} e-mailed to {customer.email}")
