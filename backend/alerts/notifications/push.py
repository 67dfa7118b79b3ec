"""Push notification published on the MQTT broker."""
from __future__ import annotations

import json

import paho.mqtt.publish as publish
from django.conf import settings

from accounts.registry import Account, Customer
from alerts.store import Alert
from common.exceptions import NotificationError

from .base import PUSH, NotificationStrategy, StrategyRegistry


@StrategyRegistry.register(PUSH)
class PushNotification(NotificationStrategy):
    """Publishes the alert to `<prefix>/<account_id>` for the mobile app."""

    def __init__(self, options=None) -> None:
        super().__init__(options)
        self.host = self.options.get("host") or getattr(settings, "MQTT_BROKER_HOST", "localhost")
        self.port = int(self.options.get("port") or getattr(settings, "MQTT_BROKER_PORT", 1883))
        self.topic_prefix = self.options.get("topic_prefix") or getattr(
            settings, "MQTT_TOPIC_PREFIX", "hydropanel/alerts"
        )

    def topic_for(self, account: Account) -> str:
        return f"{self.topic_prefix.rstrip('/')}/{account.account_id}"

    def notify(self, alert: Alert, account: Account, customer: Customer) -> None:
        topic = self.topic_for(account)
        payload = json.dumps({**alert.to_dict(), "customer": customer.name})
        try:
            publish.single(topic, payload=payload, qos=1, hostname=self.host, port=self.port)
        except Exception as e:
            raise NotificationError(self.kind, f"Publish to {topic} failed: {e}") from e
        self.logger.info(f"Alert #{alert.id} pushed to {topic}")
