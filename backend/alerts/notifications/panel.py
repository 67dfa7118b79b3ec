"""Internal panel notification over the channel layer."""
from __future__ import annotations

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings

from accounts.registry import Account, Customer
from alerts.store import Alert
from common.exceptions import NotificationError

from .base import CONCESSIONAIRE, INTERNAL_PANEL, NotificationStrategy, StrategyRegistry

PANEL_MESSAGE_TYPE = "alert.raised"


def panel_group() -> str:
    return getattr(settings, "ALERT_PANEL_GROUP", "alerts_panel")


@StrategyRegistry.register(INTERNAL_PANEL)
class InternalPanelNotification(NotificationStrategy):
    """
    Makes the alert visible on the utility's internal panel.

    Broadcasts to the panel group; AlertPanelConsumer relays it to every
    connected operator.
    """

    def notify(self, alert: Alert, account: Account, customer: Customer) -> None:
        channel_layer = get_channel_layer()
        if not channel_layer:
            raise NotificationError(self.kind, "Channel layer not available")

        data = {
            **alert.to_dict(),
            "customer_name": customer.name,
            "address": account.address,
            "channel": self.kind,
        }
        try:
            async_to_sync(channel_layer.group_send)(
                panel_group(),
                {
                    "type": PANEL_MESSAGE_TYPE,
                    "data": data,
                },
            )
        except Exception as e:
            raise NotificationError(self.kind, f"Failed to publish to panel: {e}") from e
        self.logger.info(f"Alert #{alert.id} posted to the internal panel")


@StrategyRegistry.register(CONCESSIONAIRE)
class ConcessionaireNotification(InternalPanelNotification):
    """Notifies the concessionaire through its internal panel."""
