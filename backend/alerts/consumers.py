"""WebSocket consumer for the internal alert panel."""
import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from alerts.notifications.panel import panel_group

logger = logging.getLogger(__name__)

PENDING_LIMIT = 50


class AlertPanelConsumer(AsyncWebsocketConsumer):
    """
    Live view of the operators' alert panel.

    On connect the client gets the unread alerts, then every alert posted
    by the panel strategies. Clients may send {"action": "mark_read", "id": N}.

    Usage:
        ws://localhost:8000/ws/alerts/panel/
    """

    async def connect(self):
        self.group_name = panel_group()
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"Panel client {self.channel_name} connected")

        try:
            pending = await self.get_pending_alerts()
        except Exception as e:
            logger.error(f"Could not load pending alerts for the panel: {e}")
            pending = []
        await self.send_json_message("pending_alerts", pending)

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"Panel client {self.channel_name} left, code={close_code}")

    async def receive(self, text_data=None, bytes_data=None):
        try:
            message = json.loads(text_data or "{}")
        except json.JSONDecodeError:
            await self.send_json_message("error", {"error": "Invalid JSON"})
            return

        if message.get("action") != "mark_read":
            await self.send_json_message("error", {"error": f"Unknown action: {message.get('action')}"})
            return
        try:
            alert_id = int(message.get("id"))
        except (TypeError, ValueError):
            await self.send_json_message("error", {"error": "mark_read needs an integer id"})
            return

        marked = await self.mark_read(alert_id)
        await self.send_json_message("marked_read", {"id": alert_id, "read": marked})

    async def alert_raised(self, event):
        """Handler for group messages of type 'alert.raised'."""
        await self.send_json_message("alert", event["data"])

    async def send_json_message(self, message_type, data):
        await self.send(text_data=json.dumps({"type": message_type, "data": data}))

    @database_sync_to_async
    def get_pending_alerts(self):
        from hydropanel.runtime import get_runtime

        return [alert.to_dict() for alert in get_runtime().alerts.pending_alerts()[:PENDING_LIMIT]]

    @database_sync_to_async
    def mark_read(self, alert_id):
        from hydropanel.runtime import get_runtime

        return get_runtime().alerts.mark_read(alert_id)
