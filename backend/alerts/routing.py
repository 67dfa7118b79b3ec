"""WebSocket routing for alerts module."""
from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    re_path(r'ws/alerts/panel/$', consumers.AlertPanelConsumer.as_asgi()),
]
