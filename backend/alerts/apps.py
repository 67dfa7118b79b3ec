"""App configuration for alerts module."""
from django.apps import AppConfig


class AlertsConfig(AppConfig):
    """Configuration for the alerts application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "alerts"
    verbose_name = "Consumption alerts"

    def ready(self):
        # Import strategy implementations to trigger registration
        import alerts.notifications  # noqa
