"""App configuration for metering module."""
import logging
import os

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class MeteringConfig(AppConfig):
    """Configuration for the metering application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "metering"
    verbose_name = "Consumption monitoring"

    def ready(self):
        """Import readers and install the shutdown handler."""
        import metering.readers  # noqa

        # Only in the serving process (not in the runserver reloader parent)
        if os.environ.get("RUN_MAIN") != "true":
            return

        self._register_shutdown_handler()

    def _register_shutdown_handler(self):
        """
        Stop every ticker and the worker pool on SIGTERM/SIGINT.

        The previous handlers are chained so the server still exits.
        """
        import signal

        def shutdown_handler(signum, frame):
            signal_name = "SIGTERM" if signum == signal.SIGTERM else "SIGINT"
            logger.info(f"Received {signal_name}, stopping monitoring sessions...")

            try:
                from hydropanel.runtime import reset_runtime

                reset_runtime()
            except Exception as e:
                logger.error(f"Error during shutdown: {e}", exc_info=True)

            original = shutdown_handler.original_handlers.get(signum)
            if callable(original):
                original(signum, frame)

        shutdown_handler.original_handlers = {
            signal.SIGTERM: signal.signal(signal.SIGTERM, shutdown_handler),
            signal.SIGINT: signal.signal(signal.SIGINT, shutdown_handler),
        }

        logger.info("Registered shutdown handlers for monitoring sessions")
