"""
Process-wide services.

The monitoring engine, alert engine, dispatcher and command history are
built once per process and shared by the API and the runmonitor command.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from accounts.commands import CommandHistory
from accounts.registry import AccountRegistry, DatabaseAccountRegistry, InMemoryAccountRegistry
from alerts.engine import AlertEngine
from alerts.notifications import NotificationDispatcher
from alerts.store import AlertStore, DatabaseAlertStore, InMemoryAlertStore
from common.exceptions import ConfigurationError
from metering.readers import MeterReader, ReaderRegistry
from metering.services import MonitoringEngine
from storage import ReadingRecorder, StorageRegistry, influx_config_from_settings

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    registry: AccountRegistry
    reader: MeterReader
    monitor: MonitoringEngine
    dispatcher: NotificationDispatcher
    alerts: AlertEngine
    history: CommandHistory
    recorder: Optional[ReadingRecorder] = None

    def shutdown(self, wait: bool = True) -> None:
        self.monitor.shutdown(wait=wait)
        if self.recorder is not None:
            self.recorder.close()


def _build_registry() -> AccountRegistry:
    kind = getattr(settings, "ACCOUNT_REGISTRY", "database")
    if kind == "database":
        return DatabaseAccountRegistry()
    if kind == "memory":
        return InMemoryAccountRegistry()
    raise ConfigurationError(f"Unknown ACCOUNT_REGISTRY: {kind}")


def _build_store() -> AlertStore:
    kind = getattr(settings, "ALERT_STORE", "database")
    if kind == "database":
        return DatabaseAlertStore()
    if kind == "memory":
        return InMemoryAlertStore()
    raise ConfigurationError(f"Unknown ALERT_STORE: {kind}")


def _build_reader() -> MeterReader:
    name = getattr(settings, "METER_READER", "simulated")
    options = dict(getattr(settings, "METER_READER_OPTIONS", {}) or {})
    if name == "influxdb":
        options.setdefault("storage_config", influx_config_from_settings(settings))
    try:
        return ReaderRegistry.create(name, options)
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def build_runtime(
    registry: Optional[AccountRegistry] = None,
    reader: Optional[MeterReader] = None,
    store: Optional[AlertStore] = None,
) -> Runtime:
    """
    Wire every service together.

    Args:
        registry: Account registry (built from settings when omitted)
        reader: Meter reader (built from settings when omitted)
        store: Alert store (built from settings when omitted)
    """
    registry = registry or _build_registry()
    reader = reader or _build_reader()
    store = store or _build_store()

    monitor = MonitoringEngine(registry, reader)
    dispatcher = NotificationDispatcher(registry)
    alerts = AlertEngine(registry, store, dispatcher, monitor=monitor)
    alerts.load_limits()

    recorder = None
    if getattr(settings, "READING_HISTORY_ENABLED", False):
        storage = StorageRegistry.from_settings(settings)
        recorder = ReadingRecorder(storage).attach(monitor)
        logger.info("Reading history enabled")

    logger.info(f"Runtime ready (reader={reader.__class__.__name__}, next alert id={alerts.sequence.peek()})")
    return Runtime(
        registry=registry,
        reader=reader,
        monitor=monitor,
        dispatcher=dispatcher,
        alerts=alerts,
        history=CommandHistory(),
        recorder=recorder,
    )


_runtime: Optional[Runtime] = None
_runtime_lock = threading.Lock()


def get_runtime() -> Runtime:
    """Return the process runtime, building it on first use."""
    global _runtime
    with _runtime_lock:
        if _runtime is None:
            _runtime = build_runtime()
        return _runtime


def install_runtime(runtime: Runtime) -> Runtime:
    """Replace the process runtime (the previous one is shut down)."""
    global _runtime
    with _runtime_lock:
        previous, _runtime = _runtime, runtime
    if previous is not None and previous is not runtime:
        previous.shutdown(wait=False)
    return runtime


def reset_runtime() -> None:
    global _runtime
    with _runtime_lock:
        previous, _runtime = _runtime, None
    if previous is not None:
        previous.shutdown(wait=False)
