"""Monitoring engine: per-account tickers on a shared worker pool."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from django.conf import settings
from django.db import close_old_connections
from django.utils import timezone

from accounts.registry import AccountRegistry
from common.exceptions import ReadFailure
from metering.readers import MeterReader

from .session import MonitoringSession, SessionSnapshot, SessionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadingEvent:
    """Aggregated consumption of one account at one tick."""

    account_id: str
    volume: float
    timestamp: datetime


ReadingListener = Callable[[ReadingEvent], None]


class Ticker:
    """
    Cancellable periodic trigger for one account.

    Runs on its own daemon thread and only hands work to the engine;
    the read itself happens on the worker pool.
    """

    def __init__(
        self,
        account_id: str,
        interval_seconds: float,
        callback: Callable[[str], None],
        fire_immediately: bool = True,
    ) -> None:
        self.account_id = account_id
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.fire_immediately = fire_immediately
        self._cancelled = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name=f"ticker-{account_id}",
            daemon=True,
        )

    def start(self) -> "Ticker":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        if self.fire_immediately and not self.cancelled:
            self._fire()
        while not self._cancelled.wait(self.interval_seconds):
            self._fire()

    def _fire(self) -> None:
        try:
            self.callback(self.account_id)
        except Exception as e:
            logger.error(f"Ticker for account {self.account_id} failed: {e}", exc_info=True)


class MonitoringEngine:
    """
    Owns every MonitoringSession and its ticker.

    Each account has one ticker; ticks run on a shared ThreadPoolExecutor,
    never overlap for the same account and are skipped when the previous
    tick is still in flight. Readings are published synchronously to all
    subscribers from the worker thread.
    """

    def __init__(
        self,
        registry: AccountRegistry,
        reader: MeterReader,
        default_interval: Optional[float] = None,
        max_consecutive_failures: Optional[int] = None,
        pool_size: Optional[int] = None,
        first_tick_immediate: Optional[bool] = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            registry: Account lookup used on every tick
            reader: Meter reader capability
            default_interval: Seconds between ticks when start() gets none
            max_consecutive_failures: Read failures before a session errors
            pool_size: Worker threads shared by all accounts
            first_tick_immediate: Read as soon as a session starts
        """
        self.registry = registry
        self.reader = reader
        self.default_interval = float(
            default_interval if default_interval is not None
            else getattr(settings, "MONITOR_DEFAULT_INTERVAL", 5)
        )
        self.max_consecutive_failures = int(
            max_consecutive_failures if max_consecutive_failures is not None
            else getattr(settings, "MONITOR_MAX_CONSECUTIVE_FAILURES", 3)
        )
        self.first_tick_immediate = bool(
            first_tick_immediate if first_tick_immediate is not None
            else getattr(settings, "MONITOR_FIRST_TICK_IMMEDIATE", True)
        )
        workers = pool_size or getattr(settings, "MONITOR_WORKER_POOL_SIZE", 4)
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="monitor")
        self._sessions: Dict[str, MonitoringSession] = {}
        self._tickers: Dict[str, Ticker] = {}
        self._listeners: List[ReadingListener] = []
        self._lock = threading.RLock()
        self._listeners_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: ReadingListener) -> None:
        """Register a listener for readings of every account."""
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: ReadingListener) -> None:
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _publish(self, event: ReadingEvent) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Reading listener {getattr(listener, '__qualname__', listener)!s} failed "
                    f"for account {event.account_id}: {e}",
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, account_id: str, interval_seconds: Optional[float] = None) -> bool:
        """
        Start (or restart) monitoring of an account.

        A Started session keeps its state and counters but gets a fresh
        ticker that waits a full interval before reading. A Paused session
        is left alone; use resume().

        Returns:
            True if the session state changed.

        Raises:
            AccountNotFound: Unknown account.
            ValueError: Non-positive interval.
        """
        interval = float(interval_seconds) if interval_seconds is not None else self.default_interval
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        self.registry.require_account(account_id)

        with self._lock:
            if self._closed:
                raise RuntimeError("Monitoring engine has been shut down")
            session = self._sessions.get(account_id)
            if session is None:
                session = MonitoringSession(account_id, interval, self.max_consecutive_failures)
                self._sessions[account_id] = session

            changed = session.start(interval)
            if not changed:
                if session.state is not SessionState.STARTED:
                    return False
                session.set_interval(interval)
                # Only the cadence changes; no extra read on restart.
                self._replace_ticker(account_id, interval, fire_immediately=False)
            else:
                self._replace_ticker(account_id, interval)
        return changed

    def pause(self, account_id: str) -> bool:
        session = self._get_session(account_id)
        if session is None:
            logger.warning(f"Cannot pause account {account_id}: not monitored")
            return False
        return session.pause()

    def resume(self, account_id: str) -> bool:
        session = self._get_session(account_id)
        if session is None:
            logger.warning(f"Cannot resume account {account_id}: not monitored")
            return False
        with self._lock:
            changed = session.resume()
            if changed and account_id not in self._tickers:
                self._replace_ticker(account_id, session.interval_seconds)
        return changed

    def stop(self, account_id: str) -> bool:
        """Stop monitoring; the session is kept in Stopped state."""
        with self._lock:
            session = self._sessions.get(account_id)
            if session is None:
                return False
            changed = session.stop()
            self._cancel_ticker(account_id)
        return changed

    def shutdown(self, wait: bool = True) -> None:
        """Stop every ticker and the worker pool."""
        with self._lock:
            self._closed = True
            tickers = list(self._tickers.values())
            self._tickers.clear()
            for session in self._sessions.values():
                session.stop()
        for ticker in tickers:
            ticker.cancel()
        if wait:
            for ticker in tickers:
                ticker.join(timeout=1.0)
        self._executor.shutdown(wait=wait)
        try:
            self.reader.close()
        except Exception as e:
            logger.warning(f"Error closing meter reader: {e}")
        logger.info("Monitoring engine shut down")

    def _replace_ticker(self, account_id: str, interval: float, fire_immediately: Optional[bool] = None) -> None:
        self._cancel_ticker(account_id)
        if fire_immediately is None:
            fire_immediately = self.first_tick_immediate
        ticker = Ticker(account_id, interval, self.trigger, fire_immediately)
        self._tickers[account_id] = ticker
        ticker.start()
        logger.debug(f"Ticker for account {account_id} scheduled every {interval}s")

    def _cancel_ticker(self, account_id: str) -> None:
        ticker = self._tickers.pop(account_id, None)
        if ticker is not None:
            ticker.cancel()

    # ------------------------------------------------------------------
    # Ticks
    # ------------------------------------------------------------------

    def trigger(self, account_id: str) -> Optional[Future]:
        """
        Schedule one tick on the worker pool.

        Returns:
            The future, or None when the tick was skipped.
        """
        session = self._get_session(account_id)
        if session is None or not session.begin_tick():
            logger.debug(f"Tick skipped for account {account_id}")
            return None
        try:
            return self._executor.submit(self._run_pooled_tick, session)
        except RuntimeError as e:
            session.end_tick()
            logger.warning(f"Tick for account {account_id} not scheduled: {e}")
            return None

    def tick(self, account_id: str) -> Optional[ReadingEvent]:
        """Run one tick on the calling thread; None if skipped or failed."""
        session = self._get_session(account_id)
        if session is None or not session.begin_tick():
            return None
        try:
            return self._tick(session)
        finally:
            session.end_tick()

    def _run_pooled_tick(self, session: MonitoringSession) -> Optional[ReadingEvent]:
        close_old_connections()
        try:
            return self._tick(session)
        except Exception as e:
            logger.error(f"Tick for account {session.account_id} crashed: {e}", exc_info=True)
            return None
        finally:
            session.end_tick()
            close_old_connections()

    def _tick(self, session: MonitoringSession) -> Optional[ReadingEvent]:
        account_id = session.account_id
        try:
            volume = self.read_account_consumption(account_id)
        except ReadFailure as e:
            if session.record_failure(e):
                with self._lock:
                    if session.state is SessionState.ERROR:
                        self._cancel_ticker(account_id)
            return None

        event = ReadingEvent(account_id=account_id, volume=volume, timestamp=timezone.now())
        session.record_success(volume, event.timestamp)
        session.logger.debug(f"Account {account_id} consumption: {volume:.2f} m³")
        self._publish(event)
        return event

    def read_account_consumption(self, account_id: str) -> float:
        """
        Sum the volume of every meter linked to the account.

        A single failing meter fails the whole read.

        Raises:
            ReadFailure: Account missing or any meter unreadable.
        """
        try:
            account = self.registry.get_account(account_id)
        except Exception as e:
            raise ReadFailure(f"Account {account_id} lookup failed: {e}") from e
        if account is None:
            raise ReadFailure(f"Account {account_id} no longer exists")

        total = 0.0
        for meter_id in sorted(account.meter_ids):
            try:
                total += float(self.reader.read_consumption(meter_id))
            except ReadFailure:
                raise
            except Exception as e:
                raise ReadFailure(f"Meter {meter_id} could not be read: {e}", meter_id=meter_id) from e
        return total

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _get_session(self, account_id: str) -> Optional[MonitoringSession]:
        with self._lock:
            return self._sessions.get(account_id)

    def status(self, account_id: str) -> Optional[SessionSnapshot]:
        session = self._get_session(account_id)
        return session.snapshot() if session else None

    def sessions(self) -> List[SessionSnapshot]:
        with self._lock:
            sessions = [self._sessions[key] for key in sorted(self._sessions)]
        return [session.snapshot() for session in sessions]

    def has_ticker(self, account_id: str) -> bool:
        with self._lock:
            return account_id in self._tickers
