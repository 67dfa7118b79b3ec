"""Per-account monitoring session and its state machine."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

from django.utils import timezone

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    STOPPED = "stopped"
    STARTED = "started"
    PAUSED = "paused"
    ERROR = "error"


class SessionEvent(str, Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"


# (state, event) -> (next state, warn). A missing entry means "ignore".
# Next state None means the request is rejected and the state is kept.
TRANSITIONS: Dict[Tuple[SessionState, SessionEvent], Tuple[Optional[SessionState], bool]] = {
    (SessionState.STOPPED, SessionEvent.START): (SessionState.STARTED, False),
    (SessionState.STOPPED, SessionEvent.PAUSE): (None, True),
    (SessionState.STOPPED, SessionEvent.RESUME): (None, True),
    (SessionState.STOPPED, SessionEvent.STOP): (None, False),
    (SessionState.STARTED, SessionEvent.START): (None, True),
    (SessionState.STARTED, SessionEvent.PAUSE): (SessionState.PAUSED, False),
    (SessionState.STARTED, SessionEvent.RESUME): (None, True),
    (SessionState.STARTED, SessionEvent.STOP): (SessionState.STOPPED, False),
    (SessionState.PAUSED, SessionEvent.START): (None, True),
    (SessionState.PAUSED, SessionEvent.PAUSE): (None, True),
    (SessionState.PAUSED, SessionEvent.RESUME): (SessionState.STARTED, False),
    (SessionState.PAUSED, SessionEvent.STOP): (SessionState.STOPPED, False),
    (SessionState.ERROR, SessionEvent.START): (SessionState.STARTED, False),
    (SessionState.ERROR, SessionEvent.PAUSE): (None, True),
    (SessionState.ERROR, SessionEvent.RESUME): (None, True),
    (SessionState.ERROR, SessionEvent.STOP): (SessionState.STOPPED, False),
}


def next_state(state: SessionState, event: SessionEvent) -> Tuple[Optional[SessionState], bool]:
    """Look up the transition table; returns (target or None, warn)."""
    return TRANSITIONS.get((state, event), (None, False))


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session."""

    account_id: str
    state: SessionState
    interval_seconds: float
    consecutive_failures: int
    last_volume: Optional[float]
    last_read_at: Optional[datetime]
    last_error: str
    tick_in_flight: bool


class MonitoringSession:
    """
    Runtime monitoring state of one account.

    Fields are only mutated through the methods below, all under the
    session lock. The engine owns the ticker; the session only decides.
    """

    def __init__(
        self,
        account_id: str,
        interval_seconds: float,
        max_consecutive_failures: int = 3,
    ) -> None:
        self.account_id = account_id
        self.interval_seconds = float(interval_seconds)
        self.max_consecutive_failures = int(max_consecutive_failures)
        self.state = SessionState.STOPPED
        self.consecutive_failures = 0
        self.last_volume: Optional[float] = None
        self.last_read_at: Optional[datetime] = None
        self.last_error = ""
        self._tick_in_flight = False
        self._lock = threading.RLock()
        self.logger = logging.getLogger(f"{__name__}.{account_id}")

    def _apply(self, event: SessionEvent) -> bool:
        with self._lock:
            current = self.state
            target, warn = next_state(current, event)
            if target is None:
                if warn:
                    self.logger.warning(
                        f"Ignored '{event.value}' for account {self.account_id}: session is {current.value}"
                    )
                return False
            if event is SessionEvent.START:
                self.consecutive_failures = 0
                self.last_error = ""
            self.state = target
        self.logger.info(f"Session {self.account_id}: {current.value} -> {target.value}")
        return True

    def start(self, interval_seconds: Optional[float] = None) -> bool:
        """Stopped/Error -> Started (failure counter reset)."""
        with self._lock:
            changed = self._apply(SessionEvent.START)
            if changed and interval_seconds is not None:
                self.interval_seconds = float(interval_seconds)
            return changed

    def set_interval(self, interval_seconds: float) -> None:
        with self._lock:
            self.interval_seconds = float(interval_seconds)

    def pause(self) -> bool:
        return self._apply(SessionEvent.PAUSE)

    def resume(self) -> bool:
        return self._apply(SessionEvent.RESUME)

    def stop(self) -> bool:
        return self._apply(SessionEvent.STOP)

    @property
    def is_started(self) -> bool:
        with self._lock:
            return self.state is SessionState.STARTED

    def begin_tick(self) -> bool:
        """
        Claim the tick slot.

        Returns:
            False if the session is not Started or a tick is still in flight.
        """
        with self._lock:
            if self.state is not SessionState.STARTED or self._tick_in_flight:
                return False
            self._tick_in_flight = True
            return True

    def end_tick(self) -> None:
        with self._lock:
            self._tick_in_flight = False

    def record_success(self, volume: float, at: Optional[datetime] = None) -> None:
        with self._lock:
            self.consecutive_failures = 0
            self.last_volume = volume
            self.last_read_at = at or timezone.now()
            self.last_error = ""

    def record_failure(self, error: Exception) -> bool:
        """
        Count a read failure.

        Returns:
            True if this failure moved the session to Error.
        """
        with self._lock:
            self.last_error = str(error)
            if self.state is not SessionState.STARTED:
                return False
            self.consecutive_failures += 1
            count = self.consecutive_failures
            if count < self.max_consecutive_failures:
                self.logger.error(
                    f"Read failure {count}/{self.max_consecutive_failures} for account {self.account_id}: {error}"
                )
                return False
            self.state = SessionState.ERROR
        self.logger.error(
            f"Session {self.account_id} entered error after {count} consecutive read failures: {error}"
        )
        return True

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                account_id=self.account_id,
                state=self.state,
                interval_seconds=self.interval_seconds,
                consecutive_failures=self.consecutive_failures,
                last_volume=self.last_volume,
                last_read_at=self.last_read_at,
                last_error=self.last_error,
                tick_in_flight=self._tick_in_flight,
            )

    def __repr__(self) -> str:
        return f"<MonitoringSession {self.account_id} {self.state.value}>"
