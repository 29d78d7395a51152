"""
Scan Gateway - Single entry point for everything that touches a session.

Scans arrive from two independent producers:
- CameraFeed: decode callbacks, throttled by a cooldown after each one
  so a label held in front of the camera is not read repeatedly
- TypedInputDebouncer: keyboard / wedge input, forwarded only after the
  operator stops typing

Both end up in ScanGateway.submit(), which holds one lock around the
session so two scans are never evaluated against the same state.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from .models import ScanResult, SessionState
from .report import ReportHeader, ReportPayload
from .session import ReconciliationSession

logger = logging.getLogger(__name__)


class ScanGateway:
    """Serializes all access to a ReconciliationSession."""

    def __init__(self, session: ReconciliationSession):
        self._session = session
        self._lock = threading.Lock()
        self.last_result: Optional[ScanResult] = None

    @property
    def config(self):
        return self._session.config

    def submit(self, raw: str, now: Optional[datetime] = None) -> ScanResult:
        """Evaluate one scan under the session lock."""
        with self._lock:
            result = self._session.scan(raw, now)
            self.last_result = result
        logger.info(f"Scan {raw!r} -> {result.status.value}")
        return result

    def load_manifest(self, rows: Sequence[Mapping[str, Any]]) -> bool:
        with self._lock:
            self.last_result = None
            return self._session.load_manifest(rows)

    def reset(self) -> bool:
        with self._lock:
            self.last_result = None
            return self._session.reset()

    def report(self, header: Optional[ReportHeader] = None) -> ReportPayload:
        with self._lock:
            return self._session.report(header)

    def read(self, fn: Callable[[SessionState], Any]) -> Any:
        """Run a read-only function against the state under the lock."""
        with self._lock:
            return fn(self._session.state)


class CameraFeed:
    """
    Camera decode producer with a post-decode cooldown.

    After a decode is forwarded, further decodes are dropped until
    cooldown_seconds have passed, whatever the scan outcome was.
    """

    def __init__(
        self,
        gateway: ScanGateway,
        cooldown_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.gateway = gateway
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._locked_until = 0.0
        self._lock = threading.Lock()

    def on_decode(self, text: str) -> Optional[ScanResult]:
        """
        Handle one decode callback.

        Returns:
            The scan result, or None if the decode fell inside the cooldown
        """
        with self._lock:
            now = self._clock()
            if now < self._locked_until:
                logger.debug(f"Camera decode {text!r} suppressed by cooldown")
                return None
            self._locked_until = now + self.cooldown_seconds
        return self.gateway.submit(text)


class TypedInputDebouncer:
    """
    Typed-input producer that waits for an inactivity pause.

    Each on_input() call replaces the pending value and restarts the timer;
    the value is forwarded once no input arrives for delay_seconds.
    """

    def __init__(
        self,
        gateway: ScanGateway,
        delay_seconds: float = 1.0,
        on_result: Optional[Callable[[ScanResult], None]] = None,
    ):
        self.gateway = gateway
        self.delay_seconds = delay_seconds
        self.on_result = on_result
        self._pending: Optional[str] = None
        self._timer: Optional[threading.Timer] = None
        # Bumped on every restart; a timer only fires for its own generation
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> Optional[str]:
        return self._pending

    def on_input(self, value: str) -> None:
        """Record the current field value and restart the inactivity timer."""
        value = (value or "").strip()
        with self._lock:
            self._cancel_timer()
            if not value:
                self._pending = None
                return
            self._pending = value
            self._timer = threading.Timer(self.delay_seconds, self._on_timer, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> Optional[ScanResult]:
        """Forward the pending value now instead of waiting for the timer."""
        with self._lock:
            self._cancel_timer()
            value = self._take_pending()
        return self._submit(value)

    def cancel(self) -> None:
        with self._lock:
            self._cancel_timer()
            self._pending = None

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _take_pending(self) -> Optional[str]:
        value, self._pending = self._pending, None
        return value

    def _on_timer(self, generation: int) -> Optional[ScanResult]:
        with self._lock:
            if generation != self._generation:
                # Restarted or cancelled while this timer waited for the lock
                return None
            self._timer = None
            self._generation += 1
            value = self._take_pending()
        return self._submit(value)

    def _submit(self, value: Optional[str]) -> Optional[ScanResult]:
        if value is None:
            return None
        result = self.gateway.submit(value)
        if self.on_result is not None:
            self.on_result(result)
        return result
