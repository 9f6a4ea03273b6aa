from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..core.constants import HEARTBEAT_INTERVAL_SECONDS, IDLE_CHECK_INTERVAL_SECONDS
from .model import HeartbeatPayload
from .session import ActivitySession

log = logging.getLogger(__name__)


class HeartbeatScheduler:
    """Cancellable background task bound to one work session.

    Started at punch-in and cancelled at punch-out. Every heartbeat interval
    it sends what the session observed, every idle-check interval it lets the
    session decide whether the user walked away. Delivery is best-effort and
    unordered; a failed send is logged and the next tick tries again.
    """

    def __init__(
        self,
        session: ActivitySession,
        send: Callable[[HeartbeatPayload], bool],
        *,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS,
        idle_check_interval: float = IDLE_CHECK_INTERVAL_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        if heartbeat_interval <= 0 or idle_check_interval <= 0:
            raise ValueError("intervals must be positive")
        self._session = session
        self._send = send
        self._heartbeat_interval = float(heartbeat_interval)
        self._idle_check_interval = float(idle_check_interval)
        self._monotonic = monotonic
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._run, name="heartbeat-scheduler", daemon=True)
            self._thread.start()
        log.info("Heartbeat scheduler started (every %.0fs)", self._heartbeat_interval)

    def cancel(self, *, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._session.reset()
        log.info("Heartbeat scheduler cancelled")

    def tick_heartbeat(self) -> bool:
        """Send one heartbeat if the session has something to report."""
        payload = self._session.build_heartbeat()
        if payload is None:
            return False
        try:
            delivered = self._send(payload)
        except Exception:
            log.exception("Heartbeat send raised")
            return False
        if delivered:
            self._session.heartbeat_delivered(payload)
        return delivered

    def tick_idle_check(self) -> bool:
        went_idle = self._session.check_idle()
        if went_idle:
            log.info("Session idle; detection state reset")
        return went_idle

    def _run(self) -> None:
        next_heartbeat = self._monotonic() + self._heartbeat_interval
        next_idle_check = self._monotonic() + self._idle_check_interval

        while True:
            wait = max(0.0, min(next_heartbeat, next_idle_check) - self._monotonic())
            if self._stop.wait(wait):
                return

            now = self._monotonic()
            if now >= next_idle_check:
                self.tick_idle_check()
                next_idle_check = now + self._idle_check_interval
            if now >= next_heartbeat:
                self.tick_heartbeat()
                next_heartbeat = now + self._heartbeat_interval
