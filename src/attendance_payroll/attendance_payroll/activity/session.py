from __future__ import annotations

import threading
import time
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import IDLE_THRESHOLD_SECONDS
from .classifier import ActivitySignalClassifier
from .model import ClickSample, HeartbeatPayload, KeySample, PatternResult, PointerSample

POINTER_BUFFER_SIZE = 40
KEY_BUFFER_SIZE = 30
CLICK_BUFFER_SIZE = 30

SUSPICIOUS_THRESHOLD = 15
SUSPICION_DECAY = 2
PATTERN_CHECK_THROTTLE_MS = 200
INCREMENT_COOLDOWN_MS = 3000


def _epoch_ms() -> float:
    return time.time() * 1000.0


class ActivitySession:
    """All client-side state of one punched-in work session.

    Owns the event ring buffers and the suspicion counter. One detected
    pattern adds 1 (at most once per cooldown), one clean evaluation takes
    away 2, so stray false positives fade while sustained synthetic input
    climbs past the threshold. Thread-safe: input listeners and the
    heartbeat scheduler run on different threads.
    """

    def __init__(
        self,
        *,
        classifier: ActivitySignalClassifier | None = None,
        clock: Callable[[], float] = _epoch_ms,
        wall_clock: Callable[[], datetime] = now_local,
        threshold: int = SUSPICIOUS_THRESHOLD,
        idle_threshold_seconds: int = IDLE_THRESHOLD_SECONDS,
    ):
        self._classifier = classifier or ActivitySignalClassifier()
        self._clock = clock
        self._wall_clock = wall_clock
        self._threshold = int(threshold)
        self._idle_threshold_ms = idle_threshold_seconds * 1000.0
        self._lock = threading.Lock()

        self._pointer: deque[PointerSample] = deque(maxlen=POINTER_BUFFER_SIZE)
        self._keys: deque[KeySample] = deque(maxlen=KEY_BUFFER_SIZE)
        self._clicks: deque[ClickSample] = deque(maxlen=CLICK_BUFFER_SIZE)

        self._suspicion = 0
        self._last_check_ms: Optional[float] = None
        self._last_increment_ms: Optional[float] = None
        self._pattern_start_ms: Optional[float] = None
        self._last_pattern: Optional[PatternResult] = None
        self._last_activity_ms = clock()
        self._has_recent_activity = False

    # ----- input events -----------------------------------------------------

    def record_pointer(self, x: float, y: float, *, at_ms: float | None = None) -> None:
        now = self._now(at_ms)
        with self._lock:
            self._pointer.append(PointerSample(x=x, y=y, timestamp_ms=now))
            self._evaluate(now, lambda: self._classifier.detect_pointer_pattern(self._pointer))

    def record_key(self, key: str, *, at_ms: float | None = None) -> None:
        now = self._now(at_ms)
        with self._lock:
            self._keys.append(KeySample(key=key, timestamp_ms=now))
            self._evaluate(now, lambda: self._classifier.detect_key_pattern(self._keys))

    def record_click(self, x: float, y: float, *, at_ms: float | None = None) -> None:
        now = self._now(at_ms)
        with self._lock:
            self._clicks.append(ClickSample(x=x, y=y, timestamp_ms=now))
            self._evaluate(now, lambda: self._classifier.detect_click_pattern(self._clicks))

    def record_activity(self, *, at_ms: float | None = None) -> None:
        """Scroll/touch and other input that is not classified."""
        now = self._now(at_ms)
        with self._lock:
            self._touch(now)

    # ----- state ------------------------------------------------------------

    @property
    def suspicion(self) -> int:
        with self._lock:
            return self._suspicion

    @property
    def is_suspicious(self) -> bool:
        with self._lock:
            return self._suspicion > self._threshold

    @property
    def has_recent_activity(self) -> bool:
        with self._lock:
            return self._has_recent_activity

    @property
    def last_pattern(self) -> Optional[PatternResult]:
        with self._lock:
            return self._last_pattern

    def check_idle(self, *, at_ms: float | None = None) -> bool:
        """Drop back to a clean slate after a long stretch without input.

        Returns True when the session just went idle.
        """
        now = self._now(at_ms)
        with self._lock:
            if not self._has_recent_activity or now - self._last_activity_ms <= self._idle_threshold_ms:
                return False
            self._has_recent_activity = False
            self._clear_detection()
            return True

    def build_heartbeat(self, *, at_ms: float | None = None) -> Optional[HeartbeatPayload]:
        """Snapshot for the next heartbeat, or None when nothing happened since the last one."""
        now = self._now(at_ms)
        with self._lock:
            if not self._has_recent_activity:
                return None
            suspicious = self._suspicion > self._threshold
            pattern = self._last_pattern
            wall_now = self._wall_clock()

            start_time = None
            duration_ms = None
            if self._pattern_start_ms is not None:
                duration_ms = int(now - self._pattern_start_ms)
                start_time = wall_now - timedelta(milliseconds=duration_ms)

            return HeartbeatPayload(
                timestamp=wall_now,
                active=not suspicious,
                suspicious=suspicious,
                pattern_type=pattern.type if pattern else None,
                pattern_details=pattern.details if pattern else None,
                confidence=pattern.confidence if pattern else None,
                confidence_score=pattern.confidence_score if pattern else None,
                duration_ms=duration_ms,
                pattern_start_time=start_time,
            )

    def heartbeat_delivered(self, payload: HeartbeatPayload) -> None:
        with self._lock:
            self._has_recent_activity = False
            if payload.suspicious:
                self._last_pattern = None
                self._pattern_start_ms = None

    def reset(self) -> None:
        with self._lock:
            self._has_recent_activity = False
            self._clear_detection()

    # ----- internals (lock held) --------------------------------------------

    def _now(self, at_ms: float | None) -> float:
        return self._clock() if at_ms is None else float(at_ms)

    def _touch(self, now: float) -> None:
        self._last_activity_ms = now
        self._has_recent_activity = True

    def _evaluate(self, now: float, detect: Callable[[], Optional[PatternResult]]) -> None:
        self._touch(now)
        if self._last_check_ms is not None and now - self._last_check_ms < PATTERN_CHECK_THROTTLE_MS:
            return
        self._last_check_ms = now

        pattern = detect()
        if pattern is None:
            self._suspicion = max(0, self._suspicion - SUSPICION_DECAY)
            if self._suspicion == 0:
                self._pattern_start_ms = None
            return

        if self._last_increment_ms is None or now - self._last_increment_ms > INCREMENT_COOLDOWN_MS:
            self._suspicion += 1
            self._last_increment_ms = now
        if self._pattern_start_ms is None:
            self._pattern_start_ms = now
        self._last_pattern = pattern

    def _clear_detection(self) -> None:
        self._pointer.clear()
        self._keys.clear()
        self._clicks.clear()
        self._suspicion = 0
        self._last_increment_ms = None
        self._pattern_start_ms = None
        self._last_pattern = None
