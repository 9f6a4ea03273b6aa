from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.attendance_payroll.attendance_payroll.activity.session import (
    SUSPICIOUS_THRESHOLD,
    ActivitySession,
)
from src.attendance_payroll.attendance_payroll.core.enums import PatternType

WALL = datetime(2025, 3, 12, 11, 0, 0)


@pytest.fixture
def session() -> ActivitySession:
    return ActivitySession(clock=lambda: 0.0, wall_clock=lambda: WALL)


def _feed_static_pointer(session: ActivitySession, *, until_ms: int, step_ms: int = 250) -> int:
    t = 0
    while t <= until_ms:
        session.record_pointer(640, 360, at_ms=t)
        t += step_ms
    return t - step_ms


def test_no_input_means_no_heartbeat(session):
    assert session.build_heartbeat(at_ms=30_000) is None


def test_any_input_counts_as_activity(session):
    session.record_activity(at_ms=10)

    payload = session.build_heartbeat(at_ms=30_000)

    assert payload.active is True
    assert payload.suspicious is False
    assert payload.pattern_type is None
    assert payload.timestamp == WALL


def test_suspicion_rises_at_most_once_per_cooldown(session):
    _feed_static_pointer(session, until_ms=7_000)

    # first detection at the 15th sample, one more after the cooldown
    assert session.suspicion == 2
    assert session.last_pattern.type == PatternType.STATIC_POINTER


def test_sustained_synthetic_input_flips_heartbeat_to_suspicious(session):
    last = _feed_static_pointer(session, until_ms=60_000)

    assert session.suspicion > SUSPICIOUS_THRESHOLD
    assert session.is_suspicious

    payload = session.build_heartbeat(at_ms=last)
    assert payload.suspicious is True
    assert payload.active is False
    assert payload.pattern_type == PatternType.STATIC_POINTER
    # pattern first seen at the 15th sample (t=3500ms)
    assert payload.duration_ms == last - 3500
    assert payload.pattern_start_time == WALL - timedelta(milliseconds=last - 3500)


def test_clean_evaluation_decays_suspicion(session):
    last = _feed_static_pointer(session, until_ms=7_000)
    assert session.suspicion == 2

    # too few keys for a verdict counts as a clean check
    session.record_key("x", at_ms=last + 500)

    assert session.suspicion == 0
    payload = session.build_heartbeat(at_ms=last + 600)
    assert payload.duration_ms is None


def test_throttled_events_still_count_as_activity(session):
    session.record_key("a", at_ms=0)
    session.record_key("b", at_ms=50)

    assert session.has_recent_activity


def test_suspicious_delivery_clears_pattern(session):
    last = _feed_static_pointer(session, until_ms=60_000)
    payload = session.build_heartbeat(at_ms=last)

    session.heartbeat_delivered(payload)

    assert session.last_pattern is None
    assert not session.has_recent_activity
    assert session.build_heartbeat(at_ms=last + 1) is None


def test_idle_resets_detection_state(session):
    _feed_static_pointer(session, until_ms=10_000)
    assert session.suspicion > 0

    assert session.check_idle(at_ms=10_000 + 5 * 60 * 1000 - 1) is False
    assert session.check_idle(at_ms=10_000 + 5 * 60 * 1000 + 1) is True

    assert session.suspicion == 0
    assert session.last_pattern is None
    assert session.build_heartbeat(at_ms=400_000) is None
