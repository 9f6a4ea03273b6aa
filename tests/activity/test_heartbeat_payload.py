from __future__ import annotations

from datetime import datetime

import pytest

from src.attendance_payroll.attendance_payroll.activity.model import HeartbeatPayload
from src.attendance_payroll.attendance_payroll.core.enums import Confidence, PatternType
from src.attendance_payroll.attendance_payroll.core.exceptions import ValidationError


def _body(**overrides):
    body = {
        "timestamp": "2025-03-12T10:00:00",
        "active": False,
        "suspicious": True,
        "patternType": "STATIC_POINTER",
        "patternDetails": "Pointer stuck at (640, 360) across 15 samples",
        "confidence": "HIGH",
        "confidenceScore": 96,
        "durationMs": 45000,
        "patternStartTime": "2025-03-12T09:59:15",
    }
    body.update(overrides)
    return body


def test_valid_payload_is_parsed():
    payload = HeartbeatPayload.from_json(_body())

    assert payload.timestamp == datetime(2025, 3, 12, 10, 0)
    assert payload.pattern_type == PatternType.STATIC_POINTER
    assert payload.confidence == Confidence.HIGH
    assert payload.duration_ms == 45000
    assert payload.pattern_start_time == datetime(2025, 3, 12, 9, 59, 15)


def test_minimal_payload_is_accepted():
    payload = HeartbeatPayload.from_json({"timestamp": "2025-03-12T10:00:00", "active": True, "suspicious": False})

    assert payload.pattern_type is None
    assert payload.confidence is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"timestamp": None},
        {"timestamp": "yesterday"},
        {"active": "yes"},
        {"confidence": "CERTAIN"},
        {"confidenceScore": 101},
        {"durationMs": -1},
        {"patternType": "TELEPORT"},
    ],
)
def test_invalid_payload_is_rejected(overrides):
    with pytest.raises(ValidationError):
        HeartbeatPayload.from_json(_body(**overrides))
