from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from ..common.datetime_utils import parse_iso_datetime
from ..core.enums import Confidence, PatternType
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class PointerSample:
    x: float
    y: float
    timestamp_ms: float


@dataclass(frozen=True)
class KeySample:
    key: str
    timestamp_ms: float


@dataclass(frozen=True)
class ClickSample:
    x: float
    y: float
    timestamp_ms: float

    @property
    def position(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class PatternResult:
    type: PatternType
    details: str
    confidence: Confidence
    confidence_score: int


def _optional_str(data: Mapping[str, Any], key: str, max_len: int) -> Optional[str]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string")
    return value[:max_len]


def _optional_int(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number")
    return int(value)


def _required_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be a boolean")
    return value


def _optional_datetime(data: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = data.get(key)
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an ISO-8601 timestamp")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 timestamp")


@dataclass(frozen=True)
class HeartbeatPayload:
    """Heartbeat as reported by a client session, validated at the HTTP boundary."""

    timestamp: datetime
    active: bool
    suspicious: bool
    pattern_type: Optional[PatternType] = None
    pattern_details: Optional[str] = None
    confidence: Optional[Confidence] = None
    confidence_score: Optional[int] = None
    duration_ms: Optional[int] = None
    pattern_start_time: Optional[datetime] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "HeartbeatPayload":
        timestamp = _optional_datetime(data, "timestamp")
        if timestamp is None:
            raise ValidationError("timestamp is required")

        pattern_type = _optional_str(data, "patternType", 64)
        confidence = _optional_str(data, "confidence", 16)
        score = _optional_int(data, "confidenceScore")
        duration = _optional_int(data, "durationMs")

        try:
            parsed_pattern = PatternType(pattern_type) if pattern_type else None
        except ValueError:
            raise ValidationError(f"Unknown patternType: {pattern_type}")
        try:
            parsed_confidence = Confidence(confidence) if confidence else None
        except ValueError:
            raise ValidationError("confidence must be LOW, MEDIUM or HIGH")
        if score is not None and not 0 <= score <= 100:
            raise ValidationError("confidenceScore must be between 0 and 100")
        if duration is not None and duration < 0:
            raise ValidationError("durationMs cannot be negative")

        return cls(
            timestamp=timestamp,
            active=_required_bool(data, "active"),
            suspicious=_required_bool(data, "suspicious"),
            pattern_type=parsed_pattern,
            pattern_details=_optional_str(data, "patternDetails", 500),
            confidence=parsed_confidence,
            confidence_score=score,
            duration_ms=duration,
            pattern_start_time=_optional_datetime(data, "patternStartTime"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "active": self.active,
            "suspicious": self.suspicious,
            "patternType": self.pattern_type.value if self.pattern_type else None,
            "patternDetails": self.pattern_details,
            "confidence": self.confidence.value if self.confidence else None,
            "confidenceScore": self.confidence_score,
            "durationMs": self.duration_ms,
            "patternStartTime": self.pattern_start_time.isoformat() if self.pattern_start_time else None,
        }


@dataclass(frozen=True)
class ActivityHeartbeat:
    """Stored heartbeat. Append-only."""

    heartbeat_id: int
    attendance_id: int
    timestamp: datetime
    active: bool
    suspicious: bool
    pattern_type: Optional[PatternType] = None
    pattern_details: Optional[str] = None
    confidence: Optional[Confidence] = None
    confidence_score: Optional[int] = None
    duration_ms: Optional[int] = None
    pattern_start_time: Optional[datetime] = None
    ip_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "heartbeat_id": self.heartbeat_id,
            "attendance_id": self.attendance_id,
            "timestamp": self.timestamp.isoformat(),
            "active": self.active,
            "suspicious": self.suspicious,
            "pattern_type": self.pattern_type.value if self.pattern_type else None,
            "pattern_details": self.pattern_details,
            "confidence": self.confidence.value if self.confidence else None,
            "confidence_score": self.confidence_score,
            "duration_ms": self.duration_ms,
            "pattern_start_time": self.pattern_start_time.isoformat() if self.pattern_start_time else None,
            "ip_address": self.ip_address,
        }


@dataclass(frozen=True)
class SuspiciousHeartbeatRow:
    """Read-model joining a suspicious heartbeat with its attendance day."""

    employee_id: int
    employee_name: Optional[str]
    work_date: date
    heartbeat: ActivityHeartbeat


@dataclass
class SuspiciousActivitySummary:
    employee_id: int
    employee_name: Optional[str]
    work_date: date
    count: int = 0
    patterns: List[str] = field(default_factory=list)
    ip_addresses: List[str] = field(default_factory=list)
    total_duration_ms: int = 0
    highest_confidence: Optional[Confidence] = None
    highest_score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "work_date": self.work_date.isoformat(),
            "count": self.count,
            "patterns": list(self.patterns),
            "ip_addresses": list(self.ip_addresses),
            "total_duration_ms": self.total_duration_ms,
            "highest_confidence": self.highest_confidence.value if self.highest_confidence else None,
            "highest_score": self.highest_score,
        }
