"""Statistical separation of human input from mechanically generated input.

Real people are imprecise: the time between two key presses or the distance of
two mouse moves varies by tens of milliseconds / pixels even when they try to
be regular. Jigglers, auto-typers and macros are exact. Every rule here looks
for that exactness over the most recent fixed-size window of samples.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Hashable, Optional, Sequence

from ..core.enums import Confidence, PatternType
from .model import ClickSample, KeySample, PatternResult, PointerSample


@dataclass(frozen=True)
class ClassifierSettings:
    min_pointer_samples: int = 15
    min_key_samples: int = 12
    min_click_samples: int = 12
    # Bots keep timing jitter under this many ms.
    bot_timing_tolerance_ms: float = 20.0
    max_jiggler_distance_jitter: float = 2.0
    max_jiggler_interval_jitter: float = 15.0
    direction_tolerance_rad: float = 0.3
    min_oscillation_count: int = 12
    linear_direction_ratio: float = 0.7
    max_auto_typing_interval_ms: float = 300.0


def jitter(values: Sequence[float]) -> float:
    """Population standard deviation; infinite when there is nothing to compare."""
    if len(values) < 2:
        return math.inf
    return statistics.pstdev(values)


def confidence_for(match_ratio: float, strength: float) -> tuple[Confidence, int]:
    """Blend how much of the window matched with how clean the pattern is."""
    score = int(round((match_ratio * 0.6 + strength * 0.4) * 100))
    score = max(0, min(100, score))
    if score >= 85:
        return Confidence.HIGH, score
    if score >= 65:
        return Confidence.MEDIUM, score
    return Confidence.LOW, score


def _result(pattern: PatternType, details: str, match_ratio: float, strength: float) -> PatternResult:
    confidence, score = confidence_for(match_ratio, strength)
    return PatternResult(type=pattern, details=details, confidence=confidence, confidence_score=score)


def _intervals(timestamps: Sequence[float]) -> list[float]:
    return [b - a for a, b in zip(timestamps, timestamps[1:])]


def _strictly_alternating(symbols: Sequence[Hashable]) -> bool:
    if len(set(symbols)) != 2:
        return False
    return all(symbols[i] != symbols[i - 1] for i in range(1, len(symbols)))


def _reversed(prev: float, curr: float) -> bool:
    return (prev > 0 > curr) or (prev < 0 < curr)


def _circular_mean(angles: Sequence[float]) -> float:
    # plain averaging breaks for headings near +pi and -pi
    return math.atan2(sum(math.sin(a) for a in angles), sum(math.cos(a) for a in angles))


def _angle_between(a: float, b: float) -> float:
    """Signed difference of two headings, wrapped into [-pi, pi]."""
    return math.atan2(math.sin(a - b), math.cos(a - b))


def _typing_strength(avg_interval: float) -> float:
    if avg_interval < 100:
        return 0.95
    if avg_interval < 200:
        return 0.85
    return 0.7


class ActivitySignalClassifier:
    """Pure detectors over recent event windows. No state of its own."""

    def __init__(self, settings: ClassifierSettings | None = None):
        self.settings = settings or ClassifierSettings()

    def detect_pointer_pattern(self, samples: Sequence[PointerSample]) -> Optional[PatternResult]:
        s = self.settings
        if len(samples) < s.min_pointer_samples:
            return None
        recent = list(samples)[-s.min_pointer_samples:]

        positions = {(p.x, p.y) for p in recent}
        if len(positions) <= 2:
            first = recent[0]
            return _result(
                PatternType.STATIC_POINTER,
                f"Pointer stuck at ({first.x:g}, {first.y:g}) across {len(recent)} samples",
                1.0,
                0.9,
            )

        moves = [
            (b.x - a.x, b.y - a.y, math.hypot(b.x - a.x, b.y - a.y), b.timestamp_ms - a.timestamp_ms)
            for a, b in zip(recent, recent[1:])
        ]
        distances = [m[2] for m in moves]
        interval_jitter = jitter([m[3] for m in moves])
        distance_jitter = jitter(distances)

        oscillation_distances = [
            curr[2]
            for prev, curr in zip(moves, moves[1:])
            if _reversed(prev[0], curr[0]) or _reversed(prev[1], curr[1])
        ]
        reversals = len(oscillation_distances)
        oscillation_jitter = jitter(oscillation_distances)
        if (
            reversals >= s.min_oscillation_count
            and oscillation_jitter < s.max_jiggler_distance_jitter
            and interval_jitter < s.max_jiggler_interval_jitter
        ):
            return _result(
                PatternType.OSCILLATING_POINTER,
                f"Pointer oscillating with {reversals} reversals, distance jitter {oscillation_jitter:.1f}px, "
                f"timing jitter {interval_jitter:.1f}ms",
                reversals / (len(moves) - 1),
                0.9,
            )

        if distance_jitter < s.max_jiggler_distance_jitter and interval_jitter < s.max_jiggler_interval_jitter:
            directions = [math.atan2(dy, dx) for dx, dy, _, _ in moves]
            mean_direction = _circular_mean(directions)
            aligned = sum(
                1 for d in directions if abs(_angle_between(d, mean_direction)) < s.direction_tolerance_rad
            )
            if aligned >= len(moves) * s.linear_direction_ratio:
                return _result(
                    PatternType.LINEAR_POINTER,
                    f"Pointer moving at {round(math.degrees(mean_direction))} deg with distance jitter "
                    f"{distance_jitter:.1f}px, timing jitter {interval_jitter:.1f}ms",
                    aligned / len(moves),
                    0.85,
                )

        return None

    def detect_key_pattern(self, samples: Sequence[KeySample]) -> Optional[PatternResult]:
        s = self.settings
        if len(samples) < s.min_key_samples:
            return None
        recent = list(samples)[-s.min_key_samples:]
        keys = [k.key for k in recent]

        if len(set(keys)) == 1:
            return _result(
                PatternType.REPETITIVE_KEY,
                f'Same key "{keys[0]}" pressed {len(keys)} times consecutively',
                1.0,
                0.9,
            )

        intervals = _intervals([k.timestamp_ms for k in recent])
        interval_jitter = jitter(intervals)
        avg_interval = sum(intervals) / len(intervals)

        if interval_jitter < s.bot_timing_tolerance_ms and avg_interval < s.max_auto_typing_interval_ms:
            return _result(
                PatternType.REGULAR_INTERVAL_KEYS,
                f"Keys pressed every {round(avg_interval)}ms (jitter {interval_jitter:.1f}ms)",
                1 - interval_jitter / 100,
                _typing_strength(avg_interval),
            )

        if interval_jitter < s.bot_timing_tolerance_ms * 2 and _strictly_alternating(keys):
            first, second = keys[0], keys[1]
            return _result(
                PatternType.ALTERNATING_KEYS,
                f'Keys "{first}" and "{second}" alternating with {interval_jitter:.1f}ms jitter',
                1.0,
                0.85,
            )

        return None

    def detect_click_pattern(self, samples: Sequence[ClickSample]) -> Optional[PatternResult]:
        """Same rules as keys, with the click position as the symbol.

        Auto-clickers are often slow, so the regular-interval rule has no
        upper bound on the mean interval.
        """
        s = self.settings
        if len(samples) < s.min_click_samples:
            return None
        recent = list(samples)[-s.min_click_samples:]
        positions = [c.position for c in recent]

        if len(set(positions)) == 1:
            x, y = positions[0]
            return _result(
                PatternType.STATIC_CLICK,
                f"{len(positions)} clicks at the same position ({x:g}, {y:g})",
                1.0,
                0.9,
            )

        intervals = _intervals([c.timestamp_ms for c in recent])
        interval_jitter = jitter(intervals)
        avg_interval = sum(intervals) / len(intervals)

        if interval_jitter < s.bot_timing_tolerance_ms:
            return _result(
                PatternType.REGULAR_INTERVAL_CLICKS,
                f"Clicks every {round(avg_interval)}ms (jitter {interval_jitter:.1f}ms)",
                1 - interval_jitter / 100,
                _typing_strength(avg_interval),
            )

        if interval_jitter < s.bot_timing_tolerance_ms * 2 and _strictly_alternating(positions):
            return _result(
                PatternType.ALTERNATING_CLICKS,
                f"Clicks alternating between {positions[0]} and {positions[1]} with {interval_jitter:.1f}ms jitter",
                1.0,
                0.85,
            )

        return None
