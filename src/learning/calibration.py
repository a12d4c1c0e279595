"""Confidence calibration: does "70% confident" win 70% of the time?

Resolved predictions are bucketed by stated confidence into 5-point
bands between 50 and 95. A bucket only counts once it holds a few
samples.
"""

import math
from datetime import datetime

from src.data.models import (
    Calibration,
    CalibrationBucket,
    PredictionEntry,
    percentage,
)


def bucket_key(confidence: float) -> str:
    """
    Band label for a confidence value.

    Confidence is floored to a multiple of 5 and clamped to [50, 95],
    so 72 -> "70-75" and 97 -> "95-100".
    """
    lower = int(math.floor(confidence / 5) * 5)
    lower = min(95, max(50, lower))
    return f"{lower}-{lower + 5}"


def build_calibration(
    resolved: list[PredictionEntry],
    now: datetime | None = None,
) -> Calibration:
    """
    Rebuild every bucket from scratch.

    Args:
        resolved: All resolved prediction entries
        now: Timestamp recorded as the calibration time

    Returns:
        Calibration with mean stated confidence and actual win rate per band
    """
    grouped: dict[str, list[PredictionEntry]] = {}
    for entry in resolved:
        grouped.setdefault(bucket_key(entry.confidence), []).append(entry)

    buckets = {}
    for key in sorted(grouped):
        entries = grouped[key]
        wins = sum(1 for e in entries if e.correct)
        buckets[key] = CalibrationBucket(
            avg_confidence=round(sum(e.confidence for e in entries) / len(entries), 1),
            win_rate=percentage(wins, len(entries)),
            count=len(entries),
        )

    return Calibration(buckets=buckets, last_calibrated=now or datetime.now())


def reliable_buckets(calibration: Calibration, min_count: int = 3) -> dict[str, CalibrationBucket]:
    return {k: b for k, b in calibration.buckets.items() if b.count >= min_count}


def calibration_drift(calibration: Calibration, min_count: int = 3) -> float:
    """
    Sample-weighted gap between stated confidence and actual win rate.

    Positive means over-confident, negative under-confident.
    """
    buckets = reliable_buckets(calibration, min_count).values()
    samples = sum(b.count for b in buckets)
    if samples == 0:
        return 0.0
    gap = sum((b.avg_confidence - b.win_rate) * b.count for b in buckets)
    return round(gap / samples, 1)


def calibrated_confidence(
    calibration: Calibration,
    confidence: int,
    min_count: int = 3,
) -> int:
    """Blend stated confidence 50/50 with its band's observed win rate."""
    bucket = calibration.buckets.get(bucket_key(confidence))
    if bucket is None or bucket.count < min_count:
        return confidence
    return int(math.floor((confidence + bucket.win_rate) / 2 + 0.5))
