"""Versioned shape of the persisted prediction memory.

Version 1 blobs carry only predictions, factor accuracy, weights and
patterns (with camelCase keys). Version 2 adds calibration, rolling
windows, streaks, the upset log and head-to-head records. Upgrading
happens once, on load, so the rest of the code only sees version 2.
"""

import json

from src.data.models import (
    DEFAULT_WEIGHTS,
    MEMORY_VERSION,
    Calibration,
    FactorAccuracy,
    Memory,
    RollingWindow,
    StreakState,
)
from src.scoring.factors import FACTORS

_MEMORY_KEYS = {
    "factorAccuracy": "factor_accuracy",
    "learnedWeights": "learned_weights",
    "totalPredictions": "total_predictions",
    "totalCorrect": "total_correct",
    "lastWeightUpdate": "last_weight_update",
    "rollingWindows": "rolling_windows",
    "upsetLog": "upset_log",
    "h2hResults": "h2h_results",
}

_ENTRY_KEYS = {
    "matchId": "match_id",
    "predictedWinner": "predicted_winner",
    "actualWinner": "actual_winner",
}

_STREAK_KEYS = {
    "longestWin": "longest_win",
    "longestLoss": "longest_loss",
}

_CALIBRATION_KEYS = {"lastCalibrated": "last_calibrated"}

_BUCKET_KEYS = {
    "avgConfidence": "avg_confidence",
    "winRate": "win_rate",
}

_H2H_KEYS = {
    "playerA": "player_a",
    "playerB": "player_b",
    "winsA": "wins_a",
    "winsB": "wins_b",
    "lastMeeting": "last_meeting",
}

# Substructures introduced in version 2, with their empty defaults.
_V2_DEFAULTS = {
    "calibration": lambda: Calibration().model_dump(),
    "rolling_windows": lambda: RollingWindow().model_dump(),
    "streaks": lambda: StreakState().model_dump(),
    "upset_log": list,
    "h2h_results": dict,
    "patterns": list,
    "predictions": list,
}


def empty_memory(weights: dict[str, float] | None = None) -> Memory:
    """
    Build a freshly-initialized Memory.

    Args:
        weights: Starting weight vector (canonical defaults if None)

    Returns:
        Memory with zeroed counters and one accuracy tally per factor
    """
    start = dict(weights or DEFAULT_WEIGHTS)
    return Memory(
        learned_weights=start,
        factor_accuracy={name: FactorAccuracy() for name in start},
    )


def _rename(data: dict, mapping: dict[str, str]) -> dict:
    return {mapping.get(key, key): value for key, value in data.items()}


def _rename_each(items, mapping: dict[str, str]) -> list:
    return [_rename(item, mapping) for item in items or [] if isinstance(item, dict)]


def upgrade_memory(raw: dict, default_weights: dict[str, float] | None = None) -> dict:
    """
    Bring a stored memory blob up to the current version.

    Renames legacy camelCase keys, backfills missing version 2
    substructures with empty defaults, replaces weight vectors that
    name retired factors, and ensures a tally exists for every weight.

    Args:
        raw: Decoded JSON object of any supported version
        default_weights: Replacement for missing or retired weight vectors
            (canonical defaults if None)

    Returns:
        Dict that validates as a current Memory
    """
    data = _rename(raw, _MEMORY_KEYS)

    for key, factory in _V2_DEFAULTS.items():
        if data.get(key) is None:
            data[key] = factory()

    data["predictions"] = _rename_each(data["predictions"], _ENTRY_KEYS)
    data["streaks"] = _rename(data["streaks"], _STREAK_KEYS)
    data["upset_log"] = [u for u in data["upset_log"] if isinstance(u, dict) and "tag" in u]

    calibration = _rename(data["calibration"], _CALIBRATION_KEYS)
    calibration["buckets"] = {
        band: _rename(bucket, _BUCKET_KEYS)
        for band, bucket in (calibration.get("buckets") or {}).items()
    }
    data["calibration"] = calibration

    data["h2h_results"] = {
        key: _rename(record, _H2H_KEYS)
        for key, record in data["h2h_results"].items()
        if isinstance(record, dict)
    }

    weights = data.get("learned_weights") or {}
    if not weights or any(name not in FACTORS for name in weights):
        weights = dict(default_weights or DEFAULT_WEIGHTS)
    data["learned_weights"] = weights

    accuracy = dict(data.get("factor_accuracy") or {})
    for name in weights:
        accuracy.setdefault(name, FactorAccuracy().model_dump())
    data["factor_accuracy"] = accuracy

    data["version"] = MEMORY_VERSION
    return data


def parse_memory(blob: str, default_weights: dict[str, float] | None = None) -> Memory | None:
    """
    Decode, upgrade and validate a stored blob.

    Deeply nested JSON that exhausts the decoder counts as corrupt.

    Returns:
        Memory, or None when the blob is corrupt or not a memory object
    """
    try:
        raw = json.loads(blob)
    except (ValueError, RecursionError):
        return None
    if not isinstance(raw, dict):
        return None
    try:
        return Memory.model_validate(upgrade_memory(raw, default_weights))
    except (ValueError, TypeError, AttributeError, RecursionError):
        return None
