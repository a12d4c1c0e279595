"""Resolution and adaptation pipeline for the prediction memory."""

from src.learning.adaptation import adjust_weights, detect_patterns
from src.learning.calibration import (
    bucket_key,
    build_calibration,
    calibrated_confidence,
    calibration_drift,
)
from src.learning.engine import LearningEngine
from src.learning.resolution import apply_resolution, record_prediction
from src.learning.stats import build_stats
from src.learning.upsets import head_to_head_for, log_upsets, pair_key, update_h2h

__all__ = [
    # Engine
    "LearningEngine",
    # Pipeline
    "apply_resolution",
    "record_prediction",
    "adjust_weights",
    "detect_patterns",
    "build_stats",
    # Calibration
    "bucket_key",
    "build_calibration",
    "calibrated_confidence",
    "calibration_drift",
    # Upsets and head-to-head
    "head_to_head_for",
    "log_upsets",
    "pair_key",
    "update_h2h",
]
