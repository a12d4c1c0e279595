"""Recording predictions and applying outcomes to the memory.

These functions mutate a Memory value in place and never touch
storage; `LearningEngine` wraps them in a load/mutate/save cycle.
"""

from datetime import datetime

import structlog

from src.data.models import LearningConfig, Memory, Prediction, PredictionEntry
from src.learning.adaptation import adjust_weights, detect_patterns
from src.learning.calibration import build_calibration
from src.learning.tracking import (
    update_factor_accuracy,
    update_rolling_window,
    update_streak,
    update_totals,
)
from src.learning.upsets import log_upsets, update_h2h

logger = structlog.get_logger()

# Default configuration (module-level for convenience)
_DEFAULT_CONFIG = LearningConfig()


def record_prediction(
    memory: Memory,
    match_id: str,
    prediction: Prediction,
    *,
    surface: str | None = None,
    round: str | None = None,
    tour: str | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Add a pending entry for a match.

    Args:
        memory: Memory to mutate
        match_id: Feed identifier, unique per entry
        prediction: Scoring engine output for the match
        surface: Court surface, kept for reporting
        round: Round name
        tour: ATP or WTA
        now: Creation timestamp

    Returns:
        False if the match already has an entry
    """
    if memory.find(match_id) is not None:
        return False

    memory.predictions.append(
        PredictionEntry(
            match_id=match_id,
            date=now or datetime.now(),
            player1=prediction.player1,
            player2=prediction.player2,
            predicted_winner=prediction.favorite,
            confidence=prediction.confidence,
            factors=prediction.factor_picks(),
            surface=surface,
            round=round,
            tour=tour,
        )
    )
    memory.total_predictions = len(memory.predictions)
    return True


def apply_resolution(
    memory: Memory,
    match_id: str,
    actual_winner: str,
    score: str,
    config: LearningConfig | None = None,
    now: datetime | None = None,
) -> bool:
    """
    Apply a real-world outcome to every derived statistic.

    Steps, in order: mark the entry resolved, factor accuracy, global
    totals, rolling window, streaks, calibration (30+ resolved),
    upset log (20+), head-to-head, weight adjustment (5+) and pattern
    detection (10+).

    Args:
        memory: Memory to mutate
        match_id: Entry to resolve
        actual_winner: Name of the player who won
        score: Score string
        config: Thresholds and learning rate
        now: Timestamp for weight and calibration updates

    Returns:
        False when there is no pending entry for match_id
    """
    if config is None:
        config = _DEFAULT_CONFIG
    now = now or datetime.now()

    entry = next(
        (p for p in memory.predictions if p.match_id == match_id and p.result is None),
        None,
    )
    if entry is None:
        return False

    entry.result = score
    entry.actual_winner = actual_winner
    entry.correct = entry.predicted_winner == actual_winner

    update_factor_accuracy(memory, entry)
    update_totals(memory)
    update_rolling_window(memory.rolling_windows, entry.correct, config.rolling_cap)
    update_streak(memory.streaks, entry.correct)

    resolved_count = len(memory.resolved())

    if resolved_count >= config.min_for_calibration:
        memory.calibration = build_calibration(memory.resolved(), now)

    if resolved_count >= config.min_for_upsets:
        log_upsets(memory, entry, config.high_confidence)

    update_h2h(memory, entry, now.date())

    if resolved_count >= config.min_for_learning:
        adjust_weights(memory, config, now)

    if resolved_count >= config.min_for_patterns:
        memory.patterns = detect_patterns(memory, config)

    logger.info(
        "prediction_resolved",
        match_id=match_id,
        correct=entry.correct,
        resolved=resolved_count,
        accuracy=memory.accuracy,
    )
    return True
