"""Weight adjustment and pattern detection.

Weights drift toward factors that beat the overall hit rate:

    w_i <- w_i × (1 + (factor_accuracy_i - overall_accuracy) / 100 × learning_rate)

followed by renormalization so the vector sums to 1.
"""

from datetime import datetime

from src.data.models import LearningConfig, Memory, percentage
from src.learning.calibration import calibration_drift, reliable_buckets
from src.learning.upsets import UPSET_LABELS
from src.scoring.factors import factor_label

# Default configuration (module-level for convenience)
_DEFAULT_CONFIG = LearningConfig()

# Rolling accuracy gap (points) that counts as a trend
TREND_THRESHOLD = 3.0

# Calibration drift (points) still considered well calibrated
DRIFT_TOLERANCE = 2.0


def adjust_weights(
    memory: Memory,
    config: LearningConfig | None = None,
    now: datetime | None = None,
) -> dict[str, float]:
    """
    Nudge each weight by how its factor compares to overall accuracy.

    Factors without resolved samples keep their weight before
    renormalization.

    Args:
        memory: Memory to mutate
        config: Learning rate source
        now: Timestamp recorded as the last weight update

    Returns:
        The new weight vector
    """
    if config is None:
        config = _DEFAULT_CONFIG

    overall = memory.accuracy
    weights = dict(memory.learned_weights)

    for name, weight in weights.items():
        tally = memory.factor_accuracy.get(name)
        if tally is None or tally.total == 0:
            continue
        adjustment = 1 + ((tally.accuracy - overall) / 100.0) * config.learning_rate
        weights[name] = weight * adjustment

    total = sum(weights.values())
    if total > 0:
        weights = {name: value / total for name, value in weights.items()}

    memory.learned_weights = weights
    memory.last_weight_update = now or datetime.now()
    return weights


def detect_patterns(memory: Memory, config: LearningConfig | None = None) -> list[str]:
    """
    Summarize what the resolved history says, as display strings.

    The result replaces the previous pattern list entirely.
    """
    if config is None:
        config = _DEFAULT_CONFIG

    resolved = memory.resolved()
    patterns: list[str] = []

    # Higher-ranked player win rate
    ranked = [p for p in resolved if "ranking" in p.factors]
    if ranked:
        fav_wins = sum(1 for p in ranked if p.factors["ranking"].favored == p.actual_winner)
        patterns.append(
            f"Higher-ranked player wins {percentage(fav_wins, len(ranked))}% "
            f"of the time ({fav_wins}/{len(ranked)})"
        )

    # High confidence hit rate
    high = [p for p in resolved if p.confidence > config.high_confidence]
    if high:
        hits = sum(1 for p in high if p.correct)
        patterns.append(
            f"High-confidence picks (>{config.high_confidence}%) hit "
            f"{percentage(hits, len(high))}% ({hits}/{len(high)})"
        )

    # Best and worst factor
    tallied = sorted(
        ((name, tally) for name, tally in memory.factor_accuracy.items() if tally.total > 0),
        key=lambda item: item[1].accuracy,
        reverse=True,
    )
    if tallied:
        name, tally = tallied[0]
        patterns.append(f"Most reliable factor: {factor_label(name)} ({tally.accuracy}% accurate)")
    if len(tallied) > 1 and tallied[-1][1].accuracy < tallied[0][1].accuracy:
        name, tally = tallied[-1]
        patterns.append(f"Least reliable factor: {factor_label(name)} ({tally.accuracy}% accurate)")

    # Calibration
    if reliable_buckets(memory.calibration, config.reliable_bucket_count):
        drift = calibration_drift(memory.calibration, config.reliable_bucket_count)
        if abs(drift) < DRIFT_TOLERANCE:
            patterns.append(f"Well-calibrated: confidence within {abs(drift)}% of results")
        elif drift > 0:
            patterns.append(f"Over-confident by {drift}%: picks win less often than stated")
        else:
            patterns.append(f"Under-confident by {abs(drift)}%: picks win more often than stated")

    # Rolling trend
    windows = memory.rolling_windows
    if windows.last20.total >= 20:
        recent, longer = windows.last10.accuracy, windows.last20.accuracy
        if recent > longer + TREND_THRESHOLD:
            patterns.append(f"Trending up: {recent}% over the last 10 vs {longer}% over 20")
        elif recent < longer - TREND_THRESHOLD:
            patterns.append(f"Trending down: {recent}% over the last 10 vs {longer}% over 20")
        else:
            patterns.append(f"Holding steady at {recent}% over the last 10")

    # Streak
    streak = memory.streaks
    if streak.current > 0:
        patterns.append(f"On a {streak.current}-match win streak (best {streak.longest_win})")
    elif streak.current < 0:
        patterns.append(f"On a {-streak.current}-match losing streak (worst {streak.longest_loss})")

    # Upsets
    observed = [u for u in memory.upset_log if u.total > 0]
    if observed:
        top = max(observed, key=lambda u: u.rate)
        label = UPSET_LABELS.get(top.tag, top.tag)
        patterns.append(f"{label}: {round(top.rate * 100, 1)}% of {top.total} cases")

    # Head-to-head coverage
    if memory.h2h_results:
        rematches = sum(1 for r in memory.h2h_results.values() if r.meetings >= 2)
        patterns.append(
            f"Tracking head-to-head for {len(memory.h2h_results)} player pairs "
            f"({rematches} rematches)"
        )

    return patterns
