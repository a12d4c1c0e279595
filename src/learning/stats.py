"""Read-only stats export for the dashboard."""

from src.data.models import LearningConfig, LearningStats, Memory, WeightShare
from src.learning.calibration import calibration_drift
from src.scoring.factors import factor_label


def build_stats(memory: Memory, config: LearningConfig | None = None) -> LearningStats:
    """
    Summarize a memory for display.

    Weights are reported as labelled percentages, heaviest first.
    Upset rate is how often the ranking favorite lost, as a percentage.
    """
    if config is None:
        config = LearningConfig()

    weights = [
        WeightShare(name=factor_label(name), pct=round(value * 100, 1))
        for name, value in sorted(
            memory.learned_weights.items(), key=lambda item: item[1], reverse=True
        )
    ]

    ranking_upsets = next((u for u in memory.upset_log if u.tag == "ranking_upset"), None)
    upset_rate = round(ranking_upsets.rate * 100, 1) if ranking_upsets else 0.0

    windows = memory.rolling_windows
    return LearningStats(
        total_predictions=memory.total_predictions,
        total_resolved=len(memory.resolved()),
        total_correct=memory.total_correct,
        accuracy=memory.accuracy,
        patterns=list(memory.patterns),
        pattern_count=len(memory.patterns),
        weights=weights,
        last_update=memory.last_weight_update,
        rolling10=windows.last10.accuracy,
        rolling20=windows.last20.accuracy,
        rolling50=windows.last50.accuracy,
        streak=memory.streaks.current,
        longest_win=memory.streaks.longest_win,
        longest_loss=memory.streaks.longest_loss,
        calibration_drift=calibration_drift(memory.calibration, config.reliable_bucket_count),
        upset_rate=upset_rate,
        h2h_pairs=len(memory.h2h_results),
        version=memory.version,
    )
