"""Running counters updated on every resolved prediction."""

from src.data.models import (
    FactorAccuracy,
    Memory,
    PredictionEntry,
    RollingWindow,
    StreakState,
    WindowStats,
    percentage,
)


def update_factor_accuracy(memory: Memory, entry: PredictionEntry) -> None:
    """Count a hit or miss for every factor recorded on the entry."""
    for name, pick in entry.factors.items():
        tally = memory.factor_accuracy.setdefault(name, FactorAccuracy())
        tally.record(pick.favored == entry.actual_winner)


def update_totals(memory: Memory) -> None:
    """Recompute correct count and overall accuracy over resolved entries."""
    resolved = memory.resolved()
    memory.total_correct = sum(1 for p in resolved if p.correct)
    memory.accuracy = percentage(memory.total_correct, len(resolved))


def window_stats(history: list[int], size: int) -> WindowStats:
    suffix = history[-size:]
    correct = sum(suffix)
    return WindowStats(
        correct=correct,
        total=len(suffix),
        accuracy=percentage(correct, len(suffix)),
    )


def update_rolling_window(window: RollingWindow, correct: bool, cap: int = 50) -> None:
    """
    Append an outcome and refresh the trailing windows.

    Args:
        window: Rolling window to mutate
        correct: Whether the prediction was right
        cap: Maximum outcomes kept in history
    """
    window.history.append(1 if correct else 0)
    window.history = window.history[-cap:]
    window.last10 = window_stats(window.history, 10)
    window.last20 = window_stats(window.history, 20)
    window.last50 = window_stats(window.history, 50)


def update_streak(streak: StreakState, correct: bool) -> None:
    """Extend the current streak, or restart it at ±1 when the sign flips."""
    if correct:
        streak.current = streak.current + 1 if streak.current > 0 else 1
        streak.longest_win = max(streak.longest_win, streak.current)
    else:
        streak.current = streak.current - 1 if streak.current < 0 else -1
        streak.longest_loss = max(streak.longest_loss, -streak.current)
