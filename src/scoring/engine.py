"""Scoring engine: combine factor estimates into a match prediction.

Prediction = clamp(0.5 + (Σ factor_i × weight_i - 0.5) × amplification)

The weight vector decides which factors are active. Confidence is the
favorite's win percentage, |p1% - 50| + 50, everywhere in the system.
"""

import math

import structlog

from src.data.models import (
    FactorEstimate,
    HeadToHead,
    Match,
    Player,
    Prediction,
    ScoringConfig,
)
from src.data.profiles import DECISIVE
from src.scoring.factors import FACTORS, FactorContext, effective_ranking

logger = structlog.get_logger()

# Default configuration (module-level for convenience)
_DEFAULT_CONFIG = ScoringConfig()


def to_percent(probability: float) -> int:
    """Round a probability to a whole percentage, halves rounding up."""
    return int(math.floor(probability * 100 + 0.5))


def resolve_weights(
    weights: dict[str, float] | None,
    config: ScoringConfig | None = None,
) -> dict[str, float]:
    """
    Validate a weight vector and normalize it to sum to 1.

    Falls back to the configured default weights when the vector is
    missing, names an unknown factor, or holds negative, non-finite or
    all-zero values.

    Args:
        weights: Factor name -> weight
        config: Scoring config providing the default weights

    Returns:
        Normalized weight vector over registered factors
    """
    if config is None:
        config = _DEFAULT_CONFIG

    if weights and _is_valid(weights):
        chosen = weights
    else:
        if weights:
            logger.warning("invalid_weights_fallback", weights=weights)
        chosen = config.default_weights

    total = sum(chosen.values())
    return {name: value / total for name, value in chosen.items()}


def _is_valid(weights: dict[str, float]) -> bool:
    for name, value in weights.items():
        if name not in FACTORS:
            return False
        if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            return False
    return sum(weights.values()) > 0


def predict(
    player1: Player,
    player2: Player,
    surface: str,
    round: str = "",
    tour: str = "ATP",
    weights: dict[str, float] | None = None,
    *,
    config: ScoringConfig | None = None,
    head_to_head: HeadToHead | None = None,
    static_head_to_head: HeadToHead | None = None,
) -> Prediction:
    """
    Predict a match between two players.

    Args:
        player1: First player (name + ranking)
        player2: Second player
        surface: Court surface (Hard, Clay, Grass, ...)
        round: Round name, matched case-insensitively
        tour: ATP or WTA
        weights: Learned weight vector (defaults when missing/invalid)
        config: Scoring constants
        head_to_head: Learned meetings, oriented to player 1
        static_head_to_head: Reference meetings, oriented to player 1

    Returns:
        Prediction with both win percentages, favorite, confidence
        and each factor's own estimate
    """
    if config is None:
        config = _DEFAULT_CONFIG

    active = resolve_weights(weights, config)
    context = FactorContext(
        player1=player1,
        player2=player2,
        rank1=effective_ranking(player1, config.fallback_ranking),
        rank2=effective_ranking(player2, config.fallback_ranking),
        surface=surface or "",
        round=round or "",
        tour=tour or "",
        config=config,
        head_to_head=head_to_head,
        static_head_to_head=static_head_to_head,
    )

    combined = 0.0
    estimates: dict[str, FactorEstimate] = {}
    for name, weight in active.items():
        probability, label = FACTORS[name](context)
        combined += probability * weight
        pct = to_percent(probability)
        estimates[name] = FactorEstimate(
            probability=probability,
            p1=pct,
            p2=100 - pct,
            label=label,
        )

    amplified = 0.5 + (combined - 0.5) * config.amplification
    final = min(config.clamp_high, max(config.clamp_low, amplified))

    p1_win_pct = to_percent(final)
    p2_win_pct = 100 - p1_win_pct
    favorite = player1.name if p1_win_pct >= p2_win_pct else player2.name

    return Prediction(
        player1=player1.name,
        player2=player2.name,
        favorite=favorite,
        probability=final,
        p1_win_pct=p1_win_pct,
        p2_win_pct=p2_win_pct,
        confidence=abs(p1_win_pct - 50) + 50,
        factors=estimates,
    )


def predict_match(
    match: Match,
    weights: dict[str, float] | None = None,
    *,
    config: ScoringConfig | None = None,
    head_to_head: HeadToHead | None = None,
) -> Prediction:
    """Convenience wrapper that reads players and context from a Match."""
    return predict(
        match.player1,
        match.player2,
        match.surface,
        match.round,
        match.tour,
        weights,
        config=config,
        head_to_head=head_to_head,
    )


def quick_prediction(player1: Player, player2: Player) -> Prediction:
    """Ranking-only scoreboard prediction with the decisive constants."""
    return predict(player1, player2, "", "", "", {"ranking": 1.0}, config=DECISIVE)


def lock_of_the_day(matches: list[Match]) -> tuple[Match, Prediction] | None:
    """
    Pick the most confident upcoming match.

    Args:
        matches: Feed matches in any state

    Returns:
        (match, quick prediction) for the highest-confidence pending
        match, or None when nothing is pending
    """
    best: tuple[Match, Prediction] | None = None
    for match in matches:
        if not match.is_pending:
            continue
        prediction = quick_prediction(match.player1, match.player2)
        if best is None or prediction.confidence > best[1].confidence:
            best = (match, prediction)
    return best
