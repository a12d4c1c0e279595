"""Independent win-probability factors for a tennis match.

Every factor returns the probability that player 1 wins, in [0, 1]:
- Ranking: logistic curve on the ranking gap
- Surface context: surface records, or the surface's upset tendency
- Round depth: later rounds are harder to call
- Tour dynamics: WTA upsets more often than ATP
- Head-to-head: previous meetings between the two players
- Form: season win rates

Surface, round and tour tendencies describe how often the *favorite*
wins, so they are applied toward the better-ranked player and are
exactly 0.5 when rankings are equal.
"""

from collections.abc import Callable
from dataclasses import dataclass

from src.data.models import HeadToHead, Player, ScoringConfig

# Adjustment from 0.5 for the ranking favorite, by surface.
SURFACE_ADJUSTMENTS = {
    "clay": -0.06,
    "grass": 0.03,
}

# Probability the ranking favorite wins, by round. Checked in order for
# substring matches, so longer names come before their prefixes.
ROUND_DEPTH = {
    "round of 128": 0.60,
    "round of 64": 0.58,
    "round of 32": 0.56,
    "round of 16": 0.54,
    "1st round": 0.58,
    "2nd round": 0.56,
    "3rd round": 0.54,
    "4th round": 0.52,
    "quarterfinals": 0.48,
    "quarterfinal": 0.48,
    "semifinals": 0.45,
    "semifinal": 0.45,
    "final": 0.42,
}
DEFAULT_ROUND_DEPTH = 0.55

TOUR_ADJUSTMENTS = {
    "WTA": -0.04,
}

FACTOR_LABELS = {
    "ranking": "Rankings",
    "surface_context": "Surface",
    "round_depth": "Round Depth",
    "tour_dynamics": "Tour",
    "h2h": "Head-to-Head",
    "form": "Form",
    "surface": "Surface",
    "fatigue": "Fatigue",
}


def factor_label(name: str) -> str:
    """Human-readable name for a factor."""
    if name in FACTOR_LABELS:
        return FACTOR_LABELS[name]
    return name[:1].upper() + name[1:].replace("_", " ")


def effective_ranking(player: Player, fallback: int = 999) -> int:
    """Player's ranking, or the fallback when missing or invalid."""
    if player.ranking is None or player.ranking <= 0:
        return fallback
    return player.ranking


def ranking_probability(rank1: int, rank2: int, scale: float = 100.0) -> float:
    """
    Elo-style probability that player 1 wins from rankings alone.

    P = 1 / (1 + 10^(-(rank2 - rank1) / scale))

    Args:
        rank1: Player 1 ranking (lower is better)
        rank2: Player 2 ranking
        scale: Ranking gap that multiplies the odds by 10

    Returns:
        Probability in (0, 1); 0.5 for equal rankings
    """
    return 1 / (1 + 10 ** (-(rank2 - rank1) / scale))


def favorite_direction(rank1: int, rank2: int) -> int:
    """+1 if player 1 is the ranking favorite, -1 if player 2, 0 if level."""
    if rank1 < rank2:
        return 1
    if rank1 > rank2:
        return -1
    return 0


def toward_favorite(favorite_probability: float, direction: int) -> float:
    """Convert a favorite-wins probability into a player 1 probability."""
    if direction > 0:
        return favorite_probability
    if direction < 0:
        return 1 - favorite_probability
    return 0.5


def surface_adjustment(surface: str) -> float:
    """Shift from 0.5 for the favorite on this surface; hard is neutral."""
    return SURFACE_ADJUSTMENTS.get((surface or "").strip().lower(), 0.0)


def surface_probability(
    player1: Player,
    player2: Player,
    surface: str,
    direction: int,
) -> float:
    """
    Surface factor.

    Uses both players' win rates on the surface when available,
    otherwise the surface's general upset tendency.
    """
    key = (surface or "").strip().lower()
    rates1 = player1.surface_win_rates or {}
    rates2 = player2.surface_win_rates or {}
    rate1 = rates1.get(key)
    rate2 = rates2.get(key)
    if rate1 and rate2:
        return rate1 / (rate1 + rate2)

    return toward_favorite(0.5 + surface_adjustment(surface), direction)


def round_depth(round_name: str) -> float:
    """Probability the favorite wins in this round; unknown rounds get 0.55."""
    if not round_name:
        return DEFAULT_ROUND_DEPTH
    lower = round_name.strip().lower()
    if lower in ROUND_DEPTH:
        return ROUND_DEPTH[lower]
    for key, value in ROUND_DEPTH.items():
        if key in lower:
            return value
    return DEFAULT_ROUND_DEPTH


def round_depth_probability(round_name: str, direction: int) -> float:
    return toward_favorite(round_depth(round_name), direction)


def tour_adjustment(tour: str) -> float:
    """Shift from 0.5 for the favorite on this tour; ATP is the baseline."""
    return TOUR_ADJUSTMENTS.get((tour or "").strip().upper(), 0.0)


def tour_probability(tour: str, direction: int) -> float:
    return toward_favorite(0.5 + tour_adjustment(tour), direction)


def h2h_probability(
    dynamic: HeadToHead | None,
    static: HeadToHead | None,
    dynamic_share: float = 0.6,
) -> float:
    """
    Head-to-head factor.

    Blends the learned record (dynamic) with a reference dataset (static)
    when both have meetings; 0.5 when neither does.
    """
    dynamic_ratio = None
    static_ratio = None
    if dynamic is not None and dynamic.meetings > 0:
        dynamic_ratio = dynamic.p1_wins / dynamic.meetings
    if static is not None and static.meetings > 0:
        static_ratio = static.p1_wins / static.meetings

    if dynamic_ratio is not None and static_ratio is not None:
        return dynamic_ratio * dynamic_share + static_ratio * (1 - dynamic_share)
    if dynamic_ratio is not None:
        return dynamic_ratio
    if static_ratio is not None:
        return static_ratio
    return 0.5


def _win_rate(player: Player) -> float | None:
    wins = player.season_wins or 0
    losses = player.season_losses or 0
    if wins + losses == 0:
        return None
    return wins / (wins + losses)


def form_probability(player1: Player, player2: Player) -> float:
    """Season win rate of player 1 normalized against player 2's."""
    rate1 = _win_rate(player1)
    rate2 = _win_rate(player2)
    if rate1 is None or rate2 is None or rate1 + rate2 == 0:
        return 0.5
    return rate1 / (rate1 + rate2)


# ==================== Factor Registry ====================


@dataclass
class FactorContext:
    """Everything a factor may look at for one match."""

    player1: Player
    player2: Player
    rank1: int
    rank2: int
    surface: str
    round: str
    tour: str
    config: ScoringConfig
    head_to_head: HeadToHead | None = None
    static_head_to_head: HeadToHead | None = None

    @property
    def direction(self) -> int:
        return favorite_direction(self.rank1, self.rank2)


FactorFn = Callable[[FactorContext], tuple[float, str]]


def _ranking(ctx: FactorContext) -> tuple[float, str]:
    return ranking_probability(ctx.rank1, ctx.rank2, ctx.config.rank_scale), "Ranking"


def _surface_context(ctx: FactorContext) -> tuple[float, str]:
    label = f"{ctx.surface} Surface" if ctx.surface else "Surface"
    return surface_probability(ctx.player1, ctx.player2, ctx.surface, ctx.direction), label


def _round_depth(ctx: FactorContext) -> tuple[float, str]:
    return round_depth_probability(ctx.round, ctx.direction), "Round Depth"


def _tour_dynamics(ctx: FactorContext) -> tuple[float, str]:
    label = f"{ctx.tour} Tour" if ctx.tour else "Tour"
    return tour_probability(ctx.tour, ctx.direction), label


def _h2h(ctx: FactorContext) -> tuple[float, str]:
    probability = h2h_probability(
        ctx.head_to_head,
        ctx.static_head_to_head,
        ctx.config.h2h_dynamic_share,
    )
    return probability, "Head-to-Head"


def _form(ctx: FactorContext) -> tuple[float, str]:
    return form_probability(ctx.player1, ctx.player2), "Form"


FACTORS: dict[str, FactorFn] = {
    "ranking": _ranking,
    "surface_context": _surface_context,
    "round_depth": _round_depth,
    "tour_dynamics": _tour_dynamics,
    "h2h": _h2h,
    "form": _form,
}
