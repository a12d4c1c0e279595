"""Pydantic data models for the tennis prediction engine."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

# Canonical factor set and its starting weights.
DEFAULT_WEIGHTS: dict[str, float] = {
    "ranking": 0.40,
    "surface_context": 0.25,
    "round_depth": 0.20,
    "tour_dynamics": 0.15,
}

MEMORY_VERSION = 2


# ==================== Feed Models ====================


class Player(BaseModel):
    """A player as seen by the scoring engine."""

    name: str
    ranking: int | None = None  # Lower is better; None when unranked
    country: str = ""
    surface_win_rates: dict[str, float] | None = None  # surface -> win rate
    season_wins: int | None = None
    season_losses: int | None = None

    model_config = {"frozen": True}


class SetScore(BaseModel):
    """Games won by each player in one set."""

    p1: int = 0
    p2: int = 0
    p1_tiebreak: int | None = None
    p2_tiebreak: int | None = None


class Match(BaseModel):
    """A match record from the live feed."""

    match_id: str
    tournament: str
    location: str = ""
    round: str = ""
    surface: str = "Hard"
    tour: Literal["ATP", "WTA"] = "ATP"
    start_time: str = ""
    state: Literal["pre", "in", "post"] = "pre"
    status_detail: str = ""
    player1: Player
    player2: Player
    sets: list[SetScore] = Field(default_factory=list)
    winner: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == "pre"

    @property
    def is_final(self) -> bool:
        return self.state == "post"

    def score_string(self) -> str:
        """Render set scores as "6-4, 7-6(5)" from player 1's side."""
        parts = []
        for s in self.sets:
            text = f"{s.p1}-{s.p2}"
            if s.p1_tiebreak is not None and s.p2_tiebreak is not None:
                text += f"({min(s.p1_tiebreak, s.p2_tiebreak)})"
            parts.append(text)
        return ", ".join(parts)


class TournamentGroup(BaseModel):
    """Matches of one tournament on one tour."""

    name: str
    location: str = ""
    tour: Literal["ATP", "WTA"]
    surface: str
    matches: list[Match] = Field(default_factory=list)


# ==================== Scoring Models ====================


class ScoringConfig(BaseModel):
    """Tunable constants for the scoring engine.

    The canonical set is the default: logistic scale 100, no amplification,
    probabilities clamped to [0.12, 0.88].
    """

    rank_scale: float = Field(default=100.0, gt=0)
    fallback_ranking: int = Field(default=999, gt=0)
    amplification: float = Field(default=1.0, ge=1.0, le=2.0)
    clamp_low: float = Field(default=0.12, ge=0.0, le=0.5)
    clamp_high: float = Field(default=0.88, ge=0.5, le=1.0)
    default_weights: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    h2h_dynamic_share: float = Field(default=0.6, ge=0.0, le=1.0)


class HeadToHead(BaseModel):
    """Meeting counts between two players, oriented to player 1."""

    p1_wins: int = Field(default=0, ge=0)
    p2_wins: int = Field(default=0, ge=0)

    @property
    def meetings(self) -> int:
        return self.p1_wins + self.p2_wins


class FactorEstimate(BaseModel):
    """One factor's independent estimate for a match."""

    probability: float  # Probability that player 1 wins
    p1: int
    p2: int
    label: str


class FactorPick(BaseModel):
    """Which player a factor favored."""

    favored: str


class Prediction(BaseModel):
    """Scoring engine output for one match."""

    player1: str
    player2: str
    favorite: str
    probability: float  # Final (clamped) probability for player 1
    p1_win_pct: int
    p2_win_pct: int
    confidence: int  # Favorite's win percentage
    factors: dict[str, FactorEstimate]
    calibrated_confidence: int | None = None

    @property
    def tier(self) -> Literal["LOCK", "STRONG", "LEAN"]:
        if self.confidence >= 68:
            return "LOCK"
        if self.confidence >= 58:
            return "STRONG"
        return "LEAN"

    def factor_picks(self) -> dict[str, FactorPick]:
        """Map each decisive factor to the player it favored.

        Factors that sit exactly at 50/50 carry no opinion and are left out.
        """
        picks = {}
        for name, estimate in self.factors.items():
            if estimate.p1 == estimate.p2:
                continue
            favored = self.player1 if estimate.p1 > estimate.p2 else self.player2
            picks[name] = FactorPick(favored=favored)
        return picks


# ==================== Memory Models ====================


class PredictionEntry(BaseModel):
    """One recorded forecast, pending until its outcome is known."""

    match_id: str
    date: datetime
    player1: str
    player2: str
    predicted_winner: str
    confidence: int = Field(ge=0, le=100)
    factors: dict[str, FactorPick] = Field(default_factory=dict)
    surface: str | None = None
    round: str | None = None
    tour: str | None = None
    result: str | None = None  # Score string once resolved
    actual_winner: str | None = None
    correct: bool | None = None

    @property
    def is_resolved(self) -> bool:
        return self.correct is not None


class FactorAccuracy(BaseModel):
    """Running tally of how often one factor picked the winner."""

    correct: int = 0
    total: int = 0
    accuracy: float = 0.0

    def record(self, hit: bool) -> None:
        self.total += 1
        if hit:
            self.correct += 1
        self.accuracy = percentage(self.correct, self.total)


class WindowStats(BaseModel):
    """Accuracy over a trailing slice of outcomes."""

    correct: int = 0
    total: int = 0
    accuracy: float = 0.0


class RollingWindow(BaseModel):
    """Bounded outcome history (1 = correct) and its trailing windows."""

    history: list[int] = Field(default_factory=list)
    last10: WindowStats = Field(default_factory=WindowStats)
    last20: WindowStats = Field(default_factory=WindowStats)
    last50: WindowStats = Field(default_factory=WindowStats)


class StreakState(BaseModel):
    """Signed current streak (positive = wins) and records."""

    current: int = 0
    longest_win: int = 0
    longest_loss: int = 0


class CalibrationBucket(BaseModel):
    """Observed win rate for one 5-point confidence band."""

    avg_confidence: float = 0.0
    win_rate: float = 0.0
    count: int = 0


class Calibration(BaseModel):
    buckets: dict[str, CalibrationBucket] = Field(default_factory=dict)
    last_calibrated: datetime | None = None


class UpsetLogEntry(BaseModel):
    """How often one upset condition actually produced an upset."""

    tag: str
    upsets: int = 0
    total: int = 0
    rate: float = 0.0


class H2HRecord(BaseModel):
    """Head-to-head tally; names are stored in lexicographic order."""

    player_a: str
    player_b: str
    wins_a: int = 0
    wins_b: int = 0
    last_meeting: date | None = None

    @property
    def meetings(self) -> int:
        return self.wins_a + self.wins_b


class Memory(BaseModel):
    """Aggregate root of everything the engine has learned."""

    predictions: list[PredictionEntry] = Field(default_factory=list)
    factor_accuracy: dict[str, FactorAccuracy] = Field(
        default_factory=lambda: {name: FactorAccuracy() for name in DEFAULT_WEIGHTS}
    )
    learned_weights: dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    patterns: list[str] = Field(default_factory=list)
    total_predictions: int = 0
    total_correct: int = 0
    accuracy: float = 0.0
    last_weight_update: datetime | None = None
    calibration: Calibration = Field(default_factory=Calibration)
    rolling_windows: RollingWindow = Field(default_factory=RollingWindow)
    streaks: StreakState = Field(default_factory=StreakState)
    upset_log: list[UpsetLogEntry] = Field(default_factory=list)
    h2h_results: dict[str, H2HRecord] = Field(default_factory=dict)
    version: int = MEMORY_VERSION

    def find(self, match_id: str) -> PredictionEntry | None:
        for entry in self.predictions:
            if entry.match_id == match_id:
                return entry
        return None

    def resolved(self) -> list[PredictionEntry]:
        return [p for p in self.predictions if p.is_resolved]

    def pending(self) -> list[PredictionEntry]:
        return [p for p in self.predictions if p.result is None]


# ==================== Learning Models ====================


class LearningConfig(BaseModel):
    """Thresholds and rates for the resolution and adaptation pipeline."""

    learning_rate: float = Field(default=0.1, gt=0)
    min_for_learning: int = 5
    min_for_patterns: int = 10
    min_for_upsets: int = 20
    min_for_calibration: int = 30
    rolling_cap: int = Field(default=50, gt=0)
    reliable_bucket_count: int = 3
    high_confidence: int = 70


class WeightShare(BaseModel):
    name: str
    pct: float


class LearningStats(BaseModel):
    """Read-only summary exported to the dashboard."""

    total_predictions: int
    total_resolved: int
    total_correct: int
    accuracy: float
    patterns: list[str]
    pattern_count: int
    weights: list[WeightShare]
    last_update: datetime | None = None
    rolling10: float = 0.0
    rolling20: float = 0.0
    rolling50: float = 0.0
    streak: int = 0
    longest_win: int = 0
    longest_loss: int = 0
    calibration_drift: float = 0.0
    upset_rate: float = 0.0
    h2h_pairs: int = 0
    version: int = MEMORY_VERSION


class RecordSummary(BaseModel):
    """Outcome of recording predictions for a batch of matches."""

    recorded: int = 0
    skipped: int = 0


class SweepSummary(BaseModel):
    """Outcome of resolving pending predictions against final results."""

    resolved: int = 0
    checked: int = 0


def percentage(part: int, whole: int) -> float:
    """Percentage rounded to one decimal, 0 when there is nothing to divide."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)
