"""Learning engine: load, mutate and save the prediction memory.

The pure functions in this package operate on a `Memory` value. This
module is the thin adapter that wraps each operation in a
load -> mutate -> save cycle against a `MemoryStore`.
"""

from datetime import datetime

import structlog

from src.config import Settings
from src.data.models import (
    LearningConfig,
    LearningStats,
    Match,
    Memory,
    Prediction,
    RecordSummary,
    ScoringConfig,
    SweepSummary,
)
from src.data.names import normalize_name, normalized_pair_key
from src.data.profiles import get_profile
from src.learning.calibration import calibrated_confidence
from src.learning.resolution import apply_resolution, record_prediction
from src.learning.stats import build_stats
from src.learning.upsets import head_to_head_for
from src.memory.store import FileStore, MemoryStore, RedisStore
from src.scoring.engine import predict_match

logger = structlog.get_logger()


class LearningEngine:
    """Scores matches with learned weights and learns from their outcomes."""

    def __init__(
        self,
        store: MemoryStore,
        scoring: ScoringConfig | None = None,
        learning: LearningConfig | None = None,
    ):
        """
        Initialize the engine.

        Args:
            store: Memory persistence
            scoring: Scoring constants (canonical profile by default)
            learning: Learning thresholds and rate
        """
        self.store = store
        self.scoring = scoring or ScoringConfig()
        self.learning = learning or LearningConfig()

    @classmethod
    def from_settings(cls, settings: Settings) -> "LearningEngine":
        """
        Build an engine from deployment settings.

        Redis is the primary store when REDIS_URL is set; the local
        JSON file is always configured as the fallback.
        """
        primary = RedisStore.from_url(settings.redis_url) if settings.redis_url else None
        store = MemoryStore(primary, FileStore(settings.memory_file), key=settings.memory_key)
        return cls(store, scoring=get_profile(settings.scoring_profile))

    async def load(self) -> Memory:
        return await self.store.load(self.scoring.default_weights)

    async def weights(self) -> dict[str, float]:
        memory = await self.load()
        return memory.learned_weights

    def predict_match(self, match: Match, memory: Memory) -> Prediction:
        """
        Score a match with the learned weights and head-to-head record.

        When the memory holds a reliable calibration bucket for the
        stated confidence, a calibrated confidence is attached too.
        """
        prediction = predict_match(
            match,
            memory.learned_weights,
            config=self.scoring,
            head_to_head=head_to_head_for(memory, match.player1.name, match.player2.name),
        )
        if memory.calibration.buckets:
            prediction.calibrated_confidence = calibrated_confidence(
                memory.calibration,
                prediction.confidence,
                self.learning.reliable_bucket_count,
            )
        return prediction

    async def record_prediction(self, match: Match, prediction: Prediction | None = None) -> bool:
        """
        Record a single match prediction and persist it.

        Returns:
            False if the match already had an entry
        """
        memory = await self.load()
        if prediction is None:
            prediction = self.predict_match(match, memory)

        added = record_prediction(
            memory,
            match.match_id,
            prediction,
            surface=match.surface,
            round=match.round,
            tour=match.tour,
        )
        if added:
            await self.store.save(memory)
        return added

    async def record_pending(self, matches: list[Match]) -> RecordSummary:
        """
        Record predictions for every not-yet-started match.

        Started, finished and already-recorded matches are skipped. A
        match that fails to score is logged and skipped; it never
        aborts the batch.
        """
        memory = await self.load()
        summary = RecordSummary()
        now = datetime.now()

        for match in matches:
            if not match.is_pending:
                summary.skipped += 1
                continue
            try:
                prediction = self.predict_match(match, memory)
                added = record_prediction(
                    memory,
                    match.match_id,
                    prediction,
                    surface=match.surface,
                    round=match.round,
                    tour=match.tour,
                    now=now,
                )
            except Exception:
                logger.exception("record_failed", match_id=match.match_id)
                summary.skipped += 1
                continue

            if added:
                summary.recorded += 1
            else:
                summary.skipped += 1

        if summary.recorded:
            await self.store.save(memory)
        logger.info("predictions_recorded", recorded=summary.recorded, skipped=summary.skipped)
        return summary

    async def resolve(self, match_id: str, actual_winner: str, score: str) -> bool:
        """
        Apply a real-world result and persist the updated memory.

        Returns:
            False when no pending entry exists for match_id
        """
        memory = await self.load()
        if not apply_resolution(memory, match_id, actual_winner, score, self.learning):
            return False
        await self.store.save(memory)
        return True

    async def resolve_completed(self, matches: list[Match]) -> SweepSummary:
        """
        Resolve pending predictions from a batch of feed matches.

        Every match counts as checked. Finished matches are paired with
        pending entries by match id first, then by normalized player
        names, so feed spelling differences (accents, suffixes, case)
        still resolve.
        """
        memory = await self.load()
        summary = SweepSummary()

        pending = memory.pending()
        if not pending:
            return summary

        by_id = {p.match_id: p for p in pending}
        by_names = {normalized_pair_key(p.player1, p.player2): p for p in pending}

        for match in matches:
            summary.checked += 1
            if not match.is_final or not match.winner:
                continue

            entry = by_id.get(match.match_id) or by_names.get(
                normalized_pair_key(match.player1.name, match.player2.name)
            )
            if entry is None or entry.result is not None:
                continue

            # Credit the winner under the name the entry was recorded with
            winner = _recorded_name(match.winner, entry.player1, entry.player2)
            if winner is None:
                logger.warning(
                    "resolve_failed",
                    match_id=match.match_id,
                    winner=match.winner,
                    reason="winner matches neither player",
                )
                continue

            try:
                score = match.score_string() or "completed"
                if apply_resolution(memory, entry.match_id, winner, score, self.learning):
                    summary.resolved += 1
            except Exception:
                logger.exception("resolve_failed", match_id=match.match_id)

        if summary.resolved:
            await self.store.save(memory)
        logger.info("resolution_sweep", resolved=summary.resolved, checked=summary.checked)
        return summary

    async def stats(self) -> LearningStats:
        memory = await self.load()
        return build_stats(memory, self.learning)

    async def reset(self) -> bool:
        """Replace the stored memory with a fresh one."""
        return await self.store.reset(self.scoring.default_weights)

    async def close(self) -> None:
        await self.store.close()


def _recorded_name(winner: str, player1: str, player2: str) -> str | None:
    key = normalize_name(winner)
    if key == normalize_name(player1):
        return player1
    if key == normalize_name(player2):
        return player2
    return None
