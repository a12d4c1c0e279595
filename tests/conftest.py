"""Shared pytest fixtures for tennis prediction tests."""

from datetime import datetime

import pytest


@pytest.fixture
def top_player():
    """World number one."""
    from src.data.models import Player

    return Player(name="Jannik Sinner", ranking=1, country="ITA")


@pytest.fixture
def ranked_50_player():
    """Mid-ranked opponent."""
    from src.data.models import Player

    return Player(name="Tomas Machac", ranking=50, country="CZE")


@pytest.fixture
def pending_match(top_player, ranked_50_player):
    """Upcoming hard court final, rank 1 vs rank 50."""
    from src.data.models import Match

    return Match(
        match_id="401001",
        tournament="Miami Open",
        location="Miami, USA",
        round="Final",
        surface="Hard",
        tour="ATP",
        start_time="2026-03-30T19:00Z",
        state="pre",
        player1=top_player,
        player2=ranked_50_player,
    )


@pytest.fixture
def make_match():
    """Factory for feed matches."""
    from src.data.models import Match, Player

    def _make(
        match_id: str,
        player1: str = "Player A",
        player2: str = "Player B",
        rank1: int = 10,
        rank2: int = 40,
        state: str = "pre",
        winner: str | None = None,
        tour: str = "ATP",
        surface: str = "Hard",
        round: str = "Round of 32",
    ):
        return Match(
            match_id=match_id,
            tournament="Test Open",
            round=round,
            surface=surface,
            tour=tour,
            start_time="2026-04-01T12:00Z",
            state=state,
            player1=Player(name=player1, ranking=rank1),
            player2=Player(name=player2, ranking=rank2),
            winner=winner,
        )

    return _make


@pytest.fixture
def make_prediction():
    """Factory for scoring engine output with explicit factor picks."""
    from src.data.models import FactorEstimate, Prediction

    def _make(
        player1: str = "Player A",
        player2: str = "Player B",
        p1_win_pct: int = 60,
        factors: dict[str, int] | None = None,
    ):
        # factor name -> player 1 percentage
        factors = factors if factors is not None else {"ranking": p1_win_pct}
        favorite = player1 if p1_win_pct >= 50 else player2
        return Prediction(
            player1=player1,
            player2=player2,
            favorite=favorite,
            probability=p1_win_pct / 100,
            p1_win_pct=p1_win_pct,
            p2_win_pct=100 - p1_win_pct,
            confidence=abs(p1_win_pct - 50) + 50,
            factors={
                name: FactorEstimate(probability=pct / 100, p1=pct, p2=100 - pct, label=name)
                for name, pct in factors.items()
            },
        )

    return _make


@pytest.fixture
def memory():
    """Fresh prediction memory."""
    from src.memory.schema import empty_memory

    return empty_memory()


@pytest.fixture
def fixed_now():
    return datetime(2026, 4, 1, 12, 0, 0)


@pytest.fixture
def memory_store():
    """MemoryStore backed by a process-local store."""
    from src.memory.store import InMemoryStore, MemoryStore

    return MemoryStore(InMemoryStore())


@pytest.fixture
def engine(memory_store):
    """LearningEngine over an in-memory store."""
    from src.learning.engine import LearningEngine

    return LearningEngine(memory_store)


@pytest.fixture
def in_memory_db():
    """In-memory SQLite database path for isolated testing."""
    return ":memory:"


@pytest.fixture
async def response_cache(in_memory_db):
    """ResponseCache with a clean in-memory database."""
    from src.data.cache import ResponseCache

    cache = ResponseCache(db_path=in_memory_db)
    await cache.initialize()
    yield cache
    await cache.close()


@pytest.fixture
def play(make_prediction):
    """Record one prediction per outcome and resolve it (True = favorite won)."""
    from src.learning.resolution import apply_resolution, record_prediction

    def _play(memory, outcomes, now=None, p1_win_pct=64, factors=None):
        for i, won in enumerate(outcomes):
            match_id = f"m{len(memory.predictions)}"
            p1, p2 = f"Player {i}A", f"Player {i}B"
            prediction = make_prediction(p1, p2, p1_win_pct, factors)
            record_prediction(memory, match_id, prediction, now=now)
            if won:
                winner = prediction.favorite
            else:
                winner = p2 if prediction.favorite == p1 else p1
            assert apply_resolution(memory, match_id, winner, "6-4, 6-4", now=now)

    return _play
