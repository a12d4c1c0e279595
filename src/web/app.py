"""FastAPI JSON API for the tennis prediction engine.

Serves model predictions, learning stats and history, and exposes
the learning sweep and admin actions for cron jobs.
"""

import time
from typing import Annotated

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from src.config import Settings
from src.data.cache import ResponseCache
from src.data.client import ESPNTennisClient
from src.data.models import Match, ScoringConfig
from src.data.profiles import get_profile
from src.data.season import tennis_season_state
from src.learning.engine import LearningEngine
from src.scoring.engine import lock_of_the_day
from src.utils.logging import configure_logging

load_dotenv()
configure_logging()

logger = structlog.get_logger()

app = FastAPI(
    title="AcePicks",
    description="Tennis match predictions that learn from their own results",
)

ADMIN_ACTIONS = ("reset", "record", "reset-and-record")


# =============================================================================
# Helper Functions (can be mocked in tests)
# =============================================================================


def get_settings() -> Settings:
    return Settings.from_env()


def get_engine() -> LearningEngine:
    return LearningEngine.from_settings(get_settings())


async def fetch_matches() -> list[Match]:
    """Fetch today's ATP and WTA matches through the response cache."""
    cache = ResponseCache(get_settings().cache_db)
    await cache.initialize()
    try:
        return await ESPNTennisClient(cache=cache).fetch_matches()
    finally:
        await cache.close()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


# =============================================================================
# API Routes
# =============================================================================


@app.get("/api/stats")
async def api_stats() -> dict:
    """Learning engine stats for the dashboard."""
    engine = get_engine()
    try:
        stats = await engine.stats()
    finally:
        await engine.close()
    return {"success": True, "data": stats.model_dump(mode="json")}


@app.get("/api/model-predictions")
async def api_model_predictions() -> JSONResponse:
    """Predictions for every upcoming match, most confident first."""
    engine = get_engine()
    try:
        matches = await fetch_matches()
        memory = await engine.load()
        predictions = []
        for match in matches:
            if not match.is_pending:
                continue
            prediction = engine.predict_match(match, memory)
            predictions.append(
                {
                    "match_id": match.match_id,
                    "player1": match.player1.name,
                    "player2": match.player2.name,
                    "predicted_winner": prediction.favorite,
                    "p1_win_pct": prediction.p1_win_pct,
                    "p2_win_pct": prediction.p2_win_pct,
                    "confidence": prediction.confidence,
                    "calibrated_confidence": prediction.calibrated_confidence,
                    "tier": prediction.tier,
                    "surface": match.surface,
                    "tournament": match.tournament,
                    "round": match.round,
                    "tour": match.tour,
                    "start_time": match.start_time,
                    "factors": {
                        name: {"label": f.label, "p1": f.p1, "p2": f.p2}
                        for name, f in prediction.factors.items()
                    },
                }
            )
    finally:
        await engine.close()

    predictions.sort(key=lambda p: p["confidence"], reverse=True)

    lock = lock_of_the_day(matches)
    lock_data = None
    if lock is not None:
        match, prediction = lock
        lock_data = {
            "match_id": match.match_id,
            "pick": prediction.favorite,
            "confidence": prediction.confidence,
            "tier": prediction.tier,
        }

    return JSONResponse(
        {"success": True, "data": {"predictions": predictions, "lock_of_the_day": lock_data}},
        headers={"Cache-Control": "public, s-maxage=1800, stale-while-revalidate=900"},
    )


@app.get("/api/history")
async def api_history(
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> dict:
    """Resolved predictions, newest first."""
    engine = get_engine()
    try:
        memory = await engine.load()
    finally:
        await engine.close()

    resolved = sorted(memory.resolved(), key=lambda p: p.date, reverse=True)
    correct = sum(1 for p in resolved if p.correct)
    history = [
        {
            "match_id": p.match_id,
            "date": p.date.isoformat(),
            "player1": p.player1,
            "player2": p.player2,
            "predicted_winner": p.predicted_winner,
            "actual_winner": p.actual_winner,
            "correct": p.correct,
            "confidence": p.confidence,
            "score": p.result,
        }
        for p in resolved[:limit]
    ]
    return {
        "success": True,
        "data": {
            "history": history,
            "total": len(resolved),
            "correct": correct,
            "accuracy": memory.accuracy,
        },
    }


@app.get("/api/learn")
async def api_learn() -> dict:
    """
    Run one learning cycle.

    Resolves pending predictions from finished matches, except in the
    offseason. Safe to call repeatedly since resolution is idempotent.
    """
    started = time.monotonic()
    season_state = tennis_season_state()

    engine = get_engine()
    try:
        sweep = {"resolved": 0, "checked": 0}
        if season_state in ("active", "preseason"):
            summary = await engine.resolve_completed(await fetch_matches())
            sweep = summary.model_dump()
        stats = await engine.stats()
    finally:
        await engine.close()

    return {
        "success": True,
        "season_state": season_state,
        "sweep": sweep,
        "learning": {
            "total_predictions": stats.total_predictions,
            "total_resolved": stats.total_resolved,
            "accuracy": stats.accuracy,
            "patterns_found": stats.pattern_count,
        },
        "duration_ms": int((time.monotonic() - started) * 1000),
    }


@app.get("/api/admin")
async def api_admin(
    secret: str = "",
    action: str = "reset-and-record",
) -> JSONResponse:
    """
    Admin actions: reset the memory, record today's matches, or both.

    Disabled unless ADMIN_SECRET is configured.
    """
    admin_secret = get_settings().admin_secret
    if not admin_secret or secret != admin_secret:
        return _error("Unauthorized", 401)
    if action not in ADMIN_ACTIONS:
        return _error(f"Unknown action: {action}", 400)

    results: dict = {"action": action}
    engine = get_engine()
    try:
        if action in ("reset", "reset-and-record"):
            old = await engine.load()
            written = await engine.reset()
            verification = await engine.load()
            verified = len(verification.predictions) == 0
            results["reset"] = {
                "success": written and verified,
                "verified": verified,
                "old_stats": {
                    "total_predictions": old.total_predictions,
                    "total_correct": old.total_correct,
                    "accuracy": old.accuracy,
                },
            }
            logger.info("admin_reset", verified=verified)

        if action in ("record", "reset-and-record"):
            summary = await engine.record_pending(await fetch_matches())
            results["record"] = {"success": True, **summary.model_dump()}
    finally:
        await engine.close()

    return JSONResponse({"success": True, **results})


@app.get("/api/config/{profile_name}")
async def api_config(profile_name: str) -> dict:
    """API endpoint - get scoring config as JSON."""
    if profile_name == "default":
        config = ScoringConfig()
    else:
        try:
            config = get_profile(profile_name)
        except ValueError:
            return {"error": f"Unknown profile: {profile_name}"}

    return config.model_dump()


# =============================================================================
# Run with: uvicorn src.web.app:app --reload
# =============================================================================
