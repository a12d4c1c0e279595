"""CLI interface for the tennis prediction engine.

Provides commands for scoring matches, recording predictions,
resolving results and inspecting what the engine has learned.
"""

import asyncio
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from src.config import Settings
from src.data.cache import ResponseCache
from src.data.client import ESPNTennisClient
from src.data.models import (
    LearningStats,
    Match,
    Player,
    Prediction,
    PredictionEntry,
    RecordSummary,
    ScoringConfig,
    SweepSummary,
)
from src.data.profiles import get_profile, get_profile_description, list_profiles
from src.data.season import tennis_season_state
from src.learning.engine import LearningEngine
from src.scoring.engine import lock_of_the_day, predict
from src.scoring.factors import factor_label
from src.utils.logging import configure_logging

# Load environment variables from .env file
load_dotenv()
configure_logging()

app = typer.Typer(
    name="acepicks",
    help="Tennis match predictions that learn from their own results.",
)
console = Console()

TIER_STYLES = {"LOCK": "bold green", "STRONG": "green", "LEAN": "yellow"}


# =============================================================================
# Helper Functions (can be mocked in tests)
# =============================================================================


def get_engine(profile: str | None = None) -> LearningEngine:
    """
    Build a learning engine from the environment.

    Args:
        profile: Scoring profile overriding SCORING_PROFILE

    Returns:
        LearningEngine wired to the configured stores
    """
    settings = Settings.from_env()
    if profile:
        settings = settings.model_copy(update={"scoring_profile": profile})
    return LearningEngine.from_settings(settings)


async def _fetch_matches(settings: Settings) -> list[Match]:
    cache = ResponseCache(settings.cache_db)
    await cache.initialize()
    try:
        return await ESPNTennisClient(cache=cache).fetch_matches()
    finally:
        await cache.close()


def get_predictions(profile: str | None = None) -> list[tuple[Match, Prediction]]:
    """
    Score every upcoming match on today's scoreboards.

    Returns:
        (match, prediction) pairs for pending matches
    """

    async def _get() -> list[tuple[Match, Prediction]]:
        engine = get_engine(profile)
        try:
            matches = await _fetch_matches(Settings.from_env())
            memory = await engine.load()
            return [(m, engine.predict_match(m, memory)) for m in matches if m.is_pending]
        finally:
            await engine.close()

    return asyncio.run(_get())


def get_lock_of_the_day() -> tuple[Match, Prediction] | None:
    async def _get() -> tuple[Match, Prediction] | None:
        return lock_of_the_day(await _fetch_matches(Settings.from_env()))

    return asyncio.run(_get())


def record_matches() -> RecordSummary:
    """Record predictions for every upcoming match."""

    async def _record() -> RecordSummary:
        engine = get_engine()
        try:
            matches = await _fetch_matches(Settings.from_env())
            return await engine.record_pending(matches)
        finally:
            await engine.close()

    return asyncio.run(_record())


def run_learning(force: bool = False) -> tuple[str, SweepSummary]:
    """
    Resolve pending predictions against finished matches.

    The sweep is skipped in the offseason unless forced.

    Returns:
        (season state, sweep summary)
    """
    state = tennis_season_state()

    async def _learn() -> SweepSummary:
        if state == "offseason" and not force:
            return SweepSummary()
        engine = get_engine()
        try:
            matches = await _fetch_matches(Settings.from_env())
            return await engine.resolve_completed(matches)
        finally:
            await engine.close()

    return state, asyncio.run(_learn())


def resolve_match(match_id: str, winner: str, score: str) -> bool:
    async def _resolve() -> bool:
        engine = get_engine()
        try:
            return await engine.resolve(match_id, winner, score)
        finally:
            await engine.close()

    return asyncio.run(_resolve())


def get_stats() -> LearningStats:
    async def _get() -> LearningStats:
        engine = get_engine()
        try:
            return await engine.stats()
        finally:
            await engine.close()

    return asyncio.run(_get())


def get_history(limit: int = 20, pending: bool = False) -> list[PredictionEntry]:
    """
    Most recent prediction entries, newest first.

    Args:
        limit: Maximum number of entries
        pending: Return unresolved entries instead of resolved ones
    """

    async def _get() -> list[PredictionEntry]:
        engine = get_engine()
        try:
            memory = await engine.load()
        finally:
            await engine.close()
        entries = memory.pending() if pending else memory.resolved()
        return list(reversed(entries))[:limit]

    return asyncio.run(_get())


def reset_memory() -> bool:
    async def _reset() -> bool:
        engine = get_engine()
        try:
            return await engine.reset()
        finally:
            await engine.close()

    return asyncio.run(_reset())


def _load_profile(profile: str | None) -> ScoringConfig:
    if not profile:
        return ScoringConfig()
    try:
        return get_profile(profile)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _tier(prediction: Prediction) -> str:
    style = TIER_STYLES[prediction.tier]
    return f"[{style}]{prediction.tier}[/{style}]"


# =============================================================================
# CLI Commands
# =============================================================================


@app.command("predict")
def predict_cmd(
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-p", help="Scoring profile (honest, decisive, classic)"),
    ] = None,
    top: Annotated[int, typer.Option("--top", "-t", help="Number of matches to display")] = 25,
) -> None:
    """Predict today's upcoming ATP and WTA matches."""
    if profile:
        _load_profile(profile)
    predictions = get_predictions(profile)

    if not predictions:
        console.print("[yellow]No upcoming matches on the scoreboard.[/yellow]")
        return

    predictions.sort(key=lambda item: item[1].confidence, reverse=True)

    table = Table(title="Upcoming Matches")
    table.add_column("Tour", style="cyan")
    table.add_column("Tournament")
    table.add_column("Round")
    table.add_column("Match", style="bold")
    table.add_column("Pick", style="bold")
    table.add_column("Win %", justify="right", style="green")
    table.add_column("Tier", justify="center")

    for match, prediction in predictions[:top]:
        table.add_row(
            match.tour,
            match.tournament,
            match.round or "-",
            f"{match.player1.name} vs {match.player2.name}",
            prediction.favorite,
            f"{prediction.p1_win_pct}-{prediction.p2_win_pct}",
            _tier(prediction),
        )

    console.print(table)


@app.command()
def score(
    player1: Annotated[str, typer.Argument(help="First player name")],
    rank1: Annotated[int, typer.Argument(help="First player ranking")],
    player2: Annotated[str, typer.Argument(help="Second player name")],
    rank2: Annotated[int, typer.Argument(help="Second player ranking")],
    surface: Annotated[str, typer.Option("--surface", "-s", help="Hard, Clay or Grass")] = "Hard",
    round: Annotated[str, typer.Option("--round", "-r", help="Round name (e.g., Final)")] = "",
    tour: Annotated[str, typer.Option("--tour", help="ATP or WTA")] = "ATP",
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-p", help="Scoring profile (honest, decisive, classic)"),
    ] = None,
) -> None:
    """Score a single hypothetical match with default weights."""
    config = _load_profile(profile)
    prediction = predict(
        Player(name=player1, ranking=rank1),
        Player(name=player2, ranking=rank2),
        surface,
        round,
        tour.upper(),
        config.default_weights,
        config=config,
    )

    console.print()
    console.print(f"[bold]{player1}[/bold] (#{rank1}) vs [bold]{player2}[/bold] (#{rank2})")
    console.print(f"  {surface} | {round or 'Unknown round'} | {tour.upper()}")
    console.print()
    console.print(
        f"  Pick: [bold]{prediction.favorite}[/bold] "
        f"{prediction.p1_win_pct}% - {prediction.p2_win_pct}%  {_tier(prediction)}"
    )
    console.print()

    table = Table(title="Factor Breakdown")
    table.add_column("Factor")
    table.add_column(player1, justify="right")
    table.add_column(player2, justify="right")
    for estimate in prediction.factors.values():
        table.add_row(estimate.label, f"{estimate.p1}%", f"{estimate.p2}%")
    console.print(table)


@app.command()
def lock() -> None:
    """Show the most confident upcoming pick of the day."""
    result = get_lock_of_the_day()
    if result is None:
        console.print("[yellow]No upcoming matches on the scoreboard.[/yellow]")
        return

    match, prediction = result
    console.print()
    console.print("[bold cyan]Lock of the Day[/bold cyan]")
    console.print(f"  {match.tournament} ({match.tour}) {match.round}")
    console.print(f"  {match.player1.name} vs {match.player2.name}")
    console.print(
        f"  Pick: [bold]{prediction.favorite}[/bold] at {prediction.confidence}%  {_tier(prediction)}"
    )


@app.command()
def record() -> None:
    """Record predictions for every upcoming match."""
    summary = record_matches()
    console.print(
        f"[green]Recorded {summary.recorded} predictions[/green] "
        f"(skipped {summary.skipped})"
    )


@app.command()
def resolve(
    match_id: Annotated[str, typer.Argument(help="Match ID of the recorded prediction")],
    winner: Annotated[str, typer.Argument(help="Name of the player who won")],
    score_text: Annotated[str, typer.Argument(help="Score, e.g. '6-4, 7-6(5)'")] = "completed",
) -> None:
    """Resolve one recorded prediction by hand."""
    if resolve_match(match_id, winner, score_text):
        console.print(f"[green]Resolved {match_id}: {winner} won {score_text}[/green]")
    else:
        console.print(f"[yellow]No pending prediction for match {match_id}[/yellow]")
        raise typer.Exit(1)


@app.command()
def learn(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Run even in the offseason"),
    ] = False,
) -> None:
    """Resolve pending predictions from finished matches."""
    state, summary = run_learning(force=force)
    if state == "offseason" and not force:
        console.print("[yellow]Offseason: no matches to resolve. Use --force to run anyway.[/yellow]")
        return
    console.print(
        f"[green]Resolved {summary.resolved} predictions[/green] "
        f"({summary.checked} matches checked, season {state})"
    )


@app.command()
def stats() -> None:
    """Show accuracy, streaks and learned patterns."""
    s = get_stats()

    table = Table(title="Learning Engine")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Predictions", str(s.total_predictions))
    table.add_row("Resolved", str(s.total_resolved))
    table.add_row("Correct", str(s.total_correct))
    table.add_row("Accuracy", f"{s.accuracy}%")
    table.add_row("Last 10 / 20 / 50", f"{s.rolling10}% / {s.rolling20}% / {s.rolling50}%")
    table.add_row("Current streak", f"{s.streak:+d}")
    table.add_row("Longest win / loss", f"{s.longest_win} / {s.longest_loss}")
    table.add_row("Calibration drift", f"{s.calibration_drift:+.1f}")
    table.add_row("Upset rate", f"{s.upset_rate}%")
    table.add_row("Head-to-head pairs", str(s.h2h_pairs))
    console.print(table)

    if s.patterns:
        console.print()
        console.print("[bold]Patterns[/bold]")
        for pattern in s.patterns:
            console.print(f"  - {pattern}")


@app.command()
def weights() -> None:
    """Show the learned factor weights."""
    s = get_stats()

    table = Table(title="Learned Weights")
    table.add_column("Factor", style="bold")
    table.add_column("Weight", justify="right", style="green")
    for share in s.weights:
        table.add_row(share.name, f"{share.pct}%")
    console.print(table)

    if s.last_update:
        console.print(f"Last adjusted {s.last_update:%Y-%m-%d %H:%M}")


@app.command()
def history(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of entries")] = 20,
    pending: Annotated[bool, typer.Option("--pending", help="Show unresolved predictions")] = False,
) -> None:
    """Show recent predictions and their results."""
    entries = get_history(limit=limit, pending=pending)
    if not entries:
        console.print("[yellow]No predictions yet.[/yellow]")
        return

    table = Table(title="Pending Predictions" if pending else "Prediction History")
    table.add_column("Date")
    table.add_column("Match", style="bold")
    table.add_column("Pick")
    table.add_column("Conf", justify="right")
    table.add_column("Result")
    table.add_column("", justify="center")

    for entry in entries:
        if entry.correct is None:
            mark = "-"
        else:
            mark = "[green]W[/green]" if entry.correct else "[red]L[/red]"
        table.add_row(
            f"{entry.date:%Y-%m-%d}",
            f"{entry.player1} vs {entry.player2}",
            entry.predicted_winner,
            f"{entry.confidence}%",
            entry.result or "pending",
            mark,
        )
    console.print(table)


@app.command()
def reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Wipe the prediction memory and start learning from scratch."""
    if not yes:
        typer.confirm("This erases every recorded prediction. Continue?", abort=True)

    if reset_memory():
        console.print("[green]Prediction memory reset.[/green]")
    else:
        console.print("[red]Reset failed: no store accepted the write.[/red]")
        raise typer.Exit(1)


@app.command()
def profiles(
    name: Annotated[
        str | None,
        typer.Argument(help="Profile to show in detail"),
    ] = None,
) -> None:
    """List scoring profiles, or show one profile's settings."""
    if name is None:
        console.print()
        console.print("[bold cyan]Available Scoring Profiles[/bold cyan]")
        console.print()
        for profile in list_profiles():
            console.print(f"  [bold]{profile}[/bold]")
            console.print(f"    {get_profile_description(profile)}")
            console.print()
        return

    config = _load_profile(name)
    console.print()
    console.print(f"[bold cyan]Profile: {name}[/bold cyan]")
    console.print()
    for field, value in config.model_dump(exclude={"default_weights"}).items():
        console.print(f"  {field}: {value}")
    console.print("  default_weights:")
    for factor, weight in config.default_weights.items():
        console.print(f"    {factor_label(factor)}: {weight}")


if __name__ == "__main__":
    app()
