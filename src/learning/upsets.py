"""Upset log and head-to-head records."""

from datetime import date

from src.data.models import H2HRecord, HeadToHead, Memory, PredictionEntry, UpsetLogEntry

UPSET_LABELS = {
    "ranking_upset": "Lower-ranked player won",
    "high_confidence_miss": "High-confidence miss",
    "surface_upset": "Surface read wrong",
}


def _bump(memory: Memory, tag: str, upset: bool) -> None:
    entry = next((u for u in memory.upset_log if u.tag == tag), None)
    if entry is None:
        entry = UpsetLogEntry(tag=tag)
        memory.upset_log.append(entry)
    entry.total += 1
    if upset:
        entry.upsets += 1
    entry.rate = entry.upsets / entry.total


def log_upsets(memory: Memory, entry: PredictionEntry, high_confidence: int = 70) -> None:
    """
    Record which upset conditions this resolved entry triggered.

    Each tag counts how often its condition occurred (total) and how
    often it ended in an upset:
    - ranking_upset: the ranking factor's pick lost
    - high_confidence_miss: confidence above the threshold and wrong
    - surface_upset: the surface factor's pick lost
    """
    ranking = entry.factors.get("ranking")
    if ranking is not None:
        _bump(memory, "ranking_upset", ranking.favored != entry.actual_winner)

    if entry.confidence > high_confidence:
        _bump(memory, "high_confidence_miss", not entry.correct)

    surface = entry.factors.get("surface_context")
    if surface is not None:
        _bump(memory, "surface_upset", surface.favored != entry.actual_winner)


def pair_key(name1: str, name2: str) -> str:
    """Order-independent key for a pair of player names."""
    first, second = sorted((name1, name2))
    return f"{first}|{second}"


def update_h2h(memory: Memory, entry: PredictionEntry, played: date | None = None) -> H2HRecord:
    """Credit the winner in the pair's head-to-head record."""
    key = pair_key(entry.player1, entry.player2)
    record = memory.h2h_results.get(key)
    if record is None:
        player_a, player_b = sorted((entry.player1, entry.player2))
        record = H2HRecord(player_a=player_a, player_b=player_b)
        memory.h2h_results[key] = record

    if entry.actual_winner == record.player_a:
        record.wins_a += 1
    elif entry.actual_winner == record.player_b:
        record.wins_b += 1
    record.last_meeting = played or date.today()
    return record


def head_to_head_for(memory: Memory, player1: str, player2: str) -> HeadToHead | None:
    """Learned meetings between two players, oriented to player 1."""
    record = memory.h2h_results.get(pair_key(player1, player2))
    if record is None or record.meetings == 0:
        return None
    if player1 == record.player_a:
        return HeadToHead(p1_wins=record.wins_a, p2_wins=record.wins_b)
    return HeadToHead(p1_wins=record.wins_b, p2_wins=record.wins_a)
