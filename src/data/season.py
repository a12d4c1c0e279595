"""Tennis calendar state."""

from datetime import date
from typing import Literal

SeasonState = Literal["active", "offseason", "preseason"]


def tennis_season_state(today: date | None = None) -> SeasonState:
    """
    Where the tour calendar is on a given day.

    The season runs from the second week of January until the
    Davis Cup finals in late November. December is the offseason and
    the first week of January is the preseason.
    """
    today = today or date.today()
    if today.month == 12 or (today.month == 11 and today.day > 24):
        return "offseason"
    if today.month == 1 and today.day < 8:
        return "preseason"
    return "active"
