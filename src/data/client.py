"""ESPN tennis scoreboard client with caching and rate limiting."""

import asyncio
import time
from datetime import datetime, timezone

import httpx
import structlog

from src.data.cache import ResponseCache
from src.data.models import Match, Player, SetScore, TournamentGroup

logger = structlog.get_logger()

# Substring -> surface, checked in order. Clay and grass events come
# first so city names shared with hard-court events ("paris") do not
# shadow them.
SURFACE_MAP: tuple[tuple[str, str], ...] = (
    # Clay
    ("roland garros", "Clay"),
    ("french open", "Clay"),
    ("rome", "Clay"),
    ("madrid", "Clay"),
    ("monte carlo", "Clay"),
    ("monte-carlo", "Clay"),
    ("barcelona", "Clay"),
    ("rio", "Clay"),
    ("buenos aires", "Clay"),
    ("sao paulo", "Clay"),
    ("santiago", "Clay"),
    ("houston", "Clay"),
    ("marrakech", "Clay"),
    ("bucharest", "Clay"),
    ("munich", "Clay"),
    ("lyon", "Clay"),
    ("geneva", "Clay"),
    ("hamburg", "Clay"),
    ("gstaad", "Clay"),
    ("kitzbuhel", "Clay"),
    ("umag", "Clay"),
    ("bastad", "Clay"),
    # Grass
    ("wimbledon", "Grass"),
    ("halle", "Grass"),
    ("queen's", "Grass"),
    ("queens", "Grass"),
    ("eastbourne", "Grass"),
    ("s-hertogenbosch", "Grass"),
    ("stuttgart", "Grass"),
    ("mallorca", "Grass"),
    ("nottingham", "Grass"),
    ("birmingham", "Grass"),
    ("berlin", "Grass"),
    # Hard
    ("australian open", "Hard"),
    ("us open", "Hard"),
    ("indian wells", "Hard"),
    ("miami", "Hard"),
    ("dubai", "Hard"),
    ("doha", "Hard"),
    ("qatar", "Hard"),
    ("delray beach", "Hard"),
    ("brisbane", "Hard"),
    ("adelaide", "Hard"),
    ("auckland", "Hard"),
    ("abu dhabi", "Hard"),
    ("beijing", "Hard"),
    ("shanghai", "Hard"),
    ("tokyo", "Hard"),
    ("seoul", "Hard"),
    ("hong kong", "Hard"),
    ("montreal", "Hard"),
    ("toronto", "Hard"),
    ("cincinnati", "Hard"),
    ("winston-salem", "Hard"),
    ("washington", "Hard"),
    ("atlanta", "Hard"),
    ("los cabos", "Hard"),
    ("acapulco", "Hard"),
    ("rotterdam", "Hard"),
    ("marseille", "Hard"),
    ("dallas", "Hard"),
    ("montpellier", "Hard"),
    ("st. petersburg", "Hard"),
    ("vienna", "Hard"),
    ("basel", "Hard"),
    ("paris", "Hard"),
    ("turin", "Hard"),
    ("san diego", "Hard"),
    ("metz", "Hard"),
    ("astana", "Hard"),
    ("antwerp", "Hard"),
    ("sofia", "Hard"),
    ("stockholm", "Hard"),
)

DEFAULT_SURFACE = "Hard"

UNKNOWN_PLAYERS = {"", "TBD", "?"}

# Live first, then upcoming, then finished
STATE_ORDER = {"in": 0, "pre": 1, "post": 2}


class APIError(Exception):
    """Raised when API request fails."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"API Error {status_code}: {message}")


class RateLimitError(Exception):
    """Raised when rate limit is exceeded."""

    pass


def detect_surface(tournament: str, location: str = "") -> str:
    """
    Guess the court surface from the tournament name and location.

    Args:
        tournament: Tournament name (e.g., "Mutua Madrid Open")
        location: "City, Country" string

    Returns:
        "Clay", "Grass" or "Hard" (the default)
    """
    haystack = f"{tournament} {location}".lower()
    for needle, surface in SURFACE_MAP:
        if needle in haystack:
            return surface
    return DEFAULT_SURFACE


def build_location(venue: dict | None) -> str:
    """Render a venue as "City, Country", falling back to its display name."""
    if not venue:
        return ""
    address = venue.get("address") or {}
    parts = [p for p in (address.get("city"), address.get("country")) if p]
    if not parts:
        return venue.get("displayName", "")
    return ", ".join(parts)


class ESPNTennisClient:
    """Client for the public ESPN ATP and WTA scoreboards."""

    BASE_URL = "https://site.api.espn.com/apis/site/v2/sports/tennis"
    RATE_LIMIT = 1000  # requests per hour
    TOURS = ("ATP", "WTA")

    def __init__(
        self,
        cache: ResponseCache | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        timeout: float = 10.0,
        fallback_ranking: int = 999,
    ):
        """
        Initialize the API client.

        Args:
            cache: Optional ResponseCache for raw responses
            max_retries: Maximum number of retry attempts for 5xx errors
            base_delay: Base delay in seconds for exponential backoff
            timeout: Per-request timeout in seconds
            fallback_ranking: Ranking given to players missing from the rankings
        """
        self.cache = cache
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.timeout = timeout
        self.fallback_ranking = fallback_ranking

        # Rate limiting state
        self._request_count = 0
        self._window_start = time.time()

    @property
    def request_count(self) -> int:
        """Current request count in the rate limit window."""
        return self._request_count

    def _check_rate_limit(self) -> None:
        """
        Check and update rate limiting state.

        Raises:
            RateLimitError: If rate limit would be exceeded
        """
        now = time.time()

        # Reset window if hour has passed
        if now - self._window_start >= 3600:
            self._request_count = 0
            self._window_start = now

        if self._request_count >= self.RATE_LIMIT:
            seconds_until_reset = 3600 - (now - self._window_start)
            raise RateLimitError(
                f"Rate limit of {self.RATE_LIMIT} requests/hour exceeded. "
                f"Resets in {seconds_until_reset:.0f} seconds."
            )

    async def _make_request(self, endpoint: str) -> dict:
        """
        Make an API request with retry logic.

        Args:
            endpoint: Path below BASE_URL (e.g., "/atp/scoreboard")

        Returns:
            JSON response body

        Raises:
            APIError: If request fails after retries
            RateLimitError: If rate limit exceeded
        """
        self._check_rate_limit()

        url = f"{self.BASE_URL}{endpoint}"
        attempt = 0
        last_error = None

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while attempt <= self.max_retries:
                try:
                    response = await client.get(url)

                    if response.status_code == 200:
                        self._request_count += 1
                        return response.json()

                    # Client error - don't retry
                    if 400 <= response.status_code < 500:
                        raise APIError(response.status_code, response.text)

                    # Server error - retry with backoff
                    last_error = APIError(response.status_code, response.text)
                    if attempt < self.max_retries:
                        await asyncio.sleep(self.base_delay * (2 ** attempt))
                    attempt += 1

                except httpx.RequestError as e:
                    last_error = APIError(0, str(e))
                    if attempt < self.max_retries:
                        await asyncio.sleep(self.base_delay * (2 ** attempt))
                    attempt += 1

        if last_error:
            raise last_error
        raise APIError(0, "Unknown error")

    async def _fetch(self, endpoint: str, ttl_seconds: int) -> dict | None:
        """
        Fetch an endpoint through the cache.

        Feed failures are logged and reported as None so one broken
        endpoint never takes down the whole scoreboard.
        """
        cache_key = f"espn{endpoint.replace('/', '_')}"
        if self.cache:
            cached = await self.cache.get_cached(cache_key)
            if cached:
                return cached

        try:
            data = await self._make_request(endpoint)
        except (APIError, RateLimitError) as e:
            logger.warning("feed_request_failed", endpoint=endpoint, error=str(e))
            return None

        if self.cache:
            await self.cache.set_cached(cache_key, data, ttl_seconds=ttl_seconds)
        return data

    async def fetch_rankings(self, tour: str) -> dict[str, int]:
        """
        Fetch current singles rankings for a tour.

        Returns:
            Lowercased player name -> ranking
        """
        data = await self._fetch(f"/{tour.lower()}/rankings", ttl_seconds=3600)
        ranks: dict[str, int] = {}
        if not data:
            return ranks

        for ranking in data.get("rankings") or []:
            for entry in ranking.get("ranks") or []:
                name = (entry.get("athlete") or {}).get("displayName")
                current = entry.get("current")
                if name and current:
                    ranks[name.lower()] = int(current)
        return ranks

    async def fetch_scoreboard(self, tour: str) -> dict | None:
        return await self._fetch(f"/{tour.lower()}/scoreboard", ttl_seconds=120)

    def parse_competition(
        self,
        comp: dict,
        tournament: str,
        location: str,
        surface: str,
        tour: str,
        ranks: dict[str, int],
    ) -> Match | None:
        """
        Parse one ESPN competition into a Match.

        Returns:
            Match, or None when a player is missing or still TBD
        """
        competitors = comp.get("competitors") or []
        if len(competitors) < 2:
            return None

        c1, c2 = competitors[0], competitors[1]
        p1_name = (c1.get("athlete") or {}).get("displayName", "")
        p2_name = (c2.get("athlete") or {}).get("displayName", "")
        if p1_name in UNKNOWN_PLAYERS or p2_name in UNKNOWN_PLAYERS:
            return None

        p1_lines = c1.get("linescores") or []
        p2_lines = c2.get("linescores") or []
        sets = []
        for i in range(max(len(p1_lines), len(p2_lines))):
            line1 = p1_lines[i] if i < len(p1_lines) else {}
            line2 = p2_lines[i] if i < len(p2_lines) else {}
            sets.append(
                SetScore(
                    p1=int(line1.get("value") or 0),
                    p2=int(line2.get("value") or 0),
                    p1_tiebreak=line1.get("tiebreak"),
                    p2_tiebreak=line2.get("tiebreak"),
                )
            )

        status = (comp.get("status") or {}).get("type") or {}
        state = status.get("state", "pre")
        if state not in STATE_ORDER:
            state = "pre"

        winner = None
        if state == "post":
            if c1.get("winner"):
                winner = p1_name
            elif c2.get("winner"):
                winner = p2_name

        start_time = comp.get("date") or datetime.now(timezone.utc).isoformat()

        return Match(
            match_id=comp.get("id") or f"{tour}-{p1_name}-{p2_name}-{comp.get('date', '')}",
            tournament=tournament,
            location=location,
            round=(comp.get("round") or {}).get("displayName", ""),
            surface=surface,
            tour=tour,
            start_time=start_time,
            state=state,
            status_detail=status.get("detail", ""),
            player1=self._player(c1, p1_name, ranks),
            player2=self._player(c2, p2_name, ranks),
            sets=sets,
            winner=winner,
        )

    def _player(self, competitor: dict, name: str, ranks: dict[str, int]) -> Player:
        flag = (competitor.get("athlete") or {}).get("flag") or {}
        return Player(
            name=name,
            ranking=ranks.get(name.lower(), self.fallback_ranking),
            country=(flag.get("alt") or "").strip(),
        )

    def parse_scoreboard(self, data: dict | None, tour: str, ranks: dict[str, int]) -> list[Match]:
        """
        Parse every competition of a scoreboard response.

        ESPN nests competitions under groupings for some events and
        lists them directly for others; both are read.
        """
        matches: list[Match] = []
        if not data:
            return matches

        for event in data.get("events") or []:
            tournament = event.get("name") or "Unknown Tournament"
            location = build_location(event.get("venue"))
            surface = detect_surface(tournament, location)

            competitions = []
            for grouping in event.get("groupings") or []:
                competitions.extend(grouping.get("competitions") or [])
            competitions.extend(event.get("competitions") or [])

            for comp in competitions:
                match = self.parse_competition(comp, tournament, location, surface, tour, ranks)
                if match is not None:
                    matches.append(match)
        return matches

    async def fetch_matches(self) -> list[Match]:
        """
        Fetch every ATP and WTA match on today's scoreboards.

        Returns:
            Matches with rankings joined and surfaces detected
        """
        results = await asyncio.gather(
            *(self.fetch_scoreboard(tour) for tour in self.TOURS),
            *(self.fetch_rankings(tour) for tour in self.TOURS),
        )
        scoreboards = results[: len(self.TOURS)]
        rankings = results[len(self.TOURS):]

        matches: list[Match] = []
        for tour, board, ranks in zip(self.TOURS, scoreboards, rankings):
            matches.extend(self.parse_scoreboard(board, tour, ranks))

        logger.info("feed_fetched", matches=len(matches))
        return matches

    async def fetch_tournaments(self) -> list[TournamentGroup]:
        """
        Fetch matches grouped by tournament and tour.

        Within each group, live matches come first, then upcoming,
        then finished, each ordered by start time.
        """
        groups: dict[str, TournamentGroup] = {}
        for match in await self.fetch_matches():
            key = f"{match.tournament}-{match.tour}"
            if key not in groups:
                groups[key] = TournamentGroup(
                    name=match.tournament,
                    location=match.location,
                    tour=match.tour,
                    surface=match.surface,
                )
            groups[key].matches.append(match)

        for group in groups.values():
            group.matches.sort(key=lambda m: (STATE_ORDER[m.state], m.start_time))
        return list(groups.values())
