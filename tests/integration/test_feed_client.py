"""Tests for the ESPN tennis scoreboard client."""

import httpx
import pytest
import respx

BASE = "https://site.api.espn.com/apis/site/v2/sports/tennis"


def competitor(name: str, winner: bool = False, sets: list[int] | None = None, tiebreaks=None):
    lines = []
    for i, games in enumerate(sets or []):
        line = {"value": games}
        if tiebreaks and tiebreaks[i] is not None:
            line["tiebreak"] = tiebreaks[i]
        lines.append(line)
    return {
        "athlete": {"displayName": name, "flag": {"alt": "ITA"}},
        "winner": winner,
        "linescores": lines,
    }


def competition(comp_id: str, c1: dict, c2: dict, state: str = "pre", date: str = "2026-03-30T19:00Z"):
    return {
        "id": comp_id,
        "date": date,
        "round": {"displayName": "Quarterfinal"},
        "status": {"type": {"state": state, "detail": state.upper()}},
        "competitors": [c1, c2],
    }


def scoreboard(*events):
    return {"events": list(events)}


def event(name: str, competitions: list[dict], city: str = "", country: str = "", grouped=True):
    body = {"name": name, "venue": {"address": {"city": city, "country": country}}}
    if grouped:
        body["groupings"] = [{"competitions": competitions}]
    else:
        body["competitions"] = competitions
    return body


def rankings(*names):
    return {
        "rankings": [
            {"ranks": [{"current": i + 1, "athlete": {"displayName": n}} for i, n in enumerate(names)]}
        ]
    }


def mock_feed(atp=None, wta=None, atp_ranks=None, wta_ranks=None):
    respx.get(f"{BASE}/atp/scoreboard").mock(
        return_value=httpx.Response(200, json=atp or scoreboard())
    )
    respx.get(f"{BASE}/wta/scoreboard").mock(
        return_value=httpx.Response(200, json=wta or scoreboard())
    )
    respx.get(f"{BASE}/atp/rankings").mock(
        return_value=httpx.Response(200, json=atp_ranks or rankings())
    )
    respx.get(f"{BASE}/wta/rankings").mock(
        return_value=httpx.Response(200, json=wta_ranks or rankings())
    )


class TestSurfaceDetection:
    """Tests for guessing court surfaces."""

    @pytest.mark.parametrize(
        "tournament,location,expected",
        [
            ("Roland Garros", "Paris, France", "Clay"),
            ("Mutua Madrid Open", "Madrid, Spain", "Clay"),
            ("Wimbledon", "London, Great Britain", "Grass"),
            ("Miami Open", "Miami, USA", "Hard"),
            ("Rolex Paris Masters", "Paris, France", "Hard"),
            ("Some Challenger", "", "Hard"),
        ],
    )
    def test_detect_surface(self, tournament, location, expected):
        from src.data.client import detect_surface

        assert detect_surface(tournament, location) == expected

    def test_build_location(self):
        from src.data.client import build_location

        assert build_location({"address": {"city": "Rome", "country": "Italy"}}) == "Rome, Italy"
        assert build_location({"displayName": "Foro Italico"}) == "Foro Italico"
        assert build_location(None) == ""


class TestFetchMatches:
    """Tests for fetching and parsing both scoreboards."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_parses_matches_with_rankings(self):
        from src.data.client import ESPNTennisClient

        mock_feed(
            atp=scoreboard(
                event(
                    "Internazionali BNL d'Italia",
                    [
                        competition(
                            "401001",
                            competitor("Jannik Sinner"),
                            competitor("Casper Ruud"),
                        )
                    ],
                    "Rome",
                    "Italy",
                )
            ),
            atp_ranks=rankings("Jannik Sinner", "Carlos Alcaraz", "Casper Ruud"),
        )

        matches = await ESPNTennisClient().fetch_matches()

        assert len(matches) == 1
        match = matches[0]
        assert match.match_id == "401001"
        assert match.tour == "ATP"
        assert match.surface == "Clay"
        assert match.location == "Rome, Italy"
        assert match.round == "Quarterfinal"
        assert match.player1.ranking == 1
        assert match.player2.ranking == 3
        assert match.player1.country == "ITA"
        assert match.is_pending

    @respx.mock
    @pytest.mark.asyncio
    async def test_unranked_player_gets_fallback(self):
        from src.data.client import ESPNTennisClient

        mock_feed(
            wta=scoreboard(
                event(
                    "Miami Open",
                    [competition("1", competitor("Coco Gauff"), competitor("Qualifier Q"))],
                    grouped=False,
                )
            ),
            wta_ranks=rankings("Aryna Sabalenka", "Iga Swiatek", "Coco Gauff"),
        )

        matches = await ESPNTennisClient().fetch_matches()

        assert matches[0].tour == "WTA"
        assert matches[0].player1.ranking == 3
        assert matches[0].player2.ranking == 999

    @respx.mock
    @pytest.mark.asyncio
    async def test_skips_undecided_draw_slots(self):
        from src.data.client import ESPNTennisClient

        mock_feed(
            atp=scoreboard(
                event(
                    "Miami Open",
                    [
                        competition("1", competitor("Jannik Sinner"), competitor("TBD")),
                        competition("2", competitor("Taylor Fritz"), competitor("Tommy Paul")),
                    ],
                )
            )
        )

        matches = await ESPNTennisClient().fetch_matches()

        assert [m.match_id for m in matches] == ["2"]

    @respx.mock
    @pytest.mark.asyncio
    async def test_finished_match_winner_and_sets(self):
        from src.data.client import ESPNTennisClient

        mock_feed(
            atp=scoreboard(
                event(
                    "Wimbledon",
                    [
                        competition(
                            "77",
                            competitor("Carlos Alcaraz", winner=True, sets=[6, 7], tiebreaks=[None, 7]),
                            competitor("Novak Djokovic", sets=[4, 6], tiebreaks=[None, 5]),
                            state="post",
                        )
                    ],
                )
            )
        )

        match = (await ESPNTennisClient().fetch_matches())[0]

        assert match.is_final
        assert match.surface == "Grass"
        assert match.winner == "Carlos Alcaraz"
        assert match.score_string() == "6-4, 7-6(5)"

    @respx.mock
    @pytest.mark.asyncio
    async def test_client_error_gives_empty_feed(self):
        from src.data.client import ESPNTennisClient

        for path in ("atp/scoreboard", "wta/scoreboard", "atp/rankings", "wta/rankings"):
            respx.get(f"{BASE}/{path}").mock(return_value=httpx.Response(404, text="Not Found"))

        assert await ESPNTennisClient().fetch_matches() == []

    @respx.mock
    @pytest.mark.asyncio
    async def test_rankings_failure_keeps_matches(self):
        from src.data.client import ESPNTennisClient

        respx.get(f"{BASE}/atp/scoreboard").mock(
            return_value=httpx.Response(
                200,
                json=scoreboard(
                    event("Miami Open", [competition("1", competitor("A B"), competitor("C D"))])
                ),
            )
        )
        respx.get(f"{BASE}/wta/scoreboard").mock(return_value=httpx.Response(200, json=scoreboard()))
        respx.get(f"{BASE}/atp/rankings").mock(return_value=httpx.Response(500))
        respx.get(f"{BASE}/wta/rankings").mock(return_value=httpx.Response(500))

        matches = await ESPNTennisClient(max_retries=0).fetch_matches()

        assert len(matches) == 1
        assert matches[0].player1.ranking == 999


class TestRetryLogic:
    """Tests for retry with backoff."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        from src.data.client import ESPNTennisClient

        route = respx.get(f"{BASE}/atp/scoreboard").mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json=scoreboard()),
            ]
        )

        client = ESPNTennisClient(base_delay=0)
        assert await client.fetch_scoreboard("ATP") == {"events": []}
        assert route.call_count == 2

    @respx.mock
    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        from src.data.client import APIError, ESPNTennisClient

        route = respx.get(f"{BASE}/atp/scoreboard").mock(return_value=httpx.Response(500))

        client = ESPNTennisClient(max_retries=2, base_delay=0)
        with pytest.raises(APIError) as exc_info:
            await client._make_request("/atp/scoreboard")

        assert exc_info.value.status_code == 500
        assert route.call_count == 3

    @respx.mock
    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        from src.data.client import APIError, ESPNTennisClient

        route = respx.get(f"{BASE}/atp/scoreboard").mock(return_value=httpx.Response(400))

        with pytest.raises(APIError):
            await ESPNTennisClient(base_delay=0)._make_request("/atp/scoreboard")
        assert route.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        from src.data.client import ESPNTennisClient, RateLimitError

        client = ESPNTennisClient()
        client._request_count = client.RATE_LIMIT

        with pytest.raises(RateLimitError):
            await client._make_request("/atp/scoreboard")
        assert await client.fetch_scoreboard("ATP") is None


class TestCaching:
    @respx.mock
    @pytest.mark.asyncio
    async def test_scoreboard_served_from_cache(self, response_cache):
        from src.data.client import ESPNTennisClient

        route = respx.get(f"{BASE}/atp/scoreboard").mock(
            return_value=httpx.Response(200, json=scoreboard(event("Miami Open", [])))
        )

        client = ESPNTennisClient(cache=response_cache)
        first = await client.fetch_scoreboard("ATP")
        second = await client.fetch_scoreboard("ATP")

        assert first == second
        assert route.call_count == 1
        assert await response_cache.get_cached("espn_atp_scoreboard") == first


class TestFetchTournaments:
    @respx.mock
    @pytest.mark.asyncio
    async def test_groups_and_orders(self):
        from src.data.client import ESPNTennisClient

        mock_feed(
            atp=scoreboard(
                event(
                    "Miami Open",
                    [
                        competition("done", competitor("A A", winner=True), competitor("B B"), "post", "2026-03-30T10:00Z"),
                        competition("late", competitor("C C"), competitor("D D"), "pre", "2026-03-30T20:00Z"),
                        competition("early", competitor("E E"), competitor("F F"), "pre", "2026-03-30T15:00Z"),
                        competition("live", competitor("G G"), competitor("H H"), "in", "2026-03-30T18:00Z"),
                    ],
                )
            ),
            wta=scoreboard(
                event("Miami Open", [competition("w1", competitor("I I"), competitor("J J"))])
            ),
        )

        groups = await ESPNTennisClient().fetch_tournaments()

        assert [(g.name, g.tour) for g in groups] == [("Miami Open", "ATP"), ("Miami Open", "WTA")]
        assert [m.match_id for m in groups[0].matches] == ["live", "early", "late", "done"]
        assert groups[0].surface == "Hard"
