"""
Unit tests for the cache-backed fallback orchestrator.

Sources are replaced by small stubs; the cache is a real CacheStore over
an in-memory SQLite database.
"""

import json
from datetime import timedelta

import pytest
from sqlalchemy import select

from cricpulse.cache.store import CacheStore
from cricpulse.db.models import ApiCache
from cricpulse.errors import ExtractionEmpty, FetchError
from cricpulse.scrape.base import MatchRecord, PlayerInfo, SeriesRecord, TeamInfo
from cricpulse.services.cricket_data import CricketDataService


def _match(match_id, team1, team2, **kwargs):
    return MatchRecord(id=match_id, name=f"{team1} vs {team2}", teams=[team1, team2], **kwargs)


class StubCricbuzz:
    """Each attribute is a list to return or an exception to raise."""

    def __init__(self, live=(), homepage=(), series=(), details=None):
        self.live = live
        self.homepage = homepage
        self.series = series
        self.details = details
        self.calls = []

    async def _result(self, name, value):
        self.calls.append(name)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, (list, tuple)) and not value:
            raise ExtractionEmpty(f"cricbuzz {name}")
        return list(value) if isinstance(value, tuple) else value

    async def fetch_live_scores(self):
        return await self._result("live", self.live)

    async def fetch_homepage_matches(self):
        return await self._result("homepage", self.homepage)

    async def fetch_series(self):
        return await self._result("series", self.series)

    async def fetch_match_details(self, match_id):
        if self.details is None:
            self.calls.append("details")
            raise ExtractionEmpty(f"cricbuzz match {match_id}")
        return await self._result("details", self.details)


class StubCricTracker:
    def __init__(self, matches=()):
        self.matches = matches
        self.calls = 0

    async def fetch_matches(self):
        self.calls += 1
        if not self.matches:
            raise FetchError("https://crictracker.test/", "HTTP 403", status_code=403)
        return list(self.matches)


class StubWikipedia:
    def __init__(self, players=None, teams=None):
        self.players = players or {}
        self.teams = teams or {}

    async def fetch_player_info(self, name):
        if name not in self.players:
            raise ExtractionEmpty(f"wikipedia player {name}", "no infobox")
        return self.players[name]

    async def fetch_team_info(self, name):
        if name not in self.teams:
            raise FetchError(f"https://wiki.test/wiki/{name}", "HTTP 404", status_code=404)
        return self.teams[name]


@pytest.fixture
def cache(session_factory, clock):
    return CacheStore(session_factory, clock=clock)


def _service(cache, cricbuzz=None, crictracker=None, wikipedia=None):
    return CricketDataService(
        cache,
        cricbuzz=cricbuzz or StubCricbuzz(),
        crictracker=crictracker or StubCricTracker(),
        wikipedia=wikipedia or StubWikipedia(),
    )


class TestLiveMatches:

    @pytest.mark.asyncio
    async def test_primary_failure_still_tries_secondary(self, cache):
        cricbuzz = StubCricbuzz(
            live=FetchError("https://cricbuzz.test/cricket-match/live-scores", "timed out"),
            homepage=[_match("cricbuzz-1", "Bangladesh", "Ireland", status="Today")],
        )
        tracker = StubCricTracker()

        matches = await _service(cache, cricbuzz, tracker).get_live_matches()

        assert [m.id for m in matches] == ["cricbuzz-1"]
        assert cricbuzz.calls == ["live", "homepage"]
        assert tracker.calls == 0

    @pytest.mark.asyncio
    async def test_sources_are_merged_without_duplicates(self, cache):
        cricbuzz = StubCricbuzz(
            live=[_match("cricbuzz-1", "India", "Australia", status="Live")],
            homepage=[
                _match("cricbuzz-india-australia-9", "Australia", "India", venue="Adelaide Oval"),
                _match("cricbuzz-2", "England", "Pakistan", status="Upcoming"),
            ],
        )

        matches = await _service(cache, cricbuzz).get_live_matches()

        assert [m.id for m in matches] == ["cricbuzz-1", "cricbuzz-2"]
        assert matches[0].venue == "Adelaide Oval"

    @pytest.mark.asyncio
    async def test_tertiary_only_when_nothing_found(self, cache):
        tracker = StubCricTracker([_match("crictracker-x", "Nepal", "Oman", source="crictracker")])

        matches = await _service(cache, StubCricbuzz(), tracker).get_live_matches()

        assert [m.id for m in matches] == ["crictracker-x"]
        assert tracker.calls == 1

    @pytest.mark.asyncio
    async def test_every_source_failing_returns_empty_and_caches_nothing(self, cache):
        matches = await _service(cache).get_live_matches()

        assert matches == []
        assert cache.get("live_matches") is None

    @pytest.mark.asyncio
    async def test_cache_hit_skips_sources(self, cache):
        cricbuzz = StubCricbuzz(live=[_match("cricbuzz-1", "India", "Australia")])
        service = _service(cache, cricbuzz)

        first = await service.get_live_matches()
        second = await service.get_live_matches()

        assert [m.id for m in second] == [m.id for m in first]
        assert cricbuzz.calls == ["live", "homepage"]

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_and_rewrites_cache(self, cache, session_factory, clock):
        cricbuzz = StubCricbuzz(
            live=[_match("cricbuzz-1", "India", "Australia", status="Live")],
            homepage=[_match("cricbuzz-2", "England", "Pakistan", status="Upcoming")],
        )
        service = _service(cache, cricbuzz)
        cache.put("live_matches", json.dumps([]), timedelta(seconds=60))

        matches = await service.get_live_matches(force_refresh=True)

        assert len(matches) == 2
        assert cricbuzz.calls == ["live", "homepage"]
        with session_factory() as session:
            row = session.execute(
                select(ApiCache).where(ApiCache.key == "live_matches")
            ).scalar_one()
        assert row.expires_at == clock.now + timedelta(seconds=60)
        assert [m["id"] for m in json.loads(row.value)] == ["cricbuzz-1", "cricbuzz-2"]

    @pytest.mark.asyncio
    async def test_expired_cache_goes_back_to_sources(self, cache, clock):
        cricbuzz = StubCricbuzz(live=[_match("cricbuzz-1", "India", "Australia")])
        service = _service(cache, cricbuzz)

        await service.get_live_matches()
        clock.advance(seconds=61)
        await service.get_live_matches()

        assert cricbuzz.calls == ["live", "homepage", "live", "homepage"]

    @pytest.mark.asyncio
    async def test_undecodable_cache_entry_is_a_miss(self, cache):
        cache.put("live_matches", "not json", timedelta(seconds=60))
        cricbuzz = StubCricbuzz(live=[_match("cricbuzz-1", "India", "Australia")])

        matches = await _service(cache, cricbuzz).get_live_matches()
        assert [m.id for m in matches] == ["cricbuzz-1"]


class TestSeries:

    @pytest.mark.asyncio
    async def test_pages_by_offset(self, cache):
        listing = [SeriesRecord(id=f"series-{i}", name=f"Series {i}") for i in range(30)]
        service = _service(cache, StubCricbuzz(series=listing))

        first = await service.get_series(0)
        second = await service.get_series(25)

        assert len(first) == 25
        assert [s.id for s in second] == [f"series-{i}" for i in range(25, 30)]
        assert cache.get("series_offset_25") is not None

    @pytest.mark.asyncio
    async def test_past_the_end_is_empty_and_not_cached(self, cache):
        listing = [SeriesRecord(id="series-1", name="Asia Cup")]
        service = _service(cache, StubCricbuzz(series=listing))

        assert await service.get_series(40) == []
        assert cache.get("series_offset_40") is None


class TestMatchDetails:

    @pytest.mark.asyncio
    async def test_found_and_cached(self, cache):
        match = _match("cricbuzz-91234", "India", "Australia")
        service = _service(cache, StubCricbuzz(details=match))

        result = await service.get_match_details("cricbuzz-91234")

        assert result.id == "cricbuzz-91234"
        assert cache.get("match_cricbuzz-91234") is not None

    @pytest.mark.asyncio
    async def test_not_found(self, cache):
        assert await _service(cache).get_match_details("cricbuzz-404") is None


class TestPlayersAndTeams:

    @pytest.mark.asyncio
    async def test_player_found(self, cache):
        wiki = StubWikipedia(players={"Virat Kohli": PlayerInfo(name="Virat Kohli", role="Batter")})
        service = _service(cache, wikipedia=wiki)

        player = await service.get_player_info("Virat Kohli")

        assert player.role == "Batter"
        assert cache.get("player_Virat Kohli") is not None

    @pytest.mark.asyncio
    async def test_player_not_found(self, cache):
        assert await _service(cache).get_player_info("Nobody") is None

    @pytest.mark.asyncio
    async def test_team_found(self, cache):
        team = TeamInfo(name="India", country="India", flag="🇮🇳", playing11=["Virat Kohli"])
        service = _service(cache, wikipedia=StubWikipedia(teams={"India": team}))

        assert (await service.get_team_info("India")).playing11 == ["Virat Kohli"]
        assert cache.get("team_India") is not None

    @pytest.mark.asyncio
    async def test_team_failure_returns_placeholder(self, cache):
        team = await _service(cache).get_team_info("India")

        assert team.name == "India"
        assert team.flag == "🇮🇳"
        assert team.playing11 == []
        assert cache.get("team_India") is None
