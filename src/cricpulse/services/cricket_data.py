"""
Fallback orchestrator for external cricket data.

Every read goes cache first. On a miss the sources are tried in priority
order, their records merged, and the result written back to the cache
with a key-specific TTL. Nothing in here raises to the caller: a source
that fails (FetchError) or returns nothing usable (ExtractionEmpty) is
logged and the next source is tried, and the worst outcome is an empty
list or None. Empty results are never cached, so the next request tries
the sources again.

Live matches:
    1. Cricbuzz live-scores page (primary)
    2. Cricbuzz homepage schedule (secondary, always tried, merged in)
    3. CricTracker, rendered then plain (tertiary, only if 1+2 found nothing)

Usage:
    service = create_service()
    matches = await service.get_live_matches()
"""

import json
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from cricpulse.cache.store import (
    LIVE_MATCHES_KEY,
    CacheStore,
    match_key,
    player_key,
    series_key,
    team_key,
    ttl_for_key,
)
from cricpulse.config import settings
from cricpulse.db.session import get_session_factory
from cricpulse.errors import ExtractionEmpty, FetchError
from cricpulse.scrape.base import MatchRecord, PlayerInfo, SeriesRecord, TeamInfo
from cricpulse.scrape.cricbuzz import CricbuzzScraper
from cricpulse.scrape.crictracker import CricTrackerScraper
from cricpulse.scrape.fetch import HttpFetcher
from cricpulse.scrape.parsers.merge import merge_matches
from cricpulse.scrape.wikipedia import WikipediaScraper, team_flag

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CricketDataService:
    """
    Cache-backed access to live matches, series, match details, players
    and teams.

    Args:
        cache: CacheStore used for every read and write-back
        cricbuzz: Cricbuzz scraper (live scores, homepage, series, match pages)
        crictracker: CricTracker scraper (last-resort live matches)
        wikipedia: Wikipedia scraper (teams and players)
    """

    def __init__(
        self,
        cache: CacheStore,
        cricbuzz: Optional[CricbuzzScraper] = None,
        crictracker: Optional[CricTrackerScraper] = None,
        wikipedia: Optional[WikipediaScraper] = None,
    ):
        fetcher = HttpFetcher()
        self.cache = cache
        self.cricbuzz = cricbuzz or CricbuzzScraper(fetcher)
        self.crictracker = crictracker or CricTrackerScraper(fetcher)
        self.wikipedia = wikipedia or WikipediaScraper(fetcher)

    # =========================================================================
    # Live matches
    # =========================================================================

    async def get_live_matches(self, force_refresh: bool = False) -> list[MatchRecord]:
        """
        Live, today's and upcoming matches from all sources, deduplicated.

        Args:
            force_refresh: Skip the cache read (the result is still cached)

        Returns:
            Matches, or [] if every source failed
        """
        if not force_refresh:
            cached = self._read_cached(LIVE_MATCHES_KEY, _decode_matches)
            if cached is not None:
                logger.info(f"Using cached live matches ({len(cached)})")
                return cached

        failures: list[str] = []
        matches: list[MatchRecord] = []

        primary = await self._attempt("cricbuzz live scores", self.cricbuzz.fetch_live_scores, failures)
        if primary:
            merge_matches(matches, primary)

        secondary = await self._attempt("cricbuzz homepage", self.cricbuzz.fetch_homepage_matches, failures)
        if secondary:
            before = len(matches)
            merge_matches(matches, secondary)
            logger.info(f"Homepage added {len(matches) - before} matches not on the live-scores page")

        if not matches:
            tertiary = await self._attempt("crictracker", self.crictracker.fetch_matches, failures)
            if tertiary:
                merge_matches(matches, tertiary)

        if not matches:
            logger.warning(f"No live matches from any source: {'; '.join(failures)}")
            return []

        self._write_cached(LIVE_MATCHES_KEY, _encode(matches))
        logger.info(f"Fetched {len(matches)} live matches")
        return matches

    # =========================================================================
    # Series, match details
    # =========================================================================

    async def get_series(self, offset: int = 0) -> list[SeriesRecord]:
        """
        One page of the series listing starting at `offset`.

        Returns:
            Up to settings.series_page_size series, or [] on failure
        """
        offset = max(0, offset)
        key = series_key(offset)
        cached = self._read_cached(key, _decode_series)
        if cached is not None:
            return cached

        failures: list[str] = []
        series = await self._attempt("cricbuzz series", self.cricbuzz.fetch_series, failures)
        page = (series or [])[offset:offset + settings.series_page_size]
        if not page:
            logger.warning(f"No series at offset {offset}: {'; '.join(failures) or 'past the end'}")
            return []

        self._write_cached(key, _encode(page))
        return page

    async def get_match_details(self, match_id: str) -> Optional[MatchRecord]:
        """A single match by id, or None if it cannot be scraped."""
        key = match_key(match_id)
        cached = self._read_cached(key, _decode_match)
        if cached is not None:
            return cached

        failures: list[str] = []
        match = await self._attempt(
            f"cricbuzz match {match_id}",
            lambda: self.cricbuzz.fetch_match_details(match_id),
            failures,
        )
        if match is None:
            return None

        self._write_cached(key, json.dumps(match.to_dict()))
        return match

    # =========================================================================
    # Players and teams
    # =========================================================================

    async def get_player_info(self, name: str) -> Optional[PlayerInfo]:
        """Biography and career stats for a player, or None if not found."""
        key = player_key(name)
        cached = self._read_cached(key, _decode_player)
        if cached is not None:
            return cached

        failures: list[str] = []
        player = await self._attempt(
            f"wikipedia player {name}",
            lambda: self.wikipedia.fetch_player_info(name),
            failures,
        )
        if player is None:
            return None

        self._write_cached(key, json.dumps(player.to_dict()))
        return player

    async def get_team_info(self, name: str) -> TeamInfo:
        """
        Team with its listed players.

        Never None: on failure the team is returned with an empty playing11,
        and that placeholder is not cached.
        """
        key = team_key(name)
        cached = self._read_cached(key, _decode_team)
        if cached is not None:
            return cached

        failures: list[str] = []
        team = await self._attempt(
            f"wikipedia team {name}",
            lambda: self.wikipedia.fetch_team_info(name),
            failures,
        )
        if team is None:
            return TeamInfo(name=name, country=name, flag=team_flag(name), playing11=[])

        self._write_cached(key, json.dumps(team.to_dict()))
        return team

    # =========================================================================
    # Internals
    # =========================================================================

    async def _attempt(
        self,
        label: str,
        call: Callable[[], Awaitable[T]],
        failures: list[str],
    ) -> Optional[T]:
        """Run one source once. Failures are logged, recorded, and return None."""
        try:
            return await call()
        except FetchError as e:
            logger.warning(f"{label} unavailable: {e}")
            failures.append(f"{label}: {e.reason}")
        except ExtractionEmpty as e:
            logger.info(f"{label} returned nothing usable: {e}")
            failures.append(f"{label}: empty")
        except Exception as e:
            logger.exception(f"{label} failed unexpectedly")
            failures.append(f"{label}: {type(e).__name__}")
        return None

    def _read_cached(self, key: str, decode: Callable[[str], T]) -> Optional[T]:
        raw = self.cache.get(key)
        if raw is None:
            return None
        try:
            return decode(raw)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Discarding undecodable cache entry '{key}': {e}")
            return None

    def _write_cached(self, key: str, payload: str) -> None:
        self.cache.put(key, payload, ttl_for_key(key))


def _encode(records: list) -> str:
    return json.dumps([record.to_dict() for record in records])


def _decode_matches(raw: str) -> list[MatchRecord]:
    return [MatchRecord.from_dict(item) for item in json.loads(raw)]


def _decode_series(raw: str) -> list[SeriesRecord]:
    return [SeriesRecord.from_dict(item) for item in json.loads(raw)]


def _decode_match(raw: str) -> MatchRecord:
    return MatchRecord.from_dict(json.loads(raw))


def _decode_player(raw: str) -> PlayerInfo:
    return PlayerInfo.from_dict(json.loads(raw))


def _decode_team(raw: str) -> TeamInfo:
    return TeamInfo.from_dict(json.loads(raw))


def create_service() -> CricketDataService:
    """Service wired to the configured database and the live sites."""
    return CricketDataService(CacheStore(get_session_factory()))
