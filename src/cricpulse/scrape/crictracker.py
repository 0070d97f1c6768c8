"""
CricTracker scraper (last-resort source for live matches).

CricTracker renders its match widgets from scripts, so the preferred path
is the BrowserFetcher. When the browser fails at any step (launch,
navigation, reading the page, shutdown) the plain HTTP fetch is tried; the server-rendered HTML carries
fewer widgets but often still lists the day's fixtures in article cards.

Most "X vs Y" headlines on the site are editorial (predictions, fantasy
tips, previews), so every candidate is checked against the exclusion
vocabulary before it becomes a match.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError

from cricpulse.config import settings
from cricpulse.db.models import utcnow
from cricpulse.errors import FetchError
from cricpulse.scrape.base import MatchRecord
from cricpulse.scrape.cricbuzz import build_match, is_fixture_row, match_id_from_href, split_teams
from cricpulse.scrape.fetch import BrowserFetcher, HttpFetcher
from cricpulse.scrape.parsers.inference import parse_innings_score
from cricpulse.scrape.parsers.merge import dedupe_matches
from cricpulse.scrape.parsers.rules import FieldRule, MarkupRule, apply_markup_rules, run_strategies

logger = logging.getLogger(__name__)

SOURCE = "crictracker"

# Rendered once the match widgets have loaded
WIDGET_SELECTOR = '[class*="match"], [class*="score"], .match-card, .live-match'

_TITLE = re.compile(r".+\s+vs\.?\s+.+", re.IGNORECASE)

_CARD_FIELDS = (
    FieldRule("title", ("h3", "h4", "h2", ".title", '[class*="title"]', "a"), pattern=_TITLE),
    FieldRule("href", ("a[href]",), attr="href"),
    FieldRule("status", (".status", '[class*="status"]', ".live", ".match-status")),
    FieldRule("scores", (".score", '[class*="score"]', ".match-score"), many=True),
    FieldRule("venue", (".venue", '[class*="venue"]', ".location", ".match-venue")),
    FieldRule("format", (".format", '[class*="format"]', ".match-type")),
)

MATCH_CARD_RULES = (
    MarkupRule("match-card", ".match-card, .ct-match-card, [class*='match-card']", _CARD_FIELDS, ("title",)),
    MarkupRule("live-match", ".live-match, [class*='live-match']", _CARD_FIELDS, ("title",)),
    MarkupRule("score-card", ".score-card, [class*='score-card']", _CARD_FIELDS, ("title",)),
    MarkupRule("match-item", ".match-item, article.match, [data-match-id]", _CARD_FIELDS, ("title",)),
)

ARTICLE_RULES = (
    MarkupRule(
        name="article-card",
        container="article, .post, [class*='card'], [class*='match']",
        fields=(
            FieldRule("title", ("h1", "h2", "h3", "h4", "h5", ".title", "a"), pattern=_TITLE),
            FieldRule("href", ("a[href]",), attr="href"),
        ),
        required=("title",),
    ),
)


def _rows_to_matches(rows: list[dict], now: datetime) -> list[MatchRecord]:
    records = []
    for row in rows:
        if not is_fixture_row(row):
            continue
        title = row["title"]
        teams = split_teams(title)

        record = build_match(
            teams,
            now,
            match_id=match_id_from_href(row.get("href")),
            description=" ".join(filter(None, (title, row.get("format")))),
            status=row.get("status") or "Live",
            venue=row.get("venue") or "",
            scores=[
                s for s in (parse_innings_score(text) for text in row.get("scores") or []) if s
            ],
            source=SOURCE,
        )
        records.append(record)
    return dedupe_matches(records)


def parse_matches(html: str, now: Optional[datetime] = None) -> list[MatchRecord]:
    """
    Parse CricTracker match widgets, falling back to article cards.

    Raises:
        ExtractionEmpty: If neither widgets nor cards name a fixture
    """
    now = now or utcnow()

    def from_widgets(doc: str) -> list[MatchRecord]:
        rows = apply_markup_rules(BeautifulSoup(doc, "lxml"), MATCH_CARD_RULES, keep=is_fixture_row)
        return _rows_to_matches(rows, now)

    def from_articles(doc: str) -> list[MatchRecord]:
        rows = apply_markup_rules(BeautifulSoup(doc, "lxml"), ARTICLE_RULES, keep=is_fixture_row)
        return _rows_to_matches(rows, now)

    return run_strategies("crictracker", html, (
        ("widgets", from_widgets),
        ("articles", from_articles),
    ))


class CricTrackerScraper:
    """
    Fetches CricTracker's homepage, rendered if possible.

    Args:
        http_fetcher: Plain fetcher used when the browser path fails
        browser_factory: Callable returning a BrowserFetcher context manager
    """

    def __init__(
        self,
        http_fetcher: Optional[HttpFetcher] = None,
        browser_factory=BrowserFetcher,
        base_url: Optional[str] = None,
    ):
        self.http_fetcher = http_fetcher or HttpFetcher()
        self.browser_factory = browser_factory
        self.base_url = (base_url or settings.crictracker_base_url).rstrip("/")

    async def fetch_rendered(self) -> list[MatchRecord]:
        """Load the homepage in a headless browser and parse it."""
        async with self.browser_factory() as browser:
            html = await browser.fetch(f"{self.base_url}/", wait_for_selector=WIDGET_SELECTOR)
        return parse_matches(html)

    async def fetch_simple(self) -> list[MatchRecord]:
        """Parse the server-rendered homepage without running scripts."""
        html = await self.http_fetcher.fetch(f"{self.base_url}/")
        return parse_matches(html)

    async def fetch_matches(self) -> list[MatchRecord]:
        """
        Rendered scrape, falling back to the plain fetch if the browser fails.

        Raises:
            FetchError: If both paths fail to retrieve the page
            ExtractionEmpty: If the page was retrieved but held no fixtures
        """
        try:
            return await self.fetch_rendered()
        except (FetchError, PlaywrightError) as e:
            logger.warning(f"CricTracker browser fetch failed, trying plain HTTP: {e}")
        return await self.fetch_simple()
