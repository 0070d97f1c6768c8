"""
Web scraping module for CricPulse.

Data comes from third-party pages with no stable API:
- Cricbuzz (cricbuzz.com): live scores, schedule strip, series, match pages
- CricTracker (crictracker.com): last-resort live matches, script-rendered
- Wikipedia: team squads, player biographies and career statistics

Key components:
- HttpFetcher / BrowserFetcher: document retrieval (httpx, Playwright)
- CricbuzzScraper, CricTrackerScraper, WikipediaScraper: fetch + parse
- parsers: declarative rule tables, text inference and match reconciliation
"""

from cricpulse.scrape.base import MatchRecord, PlayerInfo, SeriesRecord, TeamInfo
from cricpulse.scrape.cricbuzz import CricbuzzScraper
from cricpulse.scrape.crictracker import CricTrackerScraper
from cricpulse.scrape.fetch import BrowserFetcher, HttpFetcher
from cricpulse.scrape.wikipedia import WikipediaScraper

__all__ = [
    "MatchRecord",
    "PlayerInfo",
    "SeriesRecord",
    "TeamInfo",
    "HttpFetcher",
    "BrowserFetcher",
    "CricbuzzScraper",
    "CricTrackerScraper",
    "WikipediaScraper",
]
