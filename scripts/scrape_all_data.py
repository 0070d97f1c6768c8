#!/usr/bin/env python3
"""
Bulk scrape of national teams and their players.

Fetches each team's Wikipedia page, saves the team, then scrapes and saves
every listed player with their career statistics. Requests are spaced out
(a few seconds between players and between teams), so a full run takes
several minutes.

Usage:
    # All major teams
    python scripts/scrape_all_data.py

    # A subset, with faster pacing
    python scripts/scrape_all_data.py --teams "India,New Zealand" --player-delay 1
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cricpulse.config import settings
from cricpulse.db.session import get_session_factory
from cricpulse.services.bulk_scrape import MAJOR_TEAMS, BulkScraper
from cricpulse.services.cricket_data import create_service

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_scrape(teams: tuple[str, ...], player_delay: float, team_delay: float) -> int:
    scraper = BulkScraper(
        create_service(),
        get_session_factory(),
        player_delay=player_delay,
        team_delay=team_delay,
    )
    stats = await scraper.scrape_all_data(teams)

    print(f"\n{stats.summary()}")
    for error in stats.errors:
        print(f"  - {error}")
    return 1 if stats.teams == 0 else 0


def main():
    parser = argparse.ArgumentParser(description="Scrape teams and players into the database")
    parser.add_argument("--teams", default=",".join(MAJOR_TEAMS),
                        help="Comma-separated team names (default: all major teams)")
    parser.add_argument("--player-delay", type=float, default=settings.scrape_player_delay,
                        help="Seconds to wait between players")
    parser.add_argument("--team-delay", type=float, default=settings.scrape_team_delay,
                        help="Seconds to wait between teams")
    args = parser.parse_args()

    teams = tuple(t.strip() for t in args.teams.split(",") if t.strip())
    if not teams:
        parser.error("--teams must name at least one team")

    sys.exit(asyncio.run(run_scrape(teams, args.player_delay, args.team_delay)))


if __name__ == "__main__":
    main()
