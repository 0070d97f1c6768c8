"""
Bulk scrape of teams and players into the database.

Walks the major national teams, saves each team, then scrapes every player
listed in its playing XI and saves the biography and per-format career
stats. Wikipedia is hit politely: fixed delays between players and between
teams. A team or player that fails is logged and skipped; everything saved
before the failure stays saved (each entity commits on its own).

Usage:
    from cricpulse.services.bulk_scrape import BulkScraper

    scraper = BulkScraper(service, session_factory)
    stats = await scraper.scrape_all_data()
    print(stats.summary())
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cricpulse.config import settings
from cricpulse.db.models import Player, PlayerStats, Team
from cricpulse.db.session import SessionFactory, session_scope
from cricpulse.scrape.base import FormatStats, PlayerInfo, TeamInfo
from cricpulse.services.cricket_data import CricketDataService

logger = logging.getLogger(__name__)

MAJOR_TEAMS = ("India", "Australia", "England", "Pakistan", "South Africa")

# PlayerInfo.stats key -> player_stats.format
STAT_FORMATS = {"Test": "TEST", "ODI": "ODI", "T20I": "T20I"}

FULL_NAME_MAX_LENGTH = 1000


@dataclass
class BulkScrapeStats:
    """Counts from a bulk scrape run."""
    teams: int = 0
    players: int = 0
    stats: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"teams": self.teams, "players": self.players, "stats": self.stats}

    def summary(self) -> str:
        """Return a human-readable summary of the run."""
        lines = [
            "Bulk scrape complete:",
            f"  Teams saved:          {self.teams}",
            f"  Players saved:        {self.players}",
            f"  Stats records saved:  {self.stats}",
        ]
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            for err in self.errors[:5]:
                lines.append(f"    - {err}")
            if len(self.errors) > 5:
                lines.append(f"    ... and {len(self.errors) - 5} more")
        return "\n".join(lines)


# =============================================================================
# Persistence
# =============================================================================

def save_team(session: Session, info: TeamInfo) -> Team:
    """Insert or update a team by name."""
    team = session.execute(select(Team).where(Team.name == info.name)).scalar_one_or_none()
    if team is None:
        team = Team(name=info.name, country=info.country, flag=info.flag)
        session.add(team)
        logger.info(f"Created team: {info.name}")
    else:
        team.country = info.country
        team.flag = info.flag
        logger.info(f"Updated team: {info.name} (ID: {team.id})")
    session.flush()
    return team


def _parse_dob(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug(f"Unparseable date of birth: {value}")
        return None


def save_player(
    session: Session,
    info: PlayerInfo,
    team_id: Optional[int] = None,
    is_in_playing11: Optional[bool] = None,
) -> Player:
    """
    Insert or update a player by name.

    Scraped values win; where the scrape found nothing the stored value is
    kept. is_in_playing11=None leaves the stored flag alone.
    """
    full_name = info.full_name[:FULL_NAME_MAX_LENGTH] if info.full_name else None
    scraped = {
        "full_name": full_name,
        "team_id": team_id,
        "role": info.role,
        "batting_style": info.batting_style,
        "bowling_style": info.bowling_style,
        "date_of_birth": _parse_dob(info.date_of_birth),
        "place_of_birth": info.place_of_birth,
        "image_url": info.image_url,
        "wikipedia_url": info.wikipedia_url,
    }

    player = session.execute(select(Player).where(Player.name == info.name)).scalar_one_or_none()
    if player is None:
        player = Player(name=info.name, is_in_playing11=bool(is_in_playing11), **scraped)
        session.add(player)
        logger.info(f"Created player: {info.name}")
    else:
        for column, value in scraped.items():
            if value is not None:
                setattr(player, column, value)
        if is_in_playing11 is not None:
            player.is_in_playing11 = is_in_playing11
        logger.info(f"Updated player: {info.name} (ID: {player.id})")

    session.flush()
    return player


def save_player_stats(session: Session, player: Player, stats: dict[str, FormatStats]) -> int:
    """
    Upsert one player_stats row per format that has data.

    Returns:
        Number of rows written
    """
    written = 0
    for key, fmt in STAT_FORMATS.items():
        values = stats.get(key)
        if values is None or not values.has_data():
            continue

        row = session.execute(
            select(PlayerStats)
            .where(PlayerStats.player_id == player.id)
            .where(PlayerStats.format == fmt)
        ).scalar_one_or_none()
        if row is None:
            row = PlayerStats(player_id=player.id, format=fmt)
            session.add(row)

        row.matches = values.matches
        row.runs = values.runs
        row.wickets = values.wickets
        row.batting_average = values.batting_average
        row.bowling_average = values.bowling_average
        row.strike_rate = values.strike_rate
        row.economy_rate = values.economy_rate
        row.highest_score = values.highest_score
        row.best_bowling = values.best_bowling
        row.centuries = values.centuries
        row.half_centuries = values.half_centuries
        row.five_wickets = values.five_wickets
        written += 1

    session.flush()
    return written


# =============================================================================
# Orchestration
# =============================================================================

class BulkScraper:
    """
    Scrapes teams and players and writes them to the database.

    Args:
        service: Data service used to fetch (and cache) team and player pages
        session_factory: Callable returning a new Session
        player_delay: Seconds between players (default settings.scrape_player_delay)
        team_delay: Seconds between teams (default settings.scrape_team_delay)
        sleep: Awaitable sleep, replaced in tests
    """

    def __init__(
        self,
        service: CricketDataService,
        session_factory: SessionFactory,
        player_delay: Optional[float] = None,
        team_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.service = service
        self.session_factory = session_factory
        self.player_delay = settings.scrape_player_delay if player_delay is None else player_delay
        self.team_delay = settings.scrape_team_delay if team_delay is None else team_delay
        self.sleep = sleep

    async def scrape_and_save_player(
        self,
        name: str,
        team_id: Optional[int] = None,
        is_in_playing11: Optional[bool] = None,
        stats: Optional[BulkScrapeStats] = None,
    ) -> Optional[int]:
        """
        Scrape one player and save it with its career stats.

        Returns:
            The player's id, or None if the player was not found or not saved
        """
        stats = stats if stats is not None else BulkScrapeStats()
        info = await self.service.get_player_info(name)
        if info is None:
            logger.warning(f"Could not find info for player: {name}")
            stats.errors.append(f"{name}: not found")
            return None

        try:
            with session_scope(self.session_factory) as session:
                player = save_player(session, info, team_id, is_in_playing11)
                stats.stats += save_player_stats(session, player, info.stats)
                player_id = player.id
        except SQLAlchemyError as e:
            logger.error(f"Failed to save player {name}: {e}")
            stats.errors.append(f"{name}: {type(e).__name__}")
            return None

        stats.players += 1
        return player_id

    async def scrape_and_save_team(
        self,
        name: str,
        stats: Optional[BulkScrapeStats] = None,
    ) -> Optional[int]:
        """
        Scrape a team, save it, then scrape and save its playing XI.

        Returns:
            The team's id, or None if the team could not be saved
        """
        stats = stats if stats is not None else BulkScrapeStats()
        logger.info(f"Scraping team: {name}")
        info = await self.service.get_team_info(name)

        try:
            with session_scope(self.session_factory) as session:
                team_id = save_team(session, info).id
        except SQLAlchemyError as e:
            logger.error(f"Failed to save team {name}: {e}")
            stats.errors.append(f"{name}: {type(e).__name__}")
            return None
        stats.teams += 1

        if not info.playing11:
            logger.warning(f"No playing XI found for {name}")
            return team_id

        logger.info(f"Found {len(info.playing11)} players for {name}")
        for i, player_name in enumerate(info.playing11):
            if i > 0:
                await self.sleep(self.player_delay)
            try:
                await self.scrape_and_save_player(player_name, team_id, True, stats)
            except Exception as e:
                logger.exception(f"Error scraping player {player_name}")
                stats.errors.append(f"{player_name}: {type(e).__name__}")

        return team_id

    async def scrape_all_data(self, teams: tuple[str, ...] = MAJOR_TEAMS) -> BulkScrapeStats:
        """Scrape every team in `teams`, one after another."""
        stats = BulkScrapeStats()
        logger.info(f"Starting bulk scrape of {len(teams)} teams")

        for i, team in enumerate(teams):
            if i > 0:
                await self.sleep(self.team_delay)
            try:
                await self.scrape_and_save_team(team, stats)
            except Exception as e:
                logger.exception(f"Error scraping team {team}")
                stats.errors.append(f"{team}: {type(e).__name__}")

        logger.info(stats.summary())
        return stats
