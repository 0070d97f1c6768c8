"""
SQLAlchemy ORM models for CricPulse.

The acquisition core owns a single table, api_cache, holding serialized
scrape results with an expiry timestamp. The remaining tables are the
write-back targets of bulk scraping: teams, their players, and per-format
career statistics scraped from Wikipedia.

Tables:
- api_cache: Keyed TTL cache of serialized payloads (one row per key)
- teams: National teams
- players: Player biographies
- player_stats: Career statistics per player and format (TEST, ODI, T20I)
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the database stores naive UTC)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Cache
# =============================================================================

class ApiCache(Base):
    """
    Cached result of an external data query.

    There is at most one row per key. Refreshing a key overwrites the row in
    place; rows are never deleted, an expired row is simply ignored by reads
    until the next refresh replaces it.

    Keys name the logical query, e.g. 'live_matches', 'series_offset_50',
    'player_Virat Kohli'.
    """
    __tablename__ = "api_cache"

    id: Mapped[int] = mapped_column(primary_key=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)

    # Opaque payload (JSON produced by the orchestrator)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index("idx_api_cache_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<ApiCache(key='{self.key}', expires_at={self.expires_at})>"


# =============================================================================
# Teams and Players
# =============================================================================

class Team(Base):
    """National cricket team."""
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    country: Mapped[str] = mapped_column(String(255), nullable=False)
    flag: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # Emoji

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    players: Mapped[list["Player"]] = relationship(back_populates="team")

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name='{self.name}')>"


class Player(Base):
    """
    Player biography scraped from Wikipedia.

    Players are matched by their scraped name. Re-scraping a player only
    overwrites the fields the new scrape actually found.
    """
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    team_id: Mapped[Optional[int]] = mapped_column(ForeignKey("teams.id"), nullable=True)

    role: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    batting_style: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    bowling_style: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    date_of_birth: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    place_of_birth: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    wikipedia_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_in_playing11: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    team: Mapped[Optional["Team"]] = relationship(back_populates="players")
    stats: Mapped[list["PlayerStats"]] = relationship(
        back_populates="player", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_players_name", "name"),
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.name}')>"


class PlayerStats(Base):
    """Career statistics for one player in one format."""
    __tablename__ = "player_stats"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"))
    format: Mapped[str] = mapped_column(String(50), nullable=False)  # 'TEST', 'ODI', 'T20I'

    matches: Mapped[int] = mapped_column(Integer, default=0)
    runs: Mapped[int] = mapped_column(Integer, default=0)
    wickets: Mapped[int] = mapped_column(Integer, default=0)

    # Averages and rates are kept as displayed ("53.4", "-")
    batting_average: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    bowling_average: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    strike_rate: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    economy_rate: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    highest_score: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    best_bowling: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    centuries: Mapped[int] = mapped_column(Integer, default=0)
    half_centuries: Mapped[int] = mapped_column(Integer, default=0)
    five_wickets: Mapped[int] = mapped_column(Integer, default=0)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    player: Mapped["Player"] = relationship(back_populates="stats")

    __table_args__ = (
        UniqueConstraint("player_id", "format", name="uq_player_stats_format"),
    )

    def __repr__(self) -> str:
        return f"<PlayerStats(player_id={self.player_id}, format='{self.format}')>"
