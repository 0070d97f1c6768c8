"""
Database module for CricPulse.

Provides SQLAlchemy ORM models. Session management lives in
cricpulse.db.session so that importing the models never opens an engine.

Usage:
    from cricpulse.db import ApiCache, Team
    from cricpulse.db.session import get_session

    with get_session() as session:
        teams = session.query(Team).all()
"""

from cricpulse.db.models import (
    ApiCache,
    Base,
    Player,
    PlayerStats,
    Team,
    utcnow,
)

__all__ = [
    # Base
    "Base",
    # Models
    "ApiCache",
    "Team",
    "Player",
    "PlayerStats",
    # Helpers
    "utcnow",
]
