"""
Keyed TTL cache backed by the api_cache table.

Values are opaque strings (the orchestrator stores JSON). A key has at most
one row; put() overwrites it in place and get() ignores rows whose
expires_at has passed. Database failures never escape: a failed read is a
miss and a failed write is logged and reported as False.

Usage:
    from cricpulse.cache import CacheStore

    store = CacheStore(session_factory)
    store.put("live_matches", payload, ttl_for_key("live_matches"))
    cached = store.get("live_matches")
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from cricpulse.config import settings
from cricpulse.db.models import ApiCache, utcnow
from cricpulse.db.session import SessionFactory, session_scope
from cricpulse.errors import CacheReadError, CacheWriteError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


# Cache keys used by the orchestrator
LIVE_MATCHES_KEY = "live_matches"


def series_key(offset: int) -> str:
    return f"series_offset_{offset}"


def match_key(match_id: str) -> str:
    return f"match_{match_id}"


def player_key(name: str) -> str:
    return f"player_{name}"


def team_key(name: str) -> str:
    return f"team_{name}"


def ttl_for_key(key: str) -> timedelta:
    """
    TTL for a cache key, resolved from its prefix.

    Live data expires in about a minute, series listings last days,
    scraped biographies a day. Anything unrecognized gets the default.
    """
    if key == LIVE_MATCHES_KEY:
        return timedelta(seconds=settings.cache_live_matches_ttl_seconds)
    if key.startswith("match_"):
        return timedelta(seconds=settings.cache_match_ttl_seconds)
    if key.startswith("series_"):
        return timedelta(days=settings.cache_series_ttl_days)
    if key.startswith("player_"):
        return timedelta(hours=settings.cache_player_ttl_hours)
    if key.startswith("team_"):
        return timedelta(hours=settings.cache_team_ttl_hours)
    return timedelta(minutes=settings.cache_default_ttl_minutes)


class CacheStore:
    """
    TTL cache over the api_cache table.

    Args:
        session_factory: Callable returning a new SQLAlchemy Session
        clock: Callable returning the current naive-UTC time (tests inject a
            fake clock to step past expiry)
    """

    # Dialects supporting INSERT ... ON CONFLICT (key) DO UPDATE
    _UPSERT_DIALECTS = ("postgresql", "sqlite")

    def __init__(self, session_factory: SessionFactory, clock: Optional[Clock] = None):
        self.session_factory = session_factory
        self.clock = clock or utcnow

    def get(self, key: str) -> Optional[str]:
        """Return the cached value for `key`, or None if absent or expired."""
        try:
            return self._read(key)
        except CacheReadError as e:
            logger.warning(f"Cache read failed for '{key}': {e}", exc_info=e.__cause__)
            return None

    def put(self, key: str, value: str, ttl: timedelta) -> bool:
        """
        Store `value` under `key` until now + ttl.

        Returns:
            True if the row was written, False if the write failed
        """
        expires_at = self.clock() + ttl
        try:
            self._write(key, value, expires_at)
        except CacheWriteError as e:
            logger.error(f"Cache write failed for '{key}': {e}", exc_info=e.__cause__)
            return False
        logger.debug(f"Cached '{key}' until {expires_at.isoformat()}")
        return True

    # =========================================================================
    # Internals
    # =========================================================================

    def _read(self, key: str) -> Optional[str]:
        now = self.clock()
        try:
            with session_scope(self.session_factory) as session:
                return session.execute(
                    select(ApiCache.value)
                    .where(ApiCache.key == key)
                    .where(ApiCache.expires_at > now)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise CacheReadError(str(e)) from e

    def _write(self, key: str, value: str, expires_at: datetime) -> None:
        try:
            with session_scope(self.session_factory) as session:
                dialect = session.get_bind().dialect.name
                if dialect in self._UPSERT_DIALECTS:
                    self._upsert(session, dialect, key, value, expires_at)
                    return
        except SQLAlchemyError as e:
            logger.warning(f"Upsert failed for '{key}', falling back to replace: {e}")

        try:
            with session_scope(self.session_factory) as session:
                session.execute(delete(ApiCache).where(ApiCache.key == key))
                session.add(ApiCache(
                    key=key,
                    value=value,
                    expires_at=expires_at,
                    created_at=self.clock(),
                ))
        except SQLAlchemyError as e:
            raise CacheWriteError(str(e)) from e

    def _upsert(self, session, dialect: str, key: str, value: str, expires_at: datetime) -> None:
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert

        stmt = insert(ApiCache).values(
            key=key,
            value=value,
            expires_at=expires_at,
            created_at=self.clock(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ApiCache.key],
            set_={"value": stmt.excluded.value, "expires_at": stmt.excluded.expires_at},
        )
        session.execute(stmt)
