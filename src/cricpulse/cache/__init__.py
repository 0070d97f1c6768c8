"""
Caching for CricPulse.

- store: persistent TTL cache of scrape results (api_cache table)
- memory: bounded in-process cache owned by the web app (predictions)
"""

from cricpulse.cache.memory import PredictionCache
from cricpulse.cache.store import (
    LIVE_MATCHES_KEY,
    CacheStore,
    match_key,
    player_key,
    series_key,
    team_key,
    ttl_for_key,
)

__all__ = [
    "CacheStore",
    "PredictionCache",
    "LIVE_MATCHES_KEY",
    "match_key",
    "player_key",
    "series_key",
    "team_key",
    "ttl_for_key",
]
