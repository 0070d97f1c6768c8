"""
CricPulse - Cricket Data Backend

Collects live scores, series listings and player biographies from
third-party cricket sites and serves them from a TTL cache.

Main components:
- cache: Keyed TTL cache stored in the database
- scrape: Fetchers and extractors for Cricbuzz, CricTracker and Wikipedia
- services: Fallback orchestration, bulk scraping and match predictions
- db: SQLAlchemy models and session management
- web: FastAPI JSON API
"""

__version__ = "1.0.0"
