"""
Services built on top of the scrapers and the database.

- cricket_data: cache-backed fallback orchestrator (live matches, series,
  match details, players, teams)
- bulk_scrape: write-back of teams, players and stats
- predictions: match predictions from a hosted model
"""
