"""
Cross-source match reconciliation.

Providers do not share match ids, so two records describe the same match
when their teams agree:

1. Team names are normalized (lowercase, accents stripped, all whitespace
   removed), so "South Africa" and "southafrica" compare equal.
2. Names that still differ are compared with RapidFuzz token-sort
   similarity against settings.team_match_threshold.
3. The team pair is unordered: "India vs Australia" and
   "Australia vs India" are the same fixture.
4. When both records carry a calendar date and the dates differ, they are
   different matches (a return fixture between the same two teams).

When records merge, the first one seen keeps every field it has; fields it
left empty (venue, score, result, match time, dates) are filled from the
later duplicate.
"""

import logging
import unicodedata
from typing import Iterable, Optional

from rapidfuzz import fuzz

from cricpulse.config import settings
from cricpulse.scrape.base import MatchRecord

logger = logging.getLogger(__name__)

# Fields copied from a duplicate when the kept record has nothing
FILLABLE_FIELDS = ("venue", "score", "result", "match_time", "date", "date_time_gmt")


def normalize_team_name(name: Optional[str]) -> str:
    """
    Normalize a team name for identity comparison.

    Examples:
        >>> normalize_team_name("South  Africa")
        'southafrica'
        >>> normalize_team_name("Curaçao")
        'curacao'
    """
    if not name:
        return ""

    normalized = unicodedata.normalize("NFD", name.lower())
    normalized = "".join(
        char for char in normalized
        if unicodedata.category(char) != "Mn"  # Mn = Mark, Nonspacing
    )
    return "".join(normalized.split())


def same_team(name1: str, name2: str, threshold: Optional[float] = None) -> bool:
    """
    Whether two scraped team names refer to the same team.

    Args:
        name1: First team name (raw)
        name2: Second team name (raw)
        threshold: Minimum similarity (0-1), default settings.team_match_threshold
    """
    n1 = normalize_team_name(name1)
    n2 = normalize_team_name(name2)
    if not n1 or not n2:
        return False
    if n1 == n2:
        return True

    if threshold is None:
        threshold = settings.team_match_threshold
    return fuzz.token_sort_ratio(n1, n2) / 100.0 >= threshold


def match_identity(record: MatchRecord) -> frozenset[str]:
    """Unordered normalized team pair of a record."""
    return frozenset(normalize_team_name(team) for team in record.teams if team)


def _calendar_date(record: MatchRecord) -> Optional[str]:
    value = record.date or record.date_time_gmt
    if not value or len(value) < 10:
        return None
    return value[:10]


def is_same_match(a: MatchRecord, b: MatchRecord, threshold: Optional[float] = None) -> bool:
    """
    Whether two records describe the same real match.

    Records without two distinct teams never match anything.
    """
    if len(a.teams) < 2 or len(b.teams) < 2:
        return False

    a1, a2 = a.teams[0], a.teams[1]
    b1, b2 = b.teams[0], b.teams[1]
    teams_agree = (
        (same_team(a1, b1, threshold) and same_team(a2, b2, threshold))
        or (same_team(a1, b2, threshold) and same_team(a2, b1, threshold))
    )
    if not teams_agree:
        return False

    date_a = _calendar_date(a)
    date_b = _calendar_date(b)
    if date_a and date_b and date_a != date_b:
        return False
    return True


def _fill_missing(kept: MatchRecord, duplicate: MatchRecord) -> None:
    for name in FILLABLE_FIELDS:
        if not getattr(kept, name) and getattr(duplicate, name):
            setattr(kept, name, getattr(duplicate, name))


def merge_matches(
    existing: list[MatchRecord],
    incoming: Iterable[MatchRecord],
    threshold: Optional[float] = None,
) -> list[MatchRecord]:
    """
    Merge incoming records into an existing list, in place.

    Incoming duplicates of an existing record (or of an earlier incoming
    record) only contribute fields the kept record is missing.

    Returns:
        The same `existing` list, for chaining
    """
    added = 0
    for record in incoming:
        kept = next((m for m in existing if is_same_match(m, record, threshold)), None)
        if kept is None:
            existing.append(record)
            added += 1
        else:
            _fill_missing(kept, record)

    logger.debug(f"Merged {added} new matches ({len(existing)} total)")
    return existing


def dedupe_matches(records: Iterable[MatchRecord]) -> list[MatchRecord]:
    """Collapse duplicates within a single source's output (first seen wins)."""
    return merge_matches([], records)
