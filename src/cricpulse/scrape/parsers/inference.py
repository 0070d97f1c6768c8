"""
Field inference from free-form match text.

Scraped pages rarely label their fields. A card says "2nd T20I • Dubai" or
"Today • 6:30 PM", a status line says "India won by 5 wkts". The functions
here turn such text into typed values using ordered rule tables: the first
rule that matches wins, and every function has a documented fallback
instead of raising.

Tables:
- MATCH_TYPE_RULES: format detection, defaulting to ODI
- SCHEDULE_RULES: "Today • 6:30 PM" style labels and start times
- ENDED_TERMS / NOT_STARTED_TERMS: status flags
- RESULT_RULES: result summaries
- EXCLUDED_TERMS: editorial content that must not become a match
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from cricpulse.scrape.base import DEFAULT_MATCH_TYPE, InningsScore

# =============================================================================
# Match type
# =============================================================================

_FORMAT_NAMES = {"t20i": "T20I", "odi": "ODI", "test": "Test"}

MATCH_TYPE_RULES: tuple[tuple[re.Pattern, Optional[str]], ...] = (
    # "2nd T20I", "3rd ODI", "1st Test" - format taken from the match group
    (re.compile(r"\b\d+(?:st|nd|rd|th)?\s*(T20I|ODI|Test)\b", re.IGNORECASE), None),
    (re.compile(r"\bT-?20Is?\b", re.IGNORECASE), "T20I"),
    (re.compile(r"\bT-?20\b|\bTwenty20\b|\b20-20\b", re.IGNORECASE), "T20I"),
    (re.compile(r"\bTests?\b"), "Test"),
    (re.compile(r"\bODIs?\b|\bOne[- ]Day\b", re.IGNORECASE), "ODI"),
)


def infer_match_type(text: Optional[str]) -> str:
    """
    Detect the match format in a description.

    Examples:
        >>> infer_match_type("Bangladesh vs Ireland, 2nd T20I")
        'T20I'
        >>> infer_match_type("1st Test, Day 3")
        'Test'
        >>> infer_match_type("Warm-up match")
        'ODI'
    """
    if not text:
        return DEFAULT_MATCH_TYPE

    for pattern, match_type in MATCH_TYPE_RULES:
        found = pattern.search(text)
        if not found:
            continue
        if match_type is None:
            return _FORMAT_NAMES[found.group(1).lower()]
        return match_type

    return DEFAULT_MATCH_TYPE


# =============================================================================
# Schedule
# =============================================================================

_WEEKDAYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


@dataclass
class Schedule:
    """A parsed kick-off: display label, concrete start time, and the raw text."""

    label: str            # 'Today' or 'Next'
    starts_at: datetime
    match_time: str       # "Today • 6:30 PM"


SCHEDULE_RULES: tuple[re.Pattern, ...] = (
    # Cricbuzz cards: "Today • 6:30 PM", "Tomorrow · 10:00 AM"
    re.compile(
        r"(Today|Tomorrow|Next)\s*[•·]\s*(\d{1,2}):(\d{2})\s*(AM|PM)",
        re.IGNORECASE,
    ),
    # Embedded payload text: "Today" ... "12:00 PM" ... " GMT"
    re.compile(
        r"(Today|Tomorrow|Mon|Tue|Wed|Thu|Fri|Sat|Sun)[^\"]*?(\d{1,2}):(\d{2})\s*(AM|PM)[^\"]*?GMT",
        re.IGNORECASE,
    ),
)

_BARE_TIME = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)?", re.IGNORECASE)


def _to_24h(hours: int, ampm: Optional[str]) -> int:
    if ampm:
        ampm = ampm.upper()
        if ampm == "PM" and hours != 12:
            return hours + 12
        if ampm == "AM" and hours == 12:
            return 0
    return hours


def _at(now: datetime, hours: int, minutes: int, next_day: bool) -> Optional[datetime]:
    if hours > 23 or minutes > 59:
        return None
    day = now + timedelta(days=1) if next_day else now
    return day.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def infer_schedule(text: Optional[str], now: datetime) -> Optional[Schedule]:
    """
    Parse a kick-off label relative to `now`.

    "Today" keeps the date, "Tomorrow", "Next" and weekday labels shift it
    by one day. A bare "7:30 PM" is only accepted when the text also says
    today or tomorrow.

    Returns:
        Schedule, or None if the text holds no recognizable time
    """
    if not text:
        return None

    for pattern in SCHEDULE_RULES:
        found = pattern.search(text)
        if not found:
            continue
        day_label, hours, minutes, ampm = found.groups()
        is_today = day_label.lower() == "today"
        starts_at = _at(now, _to_24h(int(hours), ampm), int(minutes), next_day=not is_today)
        if starts_at is None:
            continue
        return Schedule(
            label="Today" if is_today else "Next",
            starts_at=starts_at,
            match_time=f"{day_label.capitalize()} • {int(hours)}:{minutes} {ampm.upper()}",
        )

    lowered = text.lower()
    if "today" not in lowered and "tomorrow" not in lowered:
        return None

    found = _BARE_TIME.search(text)
    if not found:
        return None
    hours, minutes, ampm = found.groups()
    is_today = "today" in lowered
    starts_at = _at(now, _to_24h(int(hours), ampm), int(minutes), next_day=not is_today)
    if starts_at is None:
        return None
    return Schedule(
        label="Today" if is_today else "Next",
        starts_at=starts_at,
        match_time=" ".join(text.split()),
    )


def status_from_schedule(description: str, schedule: Optional[Schedule]) -> str:
    """
    Status for a free-text match: Live if the description says so,
    otherwise Today / Upcoming from the schedule label, else Preview.
    """
    if re.search(r"\blive\b", description, re.IGNORECASE):
        return "Live"
    if schedule is None:
        return "Preview"
    return "Today" if schedule.label == "Today" else "Upcoming"


# =============================================================================
# Status flags
# =============================================================================

ENDED_TERMS = re.compile(
    r"\b(won|complete[d]?|finished|result|draw|drawn|tied|abandoned|no result)\b",
    re.IGNORECASE,
)
NOT_STARTED_TERMS = re.compile(
    r"\b(upcoming|scheduled|starts?|preview|yet to begin)\b",
    re.IGNORECASE,
)
_SCHEDULE_ONLY = re.compile(
    r"^(today|tomorrow|next|upcoming)(\s*[•·]\s*\d{1,2}:\d{2}\s*(am|pm)?)?$",
    re.IGNORECASE,
)


def derive_status_flags(status: Optional[str]) -> tuple[bool, bool]:
    """
    Derive (match_started, match_ended) from a status line.

    Examples:
        >>> derive_status_flags("India won by 5 wickets")
        (True, True)
        >>> derive_status_flags("Starts at 9:30 AM")
        (False, False)
        >>> derive_status_flags("Live")
        (True, False)
    """
    text = " ".join((status or "").split())
    if not text:
        return False, False

    ended = bool(ENDED_TERMS.search(text))
    if ended:
        return True, True

    if NOT_STARTED_TERMS.search(text) or _SCHEDULE_ONLY.match(text):
        return False, False
    return True, False


# =============================================================================
# Scores and results
# =============================================================================

SCORE_PATTERN = re.compile(r"(\d+)[/-](\d+)(?:\s*\((\d+(?:\.\d+)?)(?:\s*(?:ov|overs))?\))?")


def parse_innings_score(text: Optional[str], inning: str = "") -> Optional[InningsScore]:
    """
    Parse a score like '85-0 (20)' or '285/7 (49.4)'.

    Examples:
        >>> parse_innings_score("85/0 (19.4)", "India")
        <InningsScore(India: 85/0 (19.4))>
    """
    if not text:
        return None
    found = SCORE_PATTERN.search(text)
    if not found:
        return None

    runs, wickets, overs = found.groups()
    if int(wickets) > 10:
        return None
    return InningsScore(
        runs=int(runs),
        wickets=int(wickets),
        overs=float(overs) if overs else 0.0,
        inning=inning,
    )


_RESULT_TEAM = r"[A-Z][\w.']*(?:\s+[A-Z][\w.']*)*"
_MARGIN = r"by\s+(?:an\s+)?(?:\d+\s+)?(?:runs?|wkts?|wickets?|innings)(?:\s+and\s+\d+\s+runs?)?"

RESULT_RULES: tuple[re.Pattern, ...] = (
    re.compile(rf"{_RESULT_TEAM}\s+won\s+{_MARGIN}"),
    re.compile(rf"{_RESULT_TEAM}\s+beat\s+{_RESULT_TEAM}\s+{_MARGIN}"),
    re.compile(r"\b(?:Match (?:drawn|tied|abandoned)|No result)\b", re.IGNORECASE),
)


def extract_result(text: Optional[str]) -> Optional[str]:
    """
    Pull a result summary out of a status line or card text.

    Examples:
        >>> extract_result("Final - India won by 5 wickets (with 7 balls remaining)")
        'India won by 5 wickets'
    """
    if not text:
        return None
    text = " ".join(text.split())
    for pattern in RESULT_RULES:
        found = pattern.search(text)
        if found:
            return found.group(0).strip()
    return None


# =============================================================================
# Free-text candidates
# =============================================================================

EXCLUDED_TERMS = re.compile(
    r"\b(predictions?|preview|analysis|news|report|fantasy|dream11|tips|"
    r"head to head|live streaming)\b",
    re.IGNORECASE,
)

_TEAM = r"[A-Z][A-Za-z.']+(?:\s+[A-Z][A-Za-z.']+)*"

TEXT_MATCH_PATTERN = re.compile(
    rf"({_TEAM})\s+vs\.?\s+({_TEAM})\s*[,:]\s*([^\"\\<>]+?)(?=\"|\\|<|$)",
    re.MULTILINE,
)


def is_excluded(text: Optional[str]) -> bool:
    """True if the text reads like editorial content rather than a fixture."""
    return bool(text and EXCLUDED_TERMS.search(text))


def is_plausible_team(name: Optional[str]) -> bool:
    """Reject fragments that cannot be a team name (too short, template residue)."""
    return bool(name) and len(name) >= 3 and "{" not in name


@dataclass
class TextMatch:
    """A 'TeamA vs TeamB, description' hit in free text."""

    team1: str
    team2: str
    description: str
    start: int
    end: int


def find_text_matches(text: str) -> list[TextMatch]:
    """
    Find fixture-like phrases in free text.

    Hits whose own text contains excluded vocabulary are discarded, as are
    implausible team names (shorter than 3 characters or containing '{').

    Examples:
        >>> [m.description for m in find_text_matches('"Bangladesh vs Ireland, 2nd T20I"')]
        ['2nd T20I']
        >>> find_text_matches('"India vs Australia: 5 Bold Predictions"')
        []
    """
    hits = []
    for found in TEXT_MATCH_PATTERN.finditer(text):
        team1, team2, description = (g.strip() for g in found.groups())
        if not (is_plausible_team(team1) and is_plausible_team(team2)):
            continue
        if is_excluded(found.group(0)):
            continue
        hits.append(TextMatch(team1, team2, description, found.start(), found.end()))
    return hits
