"""
Common data structures produced by the scrapers.

Every source (Cricbuzz, CricTracker, Wikipedia) normalizes what it finds
into these dataclasses. Records are JSON-serializable through to_dict() so
the orchestrator can store them in the cache table and rebuild them with
from_dict() on a cache hit.

Dates travel as ISO-8601 strings; type conversion to real datetimes happens
only where a record is written to the database.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional

# Match formats recognized by the inference rules
MATCH_TYPES = ("Test", "ODI", "T20I")
DEFAULT_MATCH_TYPE = "ODI"

DEFAULT_FLAG = "🏏"


@dataclass
class InningsScore:
    """One innings score line, e.g. 85/0 (19.4)."""

    runs: int
    wickets: int
    overs: float = 0.0
    inning: str = ""

    def __repr__(self) -> str:
        return f"<InningsScore({self.inning}: {self.runs}/{self.wickets} ({self.overs}))>"


@dataclass
class MatchRecord:
    """
    A live, upcoming or recently completed match from any source.

    The same real match scraped from two providers produces two records
    with different ids; they are reconciled by team names, not by id
    (see scrape/parsers/merge.py).
    """

    # Provider-qualified id, e.g. 'cricbuzz-12345'
    id: str
    name: str

    match_type: str = DEFAULT_MATCH_TYPE  # 'Test', 'ODI', 'T20I'
    status: str = ""                      # 'Live', 'Upcoming', 'Today', result line...
    venue: str = ""

    date: Optional[str] = None            # ISO date or datetime
    date_time_gmt: Optional[str] = None   # ISO datetime in GMT

    teams: list[str] = field(default_factory=list)
    score: list[InningsScore] = field(default_factory=list)

    match_started: bool = False
    match_ended: bool = False

    result: Optional[str] = None          # "India won by 5 wickets"
    match_time: Optional[str] = None      # "Today • 6:30 PM"

    source: str = ""                      # 'cricbuzz', 'crictracker'

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "MatchRecord":
        data = dict(data)
        data["score"] = [InningsScore(**s) for s in data.get("score") or []]
        data["teams"] = list(data.get("teams") or [])
        return cls(**data)

    def __repr__(self) -> str:
        return f"<MatchRecord({self.name}, {self.match_type}, {self.status or 'unknown'})>"


@dataclass
class SeriesRecord:
    """A series listing with per-format match counts."""

    id: str
    name: str
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    test: int = 0
    odi: int = 0
    t20: int = 0
    squads: int = 0
    matches: int = 0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SeriesRecord":
        return cls(**data)


@dataclass
class FormatStats:
    """Career statistics in one format. Averages and rates are kept as displayed."""

    matches: int = 0
    runs: int = 0
    wickets: int = 0
    batting_average: Optional[str] = None
    bowling_average: Optional[str] = None
    strike_rate: Optional[str] = None
    economy_rate: Optional[str] = None
    highest_score: Optional[str] = None
    best_bowling: Optional[str] = None
    centuries: int = 0
    half_centuries: int = 0
    five_wickets: int = 0

    def has_data(self) -> bool:
        """True when the scrape found anything worth persisting."""
        return bool(self.matches or self.runs or self.wickets)


@dataclass
class PlayerInfo:
    """Player biography and career stats scraped from Wikipedia."""

    name: str
    full_name: Optional[str] = None
    role: Optional[str] = None
    batting_style: Optional[str] = None
    bowling_style: Optional[str] = None
    date_of_birth: Optional[str] = None   # ISO date
    place_of_birth: Optional[str] = None
    image_url: Optional[str] = None
    wikipedia_url: Optional[str] = None

    # Keyed by 'Test', 'ODI', 'T20I'
    stats: dict[str, FormatStats] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PlayerInfo":
        data = dict(data)
        data["stats"] = {
            fmt: FormatStats(**values)
            for fmt, values in (data.get("stats") or {}).items()
        }
        return cls(**data)

    def __repr__(self) -> str:
        return f"<PlayerInfo({self.name}, formats={sorted(self.stats)})>"


@dataclass
class TeamInfo:
    """A national team with the players listed on its Wikipedia page."""

    name: str
    country: str
    flag: str = DEFAULT_FLAG
    playing11: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TeamInfo":
        return cls(**data)
