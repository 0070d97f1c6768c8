"""
Wikipedia scraper for team squads and player biographies.

Team pages list their players in several places: squad sections, the
infobox, and wikitables of records. All three are read in that order and
the first eleven plausible player names are kept.

Player pages are found through Special:Search (first result), falling back
to the article slug built from the name. The infobox gives the biography;
the career statistics table (inside the infobox or under a "Career
statistics" heading) gives per-format numbers.

Usage:
    scraper = WikipediaScraper(HttpFetcher())
    team = await scraper.fetch_team_info("India")
    player = await scraper.fetch_player_info("Virat Kohli")
"""

import logging
import re
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from bs4 import BeautifulSoup, Tag

from cricpulse.config import settings
from cricpulse.errors import ExtractionEmpty
from cricpulse.scrape.base import DEFAULT_FLAG, FormatStats, PlayerInfo, TeamInfo
from cricpulse.scrape.fetch import HttpFetcher
from cricpulse.scrape.parsers.rules import FieldRule

logger = logging.getLogger(__name__)

PLAYING_XI_SIZE = 11

TEAM_FLAGS = {
    "India": "🇮🇳",
    "Australia": "🇦🇺",
    "England": "🏴󠁧󠁢󠁥󠁮󠁧󠁿",
    "Pakistan": "🇵🇰",
    "South Africa": "🇿🇦",
}

TEAM_PAGES = {
    "India": "India_national_cricket_team",
    "Australia": "Australia_national_cricket_team",
    "England": "England_cricket_team",
    "Pakistan": "Pakistan_national_cricket_team",
    "South Africa": "South_Africa_national_cricket_team",
}

# Link text or targets that are never players
NON_PLAYER_TERMS = (
    "board of control",
    "cricket in",
    "cricket association",
    "cricket board",
    "national cricket",
    "cricket team",
    "cricket council",
    "international cricket",
    "edit",
    "category:",
    "template:",
    "file:",
    "help:",
    "special:",
    "wikipedia:",
    "portal:",
    "talk:",
    "user:",
)

SQUAD_HEADINGS = ("squad", "current", "players")

# Siblings scanned after a squad heading
SQUAD_SECTION_SPAN = 20


def team_flag(name: str) -> str:
    return TEAM_FLAGS.get(name, DEFAULT_FLAG)


def is_player_name(name: str, href: str = "") -> bool:
    """
    Whether a link looks like it points at a player.

    Examples:
        >>> is_player_name("Virat Kohli", "/wiki/Virat_Kohli")
        True
        >>> is_player_name("Board of Control for Cricket in India", "/wiki/BCCI")
        False
    """
    if not (2 < len(name) < 50):
        return False
    lowered = f"{name.lower()} {href.lower().replace('_', ' ')}"
    if any(term in lowered for term in NON_PLAYER_TERMS):
        return False
    if "[" in name or "]" in name or name.isdigit():
        return False
    return len(name.split()) <= 4


# =============================================================================
# Team pages
# =============================================================================

def _heading_siblings(heading: Tag) -> list[Tag]:
    # Newer skins wrap headings in <div class="mw-heading">
    anchor = heading.parent if "mw-heading" in (heading.parent.get("class") or []) else heading
    return anchor.find_next_siblings(limit=SQUAD_SECTION_SPAN)


def _player_links(scope: Tag) -> list[tuple[str, str]]:
    links = scope.select('a[href*="/wiki/"]')
    if scope.name == "a" and "/wiki/" in (scope.get("href") or ""):
        links.insert(0, scope)
    return [(a.get_text(strip=True), a.get("href") or "") for a in links]


def _squad_section_links(soup: BeautifulSoup) -> list[tuple[str, str]]:
    links = []
    for heading in soup.select("h2, h3"):
        text = heading.get_text(" ", strip=True).lower()
        if not any(word in text for word in SQUAD_HEADINGS):
            continue
        for sibling in _heading_siblings(heading):
            if sibling.name in ("h2",) or sibling.select_one("h2"):
                break
            links.extend(_player_links(sibling))
    return links


def _infobox_links(soup: BeautifulSoup) -> list[tuple[str, str]]:
    links = []
    for infobox in soup.select(".infobox"):
        links.extend(_player_links(infobox))
    return links


def _wikitable_links(soup: BeautifulSoup) -> list[tuple[str, str]]:
    links = []
    for table in soup.select("table.wikitable"):
        text = table.get_text(" ", strip=True).lower()
        if "player" not in text and "name" not in text:
            continue
        for link in table.select("td:first-child a, th:first-child a"):
            links.append((link.get_text(strip=True), link.get("href") or ""))
    return links


def parse_team_page(html: str, team_name: str) -> TeamInfo:
    """
    Parse a national team article into a TeamInfo.

    Raises:
        ExtractionEmpty: If no player names were found
    """
    soup = BeautifulSoup(html, "lxml")
    players: list[str] = []
    for collect in (_squad_section_links, _infobox_links, _wikitable_links):
        for name, href in collect(soup):
            if len(players) >= PLAYING_XI_SIZE:
                break
            if is_player_name(name, href) and name not in players:
                players.append(name)

    if not players:
        raise ExtractionEmpty(f"wikipedia team {team_name}", "no player links found")

    return TeamInfo(
        name=team_name,
        country=team_name,
        flag=team_flag(team_name),
        playing11=players,
    )


# =============================================================================
# Player pages
# =============================================================================

SEARCH_RESULT_RULE = FieldRule("href", (".mw-search-result-heading a",), attr="href")

# Infobox row labels per PlayerInfo field
INFOBOX_LABELS = {
    "full_name": ("full name",),
    "role": ("role",),
    "batting_style": ("batting",),
    "bowling_style": ("bowling",),
    "born": ("born",),
}

_DOB_TEXT = re.compile(r"(\d{1,2})\s+([A-Z][a-z]+)\s+(\d{4})")
_AGE_THEN_PLACE = re.compile(r"\(age\s+\d+\)\s*(.+)$")
_PARENTHETICAL = re.compile(r"\(([^)]+)\)")


def _clean(text: str) -> str:
    text = re.sub(r"\[\d+\]", "", text)  # footnote markers
    return " ".join(text.split())


def _infobox_rows(infobox: Tag) -> dict[str, Tag]:
    rows = {}
    for th in infobox.select("th"):
        td = th.find_next_sibling("td")
        if td is None:
            continue
        label = _clean(th.get_text(" ", strip=True)).lower()
        rows.setdefault(label, td)
    return rows


def _absolute(url: str, base_url: str) -> str:
    if url.startswith("http"):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    return f"{base_url}{url}"


def parse_date_of_birth(cell: Tag) -> Optional[str]:
    """ISO date of birth from an infobox 'Born' cell."""
    bday = cell.select_one(".bday")
    if bday:
        return bday.get_text(strip=True)

    found = _DOB_TEXT.search(cell.get_text(" ", strip=True))
    if not found:
        return None
    try:
        return datetime.strptime(" ".join(found.groups()), "%d %B %Y").date().isoformat()
    except ValueError:
        return None


def parse_place_of_birth(cell: Tag) -> Optional[str]:
    place = cell.select_one(".birthplace")
    if place:
        return _clean(place.get_text(" ", strip=True)) or None

    text = _clean(cell.get_text(" ", strip=True))
    after_age = _AGE_THEN_PLACE.search(text)
    if after_age:
        return after_age.group(1).strip() or None
    for found in _PARENTHETICAL.finditer(text):
        candidate = found.group(1).strip()
        if not re.match(r"^(age\s+)?[\d\s-]+$", candidate):
            return candidate
    return None


# Career table row label -> (FormatStats field, converter)
STAT_ROWS = (
    (re.compile(r"^matches"), "matches"),
    (re.compile(r"^runs"), "runs"),
    (re.compile(r"batting average"), "batting_average"),
    (re.compile(r"100s\s*/\s*50s"), "hundreds_fifties"),
    (re.compile(r"^(centuries|100s)$"), "centuries"),
    (re.compile(r"^(fifties|50s)$"), "half_centuries"),
    (re.compile(r"top score|high(est)? score"), "highest_score"),
    (re.compile(r"^wickets"), "wickets"),
    (re.compile(r"bowling average"), "bowling_average"),
    (re.compile(r"5 wickets?"), "five_wickets"),
    (re.compile(r"best bowling"), "best_bowling"),
    (re.compile(r"strike rate"), "strike_rate"),
    (re.compile(r"economy"), "economy_rate"),
)

_INT_FIELDS = {"matches", "runs", "wickets", "centuries", "half_centuries", "five_wickets"}

_FORMAT_COLUMNS = (
    (re.compile(r"^t20i$"), "T20I"),
    (re.compile(r"^odi$"), "ODI"),
    (re.compile(r"^tests?$"), "Test"),
)


def _to_int(value: str) -> int:
    digits = re.match(r"\d[\d,]*", value.strip())
    return int(digits.group(0).replace(",", "")) if digits else 0


def _format_columns(header_cells: list[str]) -> dict[int, str]:
    columns = {}
    for index, text in enumerate(header_cells):
        for pattern, fmt in _FORMAT_COLUMNS:
            if pattern.match(text.lower()):
                columns[index] = fmt
                break
    return columns


def _stats_tables(soup: BeautifulSoup) -> list[Tag]:
    tables = list(soup.select(".infobox table"))
    for heading in soup.select("h2, h3"):
        if "statistics" in heading.get_text(" ", strip=True).lower():
            anchor = heading.parent if "mw-heading" in (heading.parent.get("class") or []) else heading
            table = anchor.find_next("table")
            if table is not None:
                tables.append(table)
    tables.extend(soup.select(".infobox"))
    return tables


def parse_career_stats(soup: BeautifulSoup) -> dict[str, FormatStats]:
    """
    Per-format career statistics from the first table with Test/ODI/T20I columns.

    Returns:
        {'Test': FormatStats, 'ODI': ..., 'T20I': ...} for the formats present
    """
    for table in _stats_tables(soup):
        rows = table.select("tr")
        columns: dict[int, str] = {}
        stats: dict[str, FormatStats] = {}
        for row in rows:
            cells = [_clean(c.get_text(" ", strip=True)) for c in row.find_all(["th", "td"], recursive=False)]
            if not cells:
                continue
            if not columns:
                columns = _format_columns(cells)
                if columns:
                    stats = {fmt: FormatStats() for fmt in columns.values()}
                continue

            label = cells[0].lower()
            for pattern, name in STAT_ROWS:
                if not pattern.search(label):
                    continue
                for index, fmt in columns.items():
                    if index >= len(cells):
                        continue
                    _apply_stat(stats[fmt], name, cells[index])
                break

        if stats and any(s.has_data() for s in stats.values()):
            return stats
    return {}


def _apply_stat(stats: FormatStats, name: str, value: str) -> None:
    if not value or value in ("-", "–", "—"):
        return
    if name == "hundreds_fifties":
        parts = re.split(r"\s*/\s*", value)
        stats.centuries = _to_int(parts[0])
        if len(parts) > 1:
            stats.half_centuries = _to_int(parts[1])
    elif name in _INT_FIELDS:
        setattr(stats, name, _to_int(value))
    else:
        setattr(stats, name, value)


def parse_player_page(html: str, name: str, url: str) -> PlayerInfo:
    """
    Parse a player article into a PlayerInfo.

    Raises:
        ExtractionEmpty: If the page has no infobox
    """
    soup = BeautifulSoup(html, "lxml")
    infobox = soup.select_one(".infobox")
    if infobox is None:
        raise ExtractionEmpty(f"wikipedia player {name}", "no infobox")

    rows = _infobox_rows(infobox)

    def value(field_name: str) -> Optional[str]:
        for label in INFOBOX_LABELS[field_name]:
            cell = rows.get(label)
            if cell is not None:
                return _clean(cell.get_text(" ", strip=True)) or None
        return None

    info = PlayerInfo(
        name=name,
        full_name=value("full_name"),
        role=value("role"),
        batting_style=value("batting_style"),
        bowling_style=value("bowling_style"),
        wikipedia_url=url,
    )

    born = rows.get("born")
    if born is not None:
        info.date_of_birth = parse_date_of_birth(born)
        info.place_of_birth = parse_place_of_birth(born)
        if not info.full_name:
            nickname = born.select_one(".nickname")
            if nickname:
                info.full_name = _clean(nickname.get_text(" ", strip=True))

    image = infobox.select_one("img")
    if image and image.get("src"):
        info.image_url = _absolute(image["src"], "https:")

    info.stats = parse_career_stats(soup)
    return info


def first_search_result(html: str, base_url: str) -> Optional[str]:
    """URL of the first Special:Search hit, or None."""
    soup = BeautifulSoup(html, "lxml")
    href = SEARCH_RESULT_RULE.extract(soup)
    return _absolute(href, base_url) if href else None


# =============================================================================
# Scraper
# =============================================================================

class WikipediaScraper:
    """
    Fetches team and player articles from Wikipedia.

    fetch_* methods raise FetchError when a page cannot be retrieved and
    ExtractionEmpty when it holds nothing usable.
    """

    def __init__(self, fetcher: Optional[HttpFetcher] = None, base_url: Optional[str] = None):
        self.fetcher = fetcher or HttpFetcher()
        self.base_url = (base_url or settings.wikipedia_base_url).rstrip("/")

    def article_url(self, title: str) -> str:
        return f"{self.base_url}/wiki/{quote(title.strip().replace(' ', '_'))}"

    async def fetch_team_info(self, team_name: str) -> TeamInfo:
        url = self.article_url(TEAM_PAGES.get(team_name, team_name))
        html = await self.fetcher.fetch(url)
        return parse_team_page(html, team_name)

    async def fetch_player_info(self, player_name: str) -> PlayerInfo:
        search_url = f"{self.base_url}/wiki/Special:Search/{quote(player_name)}"
        search_html = await self.fetcher.fetch(search_url)

        url = first_search_result(search_html, self.base_url)
        if url is None:
            direct_url = self.article_url(player_name)
            # Exact title matches redirect straight to the article
            if 'class="infobox' in search_html:
                return parse_player_page(search_html, player_name, direct_url)
            url = direct_url

        logger.debug(f"Player page for {player_name}: {url}")
        html = await self.fetcher.fetch(url)
        return parse_player_page(html, player_name, url)
