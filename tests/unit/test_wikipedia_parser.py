"""
Unit tests for the Wikipedia team and player parsers.
"""

import pytest
from bs4 import BeautifulSoup

from cricpulse.errors import ExtractionEmpty
from cricpulse.scrape.wikipedia import (
    WikipediaScraper,
    first_search_result,
    is_player_name,
    parse_career_stats,
    parse_date_of_birth,
    parse_place_of_birth,
    parse_player_page,
    parse_team_page,
    team_flag,
)

TEAM_PAGE = """
<html><body>
<p>The <a href="/wiki/Board_of_Control_for_Cricket_in_India">BCCI</a> runs the team.</p>
<div class="mw-heading mw-heading2"><h2>Current squad</h2></div>
<ul>
  <li><a href="/wiki/Virat_Kohli">Virat Kohli</a></li>
  <li><a href="/wiki/Rohit_Sharma">Rohit Sharma</a></li>
  <li><a href="/wiki/Board_of_Control_for_Cricket_in_India">BCCI</a></li>
  <li><a href="/wiki/Jasprit_Bumrah">Jasprit Bumrah</a></li>
  <li><a href="/wiki/File:Flag.svg">Flag</a></li>
</ul>
<div class="mw-heading mw-heading2"><h2>History</h2></div>
<p><a href="/wiki/Sachin_Tendulkar">Sachin Tendulkar</a></p>
</body></html>
"""

PLAYER_PAGE = """
<html><body>
<table class="infobox vcard">
  <tr><td colspan="2"><img src="//upload.wikimedia.org/kohli.jpg"></td></tr>
  <tr><th>Full name</th><td>Virat Kohli<sup>[1]</sup></td></tr>
  <tr><th>Born</th><td><span class="bday">1988-11-05</span> (age 37) <span class="birthplace">Delhi, India</span></td></tr>
  <tr><th>Batting</th><td>Right-handed</td></tr>
  <tr><th>Bowling</th><td>Right-arm medium</td></tr>
  <tr><th>Role</th><td>Top-order batter</td></tr>
  <tr><th>Competition</th><th>Test</th><th>ODI</th><th>T20I</th></tr>
  <tr><th>Matches</th><td>123</td><td>302</td><td>125</td></tr>
  <tr><th>Runs scored</th><td>9,230</td><td>14,181</td><td>4,188</td></tr>
  <tr><th>Batting average</th><td>46.85</td><td>57.88</td><td>48.69</td></tr>
  <tr><th>100s/50s</th><td>30/31</td><td>51/74</td><td>1/38</td></tr>
  <tr><th>Top score</th><td>254*</td><td>183</td><td>122*</td></tr>
  <tr><th>Wickets</th><td>0</td><td>5</td><td>4</td></tr>
  <tr><th>Bowling average</th><td>–</td><td>166.25</td><td>51.50</td></tr>
  <tr><th>5 wickets in innings</th><td>0</td><td>0</td><td>0</td></tr>
  <tr><th>Best bowling</th><td>–</td><td>1/15</td><td>1/13</td></tr>
</table>
</body></html>
"""

SEARCH_PAGE = """
<html><body>
<ul class="mw-search-results">
  <li><div class="mw-search-result-heading"><a href="/wiki/Virat_Kohli">Virat Kohli</a></div></li>
  <li><div class="mw-search-result-heading"><a href="/wiki/Kohli">Kohli</a></div></li>
</ul>
</body></html>
"""


def _cell(html):
    return BeautifulSoup(f"<table><tr><td>{html}</td></tr></table>", "lxml").td


class TestTeamPage:

    def test_squad_section_players(self):
        team = parse_team_page(TEAM_PAGE, "India")

        assert team.playing11 == ["Virat Kohli", "Rohit Sharma", "Jasprit Bumrah"]
        assert team.flag == "🇮🇳"
        assert team.country == "India"

    def test_capped_at_eleven(self):
        links = "".join(
            f'<li><a href="/wiki/Player_{i}">Player Number {chr(65 + i)}</a></li>' for i in range(15)
        )
        html = f"<html><body><h2>Squad</h2><ul>{links}</ul></body></html>"

        assert len(parse_team_page(html, "Ireland").playing11) == 11

    def test_infobox_fallback(self):
        html = (
            '<html><body><table class="infobox"><tr><th>Captain</th>'
            '<td><a href="/wiki/Pat_Cummins">Pat Cummins</a></td></tr></table></body></html>'
        )
        assert parse_team_page(html, "Australia").playing11 == ["Pat Cummins"]

    def test_no_players(self):
        with pytest.raises(ExtractionEmpty):
            parse_team_page("<html><body><p>Stub</p></body></html>", "Nowhere")

    def test_player_name_filter(self):
        assert is_player_name("Virat Kohli", "/wiki/Virat_Kohli")
        assert not is_player_name("BCCI", "/wiki/Board_of_Control_for_Cricket_in_India")
        assert not is_player_name("edit", "/w/index.php?action=edit")
        assert not is_player_name("2011", "/wiki/2011")

    def test_unknown_team_flag(self):
        assert team_flag("Nepal") == "🏏"


class TestPlayerPage:

    def test_biography(self):
        player = parse_player_page(PLAYER_PAGE, "Virat Kohli", "https://en.wikipedia.org/wiki/Virat_Kohli")

        assert player.full_name == "Virat Kohli"
        assert player.date_of_birth == "1988-11-05"
        assert player.place_of_birth == "Delhi, India"
        assert player.batting_style == "Right-handed"
        assert player.bowling_style == "Right-arm medium"
        assert player.role == "Top-order batter"
        assert player.image_url == "https://upload.wikimedia.org/kohli.jpg"
        assert player.wikipedia_url == "https://en.wikipedia.org/wiki/Virat_Kohli"

    def test_career_stats(self):
        stats = parse_career_stats(BeautifulSoup(PLAYER_PAGE, "lxml"))

        assert set(stats) == {"Test", "ODI", "T20I"}
        odi = stats["ODI"]
        assert (odi.matches, odi.runs, odi.wickets) == (302, 14181, 5)
        assert (odi.centuries, odi.half_centuries) == (51, 74)
        assert odi.batting_average == "57.88"
        assert odi.highest_score == "183"
        assert odi.best_bowling == "1/15"
        assert stats["Test"].bowling_average is None
        assert stats["Test"].highest_score == "254*"

    def test_no_infobox(self):
        with pytest.raises(ExtractionEmpty):
            parse_player_page("<html><body><p>Disambiguation</p></body></html>", "Kohli", "x")

    def test_date_of_birth_from_text(self):
        assert parse_date_of_birth(_cell("5 November 1988 (age 37) Delhi")) == "1988-11-05"
        assert parse_date_of_birth(_cell("unknown")) is None

    def test_place_of_birth_after_age(self):
        assert parse_place_of_birth(_cell("5 November 1988 (age 37) Delhi, India")) == "Delhi, India"

    def test_first_search_result(self):
        assert first_search_result(SEARCH_PAGE, "https://en.wikipedia.org") == \
            "https://en.wikipedia.org/wiki/Virat_Kohli"
        assert first_search_result("<html></html>", "https://en.wikipedia.org") is None


class RoutedFetcher:
    def __init__(self, pages):
        self.pages = pages
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        return self.pages[url]


class TestWikipediaScraper:

    @pytest.mark.asyncio
    async def test_player_via_search(self):
        base = "https://wiki.test"
        fetcher = RoutedFetcher({
            f"{base}/wiki/Special:Search/Virat%20Kohli": SEARCH_PAGE,
            f"{base}/wiki/Virat_Kohli": PLAYER_PAGE,
        })
        scraper = WikipediaScraper(fetcher, base_url=base)

        player = await scraper.fetch_player_info("Virat Kohli")

        assert player.name == "Virat Kohli"
        assert player.wikipedia_url == f"{base}/wiki/Virat_Kohli"
        assert "ODI" in player.stats

    @pytest.mark.asyncio
    async def test_search_redirected_to_article(self):
        base = "https://wiki.test"
        fetcher = RoutedFetcher({f"{base}/wiki/Special:Search/Virat%20Kohli": PLAYER_PAGE})
        scraper = WikipediaScraper(fetcher, base_url=base)

        player = await scraper.fetch_player_info("Virat Kohli")

        assert len(fetcher.urls) == 1
        assert player.date_of_birth == "1988-11-05"

    @pytest.mark.asyncio
    async def test_team_page_url(self):
        base = "https://wiki.test"
        fetcher = RoutedFetcher({f"{base}/wiki/India_national_cricket_team": TEAM_PAGE})
        scraper = WikipediaScraper(fetcher, base_url=base)

        team = await scraper.fetch_team_info("India")
        assert len(team.playing11) == 3
