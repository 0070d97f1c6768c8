"""
Unit tests for the Cricbuzz page parsers.

The fixtures are trimmed copies of the page structures each strategy
targets: embedded Next.js payloads, live-score cards, the homepage
schedule strip, the series listing and a match page header.
"""

import json
from datetime import datetime

import pytest

from cricpulse.errors import ExtractionEmpty
from cricpulse.scrape.cricbuzz import (
    CricbuzzScraper,
    build_match,
    extract_homepage_cards,
    is_fixture_row,
    match_id_from_href,
    parse_homepage,
    parse_live_scores,
    parse_match_details,
    parse_series,
    split_teams,
)

NOW = datetime(2026, 10, 19, 9, 0, 0)


def _next_data(*items):
    payload = {"props": {"pageProps": {"matches": list(items)}}}
    return (
        '<html><head><script id="__NEXT_DATA__" type="application/json">'
        f"{json.dumps(payload)}</script></head><body></body></html>"
    )


IN_PROGRESS = {
    "matchInfo": {
        "matchId": 91234,
        "matchDesc": "1st ODI",
        "matchFormat": "ODI",
        "state": "In Progress",
        "status": "India need 120 runs in 28 balls",
        "team1": {"teamName": "India"},
        "team2": {"teamName": "Australia"},
        "venueInfo": {"ground": "Wankhede Stadium", "city": "Mumbai"},
        "startDate": "1760860800000",
    },
    "matchScore": {
        "team1Score": {"inngs1": {"runs": 250, "wickets": 6, "overs": 45.2}},
    },
}

COMPLETE = {
    "matchInfo": {
        "matchId": 91240,
        "matchDesc": "3rd T20I",
        "state": "Complete",
        "status": "England won by 4 wkts",
        "team1": {"teamName": "Pakistan"},
        "team2": {"teamName": "England"},
    },
}

LIVE_SCORE_CARDS = """
<html><body>
<a href="/live-cricket-scores/100/ind-vs-aus-1st-t20i" class="bg-cbWhite flex flex-col p-3">
  <div>1st T20I • Sydney</div>
  <div class="flex items-center gap-4 justify-between">
    <div><span>India</span></div><div>185-4 (20)</div>
  </div>
  <div class="flex items-center gap-4 justify-between">
    <div><span>Australia</span></div><div>120-3 (14.2)</div>
  </div>
  <div class="text-cbTxtSec">Australia need 66 runs in 34 balls</div>
</a>
</body></html>
"""

EDITORIAL_SCORE_LINK = '<a href="/cricket-scores/1/ind-vs-aus">India vs Australia: 5 Bold Predictions</a>'

HOMEPAGE_EDITORIAL_CARD_AND_LINK = """
<html><body>
<div class="cb-match-item">
  <a href="/cricket-news/130001/ind-vs-aus-dream11-prediction">India vs Australia: Dream11 Prediction</a>
</div>
<a href="/live-cricket-scores/91300/pak-vs-eng-1st-test">Pakistan vs England, 1st Test</a>
</body></html>
"""

TEMPLATE_SCORE_CARD = """
<html><body>
<a href="/live-cricket-scores/101/tbc" class="bg-cbWhite flex flex-col p-3">
  <div>2nd T20I • Perth</div>
  <div class="flex items-center gap-4 justify-between">
    <div><span>{{team1}}</span></div><div></div>
  </div>
  <div class="flex items-center gap-4 justify-between">
    <div><span>Australia</span></div><div></div>
  </div>
</a>
</body></html>
"""

HOMEPAGE_FREE_TEXT = """
<html><body>
<script>var strip = "Bangladesh vs Ireland, 2nd T20I";</script>
<div>Today • 7:30 PM</div>
<script>var promo = "India vs Australia: 5 Bold Predictions";</script>
</body></html>
"""

SERIES_PAGE = """
<html><body>
<div class="cb-series-matches">
  <a href="/cricket-series/7572/india-tour-of-australia-2026" class="cb-series-name">India tour of Australia, 2026</a>
  <div class="cb-srs-date">Oct 19 - Nov 8</div>
  <div>3 ODIs, 5 T20Is</div>
</div>
<div class="cb-series-matches">
  <a href="/cricket-series/7601/ashes-2026" class="cb-series-name">The Ashes, 2026</a>
  <div class="cb-srs-date">Nov 21 - Jan 8</div>
  <div>5 Tests</div>
</div>
</body></html>
"""

MATCH_PAGE = """
<html><body>
<div class="cb-nav-main">
  <h1 class="cb-nav-hdr">India vs Australia, 1st ODI - Live Cricket Score</h1>
  <div class="cb-nav-subhdr">Series: Australia tour of India 2026</div>
</div>
<div class="cb-text-complete">India won by 5 wkts</div>
<a href="/cricket-stadium/12/wankhede" class="cb-venue">Wankhede Stadium, Mumbai</a>
</body></html>
"""


class TestHelpers:

    def test_match_id_from_href(self):
        assert match_id_from_href("/live-cricket-scores/91234/ind-vs-aus-1st-odi") == "91234"
        assert match_id_from_href("/cricket-scores/ind-vs-aus") == "ind-vs-aus"
        assert match_id_from_href(None) is None

    def test_split_teams(self):
        assert split_teams("India vs Australia, 1st ODI") == ["India", "Australia"]
        assert split_teams("New Zealand vs. Sri Lanka") == ["New Zealand", "Sri Lanka"]
        assert split_teams("Asia Cup") == ["Asia Cup"]
        assert split_teams("India vs Australia: 5 Bold Predictions") == ["India", "Australia"]

    def test_fixture_rows(self):
        assert is_fixture_row({"title": "Pakistan vs England, 1st Test"})
        assert not is_fixture_row({"title": "India vs Australia: Dream11 Prediction"})
        assert not is_fixture_row({"title": "SA vs NZ, 2nd ODI"})
        assert not is_fixture_row({"team_rows": [{"team": "{{team1}}"}, {"team": "Australia"}]})

    def test_build_match_without_id_uses_teams_and_time(self):
        record = build_match(["South Africa", "India"], NOW, description="2nd Test", status="Live")

        assert record.id.startswith("cricbuzz-south-africa-india-")
        assert record.match_type == "Test"
        assert record.match_started and not record.match_ended


class TestStructuredData:

    def test_next_data_payload(self):
        matches = parse_live_scores(_next_data(IN_PROGRESS), NOW)

        assert len(matches) == 1
        match = matches[0]
        assert match.id == "cricbuzz-91234"
        assert match.teams == ["India", "Australia"]
        assert match.match_type == "ODI"
        assert match.venue == "Wankhede Stadium, Mumbai"
        assert match.match_started and not match.match_ended
        assert match.date.startswith("2025-10-19")
        assert match.score[0].runs == 250
        assert match.score[0].inning == "India"

    def test_complete_state_sets_both_flags(self):
        matches = parse_live_scores(_next_data(COMPLETE), NOW)

        assert matches[0].match_ended
        assert matches[0].result == "England won by 4 wkts"
        assert matches[0].match_type == "T20I"

    def test_escaped_stream_chunks(self):
        chunk = json.dumps(COMPLETE).replace('"', '\\"')
        html = f'<html><body><script>self.__next_f.push([1,"{chunk}"])</script></body></html>'

        matches = parse_live_scores(html, NOW)
        assert [m.id for m in matches] == ["cricbuzz-91240"]


class TestLiveScoreCards:

    def test_card_markup(self):
        matches = parse_live_scores(LIVE_SCORE_CARDS, NOW)

        assert len(matches) == 1
        match = matches[0]
        assert match.id == "cricbuzz-100"
        assert match.name == "India vs Australia"
        assert match.match_type == "T20I"
        assert match.venue == "Sydney"
        assert match.status == "Australia need 66 runs in 34 balls"
        assert match.match_started and not match.match_ended
        assert [(s.inning, s.runs, s.wickets) for s in match.score] == [
            ("India", 185, 4),
            ("Australia", 120, 3),
        ]

    def test_nothing_recognizable(self):
        with pytest.raises(ExtractionEmpty):
            parse_live_scores("<html><body><p>Maintenance</p></body></html>", NOW)

    def test_template_placeholder_card_is_skipped(self):
        with pytest.raises(ExtractionEmpty):
            parse_live_scores(TEMPLATE_SCORE_CARD, NOW)


class TestHomepage:

    def test_free_text_fixture_with_kickoff(self):
        matches = parse_homepage(HOMEPAGE_FREE_TEXT, NOW)

        assert len(matches) == 1
        match = matches[0]
        assert match.teams == ["Bangladesh", "Ireland"]
        assert match.match_type == "T20I"
        assert match.status == "Today"
        assert match.match_time == "Today • 7:30 PM"
        assert match.date == "2026-10-19T19:30:00"
        assert not match.match_started

    def test_editorial_only_page_is_empty(self):
        html = '<html><body><script>x = "India vs Australia: 5 Bold Predictions";</script></body></html>'
        with pytest.raises(ExtractionEmpty):
            parse_homepage(html, NOW)

    def test_editorial_score_link_is_not_a_match(self):
        assert extract_homepage_cards(EDITORIAL_SCORE_LINK, NOW) == []
        with pytest.raises(ExtractionEmpty):
            parse_homepage(EDITORIAL_SCORE_LINK, NOW)

    def test_editorial_cards_do_not_shadow_score_links(self):
        matches = parse_homepage(HOMEPAGE_EDITORIAL_CARD_AND_LINK, NOW)

        assert [m.id for m in matches] == ["cricbuzz-91300"]
        assert matches[0].teams == ["Pakistan", "England"]
        assert matches[0].match_type == "Test"


class TestSeries:

    def test_series_listing(self):
        series = parse_series(SERIES_PAGE)

        assert [s.name for s in series] == ["India tour of Australia, 2026", "The Ashes, 2026"]
        tour = series[0]
        assert tour.id == "series-7572"
        assert (tour.odi, tour.t20, tour.test) == (3, 5, 0)
        assert tour.matches == 8
        assert (tour.start_date, tour.end_date) == ("Oct 19", "Nov 8")
        assert series[1].test == 5


class TestMatchDetails:

    def test_match_page_header(self):
        match = parse_match_details(MATCH_PAGE, "91234", NOW)

        assert match.id == "cricbuzz-91234"
        assert match.name == "India vs Australia"
        assert match.match_type == "ODI"
        assert match.venue == "Wankhede Stadium, Mumbai"
        assert match.match_ended
        assert match.result == "India won by 5 wkts"

    def test_structured_payload_for_requested_id(self):
        html = _next_data(COMPLETE, IN_PROGRESS)
        assert parse_match_details(html, "91234", NOW).teams == ["India", "Australia"]


class FakeFetcher:
    def __init__(self, html):
        self.html = html
        self.urls = []

    async def fetch(self, url):
        self.urls.append(url)
        return self.html


class TestCricbuzzScraper:

    @pytest.mark.asyncio
    async def test_match_details_strips_provider_prefix(self):
        fetcher = FakeFetcher(MATCH_PAGE)
        scraper = CricbuzzScraper(fetcher, base_url="https://cricbuzz.test/")

        match = await scraper.fetch_match_details("cricbuzz-91234")

        assert fetcher.urls == ["https://cricbuzz.test/live-cricket-scores/91234"]
        assert match.id == "cricbuzz-91234"

    @pytest.mark.asyncio
    async def test_live_scores_url(self):
        fetcher = FakeFetcher(LIVE_SCORE_CARDS)
        scraper = CricbuzzScraper(fetcher, base_url="https://cricbuzz.test")

        matches = await scraper.fetch_live_scores()

        assert fetcher.urls == ["https://cricbuzz.test/cricket-match/live-scores"]
        assert len(matches) == 1
