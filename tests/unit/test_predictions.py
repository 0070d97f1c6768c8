"""
Unit tests for match predictions.
"""

import json

import httpx
import pytest

from cricpulse.scrape.base import MatchRecord
from cricpulse.services.predictions import MatchPredictor, build_prompt, parse_prediction

MATCH = MatchRecord(
    id="cricbuzz-91234",
    name="India vs Australia",
    teams=["India", "Australia"],
    venue="Wankhede Stadium, Mumbai",
    match_type="ODI",
    date="2026-10-19T09:00:00",
)


def _predictor(handler, api_key="hf_test"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MatchPredictor(client=client, api_key=api_key)


class TestParsePrediction:

    def test_json_inside_chatter(self):
        prediction = parse_prediction(
            'Here you go: {"winner": "India", "probability": 72, "reasoning": "Home conditions"}'
        )

        assert prediction.winner == "India"
        assert prediction.probability == 72.0
        assert prediction.reasoning == "Home conditions"

    def test_probability_is_clamped(self):
        assert parse_prediction('{"winner": "India", "probability": 140}').probability == 100.0
        assert parse_prediction('{"winner": "India", "probability": -3}').probability == 0.0

    def test_invalid_output(self):
        assert parse_prediction("India will win comfortably") is None
        assert parse_prediction('{"winner": "India"}') is None
        assert parse_prediction('{"winner": "", "probability": 50}') is None
        assert parse_prediction('{"winner": "India", "probability": "likely"}') is None

    def test_prompt_names_the_match(self):
        prompt = build_prompt(MATCH)

        assert "India vs Australia" in prompt
        assert "Wankhede Stadium, Mumbai" in prompt
        assert "Format: ODI" in prompt


class TestMatchPredictor:

    @pytest.mark.asyncio
    async def test_successful_prediction(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            text = '{"winner": "Australia", "probability": 61, "reasoning": "Pace attack"}'
            return httpx.Response(200, json=[{"generated_text": text}])

        prediction = await _predictor(handler).predict(MATCH)

        assert prediction.winner == "Australia"
        assert prediction.to_dict() == {
            "winner": "Australia",
            "probability": 61.0,
            "reasoning": "Pace attack",
        }
        assert seen["auth"] == "Bearer hf_test"
        assert "India vs Australia" in seen["body"]["inputs"]

    @pytest.mark.asyncio
    async def test_without_api_key(self):
        def handler(request):
            raise AssertionError("no request expected")

        assert await _predictor(handler, api_key="").predict(MATCH) is None

    @pytest.mark.asyncio
    async def test_upstream_error(self):
        predictor = _predictor(lambda request: httpx.Response(503, json={"error": "loading"}))
        assert await predictor.predict(MATCH) is None

    @pytest.mark.asyncio
    async def test_unexpected_shape(self):
        predictor = _predictor(lambda request: httpx.Response(200, json={"error": "rate limited"}))
        assert await predictor.predict(MATCH) is None

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        predictor = _predictor(lambda request: httpx.Response(200, text="<html>busy</html>"))
        assert await predictor.predict(MATCH) is None
