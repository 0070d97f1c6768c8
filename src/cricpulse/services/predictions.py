"""
Match outcome predictions from a hosted text generation model.

The model is asked for a JSON object {winner, probability, reasoning}.
Anything else (no API key, HTTP failure, unparseable output) yields None
and the caller decides how to report it; no made-up prediction is ever
returned.
"""

import json
import logging
import re
from dataclasses import asdict, dataclass
from typing import Optional

import httpx

from cricpulse.config import settings
from cricpulse.scrape.base import MatchRecord

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """
You are a cricket expert. Predict the winner of the following match based on general cricket knowledge.
Match: {name}
Teams: {teams}
Venue: {venue}
Format: {match_type}
Date: {date}

Provide the response in the following JSON format ONLY:
{{
  "winner": "Team Name",
  "probability": 75,
  "reasoning": "Brief explanation why"
}}
"""

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


@dataclass
class Prediction:
    winner: str
    probability: float  # 0-100
    reasoning: str

    def to_dict(self) -> dict:
        return asdict(self)


def build_prompt(match: MatchRecord) -> str:
    return PROMPT_TEMPLATE.format(
        name=match.name,
        teams=" vs ".join(match.teams),
        venue=match.venue or "Unknown",
        match_type=match.match_type,
        date=match.date or "Unknown",
    )


def parse_prediction(generated_text: str) -> Optional[Prediction]:
    """
    Pull the prediction JSON out of generated text.

    Examples:
        >>> parse_prediction('Sure! {"winner": "India", "probability": 140, "reasoning": "Form"}')
        Prediction(winner='India', probability=100.0, reasoning='Form')
    """
    found = _JSON_BLOCK.search(generated_text or "")
    if not found:
        return None
    try:
        data = json.loads(found.group(0))
        winner = str(data["winner"]).strip()
        probability = float(data["probability"])
    except (ValueError, KeyError, TypeError):
        logger.warning("Model output is not a valid prediction")
        return None
    if not winner:
        return None

    return Prediction(
        winner=winner,
        probability=min(max(probability, 0.0), 100.0),
        reasoning=str(data.get("reasoning") or ""),
    )


class MatchPredictor:
    """
    Client for the Hugging Face inference API.

    Args:
        client: Optional httpx.AsyncClient (tests pass one with a MockTransport)
        api_key: Inference token (default settings.huggingface_api_key)
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, api_key: Optional[str] = None):
        self._client = client
        self.api_key = api_key if api_key is not None else settings.huggingface_api_key
        self.url = f"{settings.prediction_api_base_url.rstrip('/')}/{settings.prediction_model_id}"

    async def predict(self, match: MatchRecord) -> Optional[Prediction]:
        """Predict the winner of `match`, or None if no prediction could be made."""
        if not self.api_key:
            logger.error("HUGGINGFACE_API_KEY is not set; predictions are disabled")
            return None

        payload = {
            "inputs": build_prompt(match),
            "parameters": {
                "max_new_tokens": 200,
                "return_full_text": False,
                "temperature": 0.1,
            },
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=settings.prediction_timeout) as client:
                    response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Prediction request failed for {match.name}: {e}")
            return None
        except ValueError:
            logger.error(f"Prediction response for {match.name} is not JSON")
            return None

        if not (isinstance(result, list) and result and isinstance(result[0], dict)
                and "generated_text" in result[0]):
            logger.warning(f"Unexpected prediction response shape for {match.name}")
            return None

        return parse_prediction(result[0]["generated_text"])
