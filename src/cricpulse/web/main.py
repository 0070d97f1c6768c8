import logging
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from cricpulse import __version__
from cricpulse.cache.memory import PredictionCache
from cricpulse.config import settings
from cricpulse.db.models import Player, Team, utcnow
from cricpulse.db.session import SessionFactory, get_db, get_session_factory
from cricpulse.scrape.base import MatchRecord
from cricpulse.services.bulk_scrape import BulkScraper, BulkScrapeStats
from cricpulse.services.cricket_data import CricketDataService, create_service
from cricpulse.services.predictions import MatchPredictor

logger = logging.getLogger(__name__)

app = FastAPI(title="CricPulse", version=__version__)

# Predictions are reused for an hour; the cache lives and dies with the app
app.state.prediction_cache = PredictionCache(
    max_entries=settings.prediction_cache_max_entries,
    ttl=settings.prediction_cache_ttl_seconds,
)


# =============================================================================
# Dependencies
# =============================================================================

def get_service(request: Request) -> CricketDataService:
    """The app's CricketDataService, created on first use."""
    service = getattr(request.app.state, "cricket_data", None)
    if service is None:
        service = create_service()
        request.app.state.cricket_data = service
    return service


def get_bulk_scraper(
    service: CricketDataService = Depends(get_service),
    session_factory: SessionFactory = Depends(get_session_factory),
) -> BulkScraper:
    return BulkScraper(service, session_factory)


def get_prediction_cache(request: Request) -> PredictionCache:
    return request.app.state.prediction_cache


def get_predictor() -> MatchPredictor:
    return MatchPredictor()


# =============================================================================
# Request bodies
# =============================================================================

class ScrapeTeamRequest(BaseModel):
    team_name: str = Field(..., min_length=1)


class ScrapePlayerRequest(BaseModel):
    player_name: str = Field(..., min_length=1)
    team_id: Optional[int] = None
    is_in_playing11: Optional[bool] = None


class MatchPayload(BaseModel):
    """The subset of a match record a prediction needs."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = ""
    teams: list[str] = Field(default_factory=list)
    venue: str = ""
    match_type: str = "ODI"
    date: Optional[str] = None

    def to_record(self) -> MatchRecord:
        return MatchRecord(
            id=self.id,
            name=self.name or " vs ".join(self.teams),
            teams=self.teams,
            venue=self.venue,
            match_type=self.match_type,
            date=self.date,
        )


class PredictionRequest(BaseModel):
    match: MatchPayload


# =============================================================================
# Error envelopes
# =============================================================================

def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are a 400 with the standard envelope."""
    return _error(f"Invalid request: {exc.errors()[0].get('msg', 'validation failed')}", 400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error("Internal server error", 500)


# =============================================================================
# Cricket data
# =============================================================================

@app.get("/api/cricket/live-scores")
async def api_live_scores(service: CricketDataService = Depends(get_service)):
    """Live, today's and upcoming matches (cached for about a minute)."""
    matches = await service.get_live_matches()
    return {"success": True, "data": [m.to_dict() for m in matches]}


@app.get("/api/cricket/live-scores/realtime")
async def api_live_scores_realtime(service: CricketDataService = Depends(get_service)):
    """Live matches fetched fresh from the sources, bypassing the cache."""
    matches = await service.get_live_matches(force_refresh=True)
    return {
        "success": True,
        "data": [m.to_dict() for m in matches],
        "timestamp": utcnow().isoformat(),
    }


@app.get("/api/cricket/series")
async def api_series(
    offset: int = Query(0, ge=0, description="Index of the first series to return"),
    service: CricketDataService = Depends(get_service),
):
    series = await service.get_series(offset)
    return {"success": True, "data": [s.to_dict() for s in series]}


@app.get("/api/cricket/matches/{match_id}")
async def api_match_details(match_id: str, service: CricketDataService = Depends(get_service)):
    match = await service.get_match_details(match_id)
    if match is None:
        return _error("Match not found", 404)
    return {"success": True, "data": match.to_dict()}


@app.get("/api/cricket/players/{name}")
async def api_player_info(name: str, service: CricketDataService = Depends(get_service)):
    player = await service.get_player_info(name)
    if player is None:
        return _error("Could not find player information", 404)
    return {"success": True, "data": player.to_dict()}


@app.get("/api/cricket/teams/{name}")
async def api_team_info(name: str, service: CricketDataService = Depends(get_service)):
    """Team with its listed players; playing11 is empty if the page could not be scraped."""
    team = await service.get_team_info(name)
    return {"success": True, "data": team.to_dict()}


@app.get("/api/teams")
async def api_teams(db: Session = Depends(get_db)):
    """Teams saved by bulk scraping, with their player counts."""
    rows = (
        db.query(Team, func.count(Player.id))
        .outerjoin(Player, Player.team_id == Team.id)
        .group_by(Team.id)
        .order_by(Team.name)
        .all()
    )
    return {
        "success": True,
        "data": [
            {
                "id": team.id,
                "name": team.name,
                "country": team.country,
                "flag": team.flag,
                "players": player_count,
            }
            for team, player_count in rows
        ],
    }


# =============================================================================
# Scraping triggers
# =============================================================================

@app.post("/api/scrape/all", status_code=202)
async def api_scrape_all(
    background_tasks: BackgroundTasks,
    bulk: BulkScraper = Depends(get_bulk_scraper),
):
    """
    Start a full bulk scrape and return immediately.

    The run takes minutes (fixed delays between requests) and cannot be
    cancelled; progress is saved entity by entity.
    """
    background_tasks.add_task(bulk.scrape_all_data)
    return {
        "success": True,
        "message": "Scraping started in background. This may take several minutes.",
    }


@app.post("/api/scrape/teams")
async def api_scrape_team(body: ScrapeTeamRequest, bulk: BulkScraper = Depends(get_bulk_scraper)):
    stats = BulkScrapeStats()
    team_id = await bulk.scrape_and_save_team(body.team_name, stats)
    if team_id is None:
        return _error(f"Failed to save team {body.team_name}", 500)
    return {"success": True, "data": {"team_id": team_id, **stats.to_dict()}}


@app.post("/api/scrape/players")
async def api_scrape_player(body: ScrapePlayerRequest, bulk: BulkScraper = Depends(get_bulk_scraper)):
    stats = BulkScrapeStats()
    player_id = await bulk.scrape_and_save_player(
        body.player_name,
        team_id=body.team_id,
        is_in_playing11=body.is_in_playing11,
        stats=stats,
    )
    if player_id is None:
        return _error("Could not find player information", 404)
    return {"success": True, "data": {"player_id": player_id, "stats": stats.stats}}


# =============================================================================
# Predictions
# =============================================================================

@app.post("/api/predictions")
async def api_predictions(
    body: PredictionRequest,
    cache: PredictionCache = Depends(get_prediction_cache),
    predictor: MatchPredictor = Depends(get_predictor),
):
    """Predicted winner of a match, reused for an hour per match id."""
    cached = cache.get(body.match.id)
    if cached is not None:
        return {"success": True, "data": cached}

    prediction = await predictor.predict(body.match.to_record())
    if prediction is None:
        return _error("Failed to generate prediction", 500)

    data = prediction.to_dict()
    cache.put(body.match.id, data)
    return {"success": True, "data": data}


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=settings.log_level, format=settings.log_format)
    uvicorn.run(
        "cricpulse.web.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
