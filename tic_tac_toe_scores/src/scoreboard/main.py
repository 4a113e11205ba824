import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Union

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .core import score_for_result
from .models import (
    ConfigResponse,
    FailureKind,
    HistoryResult,
    LeaderboardResponse,
    LeaderboardResult,
    RecordResult,
    ScoreHistoryResponse,
    ScoreSubmitRequest,
    ScoreSubmitResponse,
)
from .score_store import ScoreStore

logger = logging.getLogger(__name__)

FAILURE_STATUS = {
    FailureKind.UNAVAILABLE: 503,
    FailureKind.SCHEMA_MISSING: 503,
    FailureKind.TRANSPORT: 502,
    FailureKind.INVALID: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.state.score_store = ScoreStore.from_settings(settings)
    if app.state.score_store.is_configured():
        logger.info("Supabase env detected; score saving enabled")
    yield
    await app.state.score_store.aclose()


app = FastAPI(
    title="Tic Tac Toe Scores API",
    description="Saves finished Tic Tac Toe games to Supabase and serves the leaderboard.",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "scores", "description": "Save scores and read a player's score history"},
        {"name": "leaderboard", "description": "Top players by total score"},
        {"name": "config", "description": "Whether score persistence is available"},
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


##---- Utility Functions ----##
def get_score_store(request: Request) -> ScoreStore:
    return request.app.state.score_store


def raise_for_failure(result: Union[RecordResult, LeaderboardResult, HistoryResult]) -> None:
    """Turn a failed store result into an HTTP error carrying its message."""
    if result.ok:
        return
    status_code = FAILURE_STATUS.get(result.kind, 500)
    raise HTTPException(status_code=status_code, detail=result.message or "Unknown error")


@app.get("/", tags=["health"])
def health_check():
    """Health check route for backend"""
    return {"message": "Healthy"}


# PUBLIC_INTERFACE
@app.get("/config", response_model=ConfigResponse, tags=["config"], summary="Score persistence status")
async def get_config(store: ScoreStore = Depends(get_score_store)):
    """Lets clients skip asking for a username when scores cannot be saved."""
    return ConfigResponse(configured=store.is_configured())


# PUBLIC_INTERFACE
@app.post("/scores", response_model=ScoreSubmitResponse, status_code=201, tags=["scores"], summary="Save a score")
async def submit_score(request: ScoreSubmitRequest, store: ScoreStore = Depends(get_score_store)):
    """Save a finished game's score for a player.

    Args:
        request (ScoreSubmitRequest): username plus either a game result
            (win, draw, loss) or an explicit numeric score.
    Returns:
        ScoreSubmitResponse: the username and the score that was stored.
    """
    score = score_for_result(request.result) if request.result is not None else request.score
    result = await store.record_result(request.username, score)
    raise_for_failure(result)
    return ScoreSubmitResponse(username=request.username.strip(), score=score)


# PUBLIC_INTERFACE
@app.get("/leaderboard", response_model=LeaderboardResponse, tags=["leaderboard"], summary="Get top players leaderboard")
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100),
    store: ScoreStore = Depends(get_score_store),
):
    """Players ranked by total score, ties broken by most recent game."""
    result = await store.fetch_leaderboard(limit)
    raise_for_failure(result)
    return LeaderboardResponse(leaderboard=result.data)


# PUBLIC_INTERFACE
@app.get("/scores/{username}", response_model=ScoreHistoryResponse, tags=["scores"], summary="Get a player's scores")
async def get_score_history(
    username: str,
    limit: int = Query(20, ge=1, le=100),
    store: ScoreStore = Depends(get_score_store),
):
    """Most recent scores saved for one player, newest first."""
    result = await store.fetch_player_history(username, limit)
    raise_for_failure(result)
    return ScoreHistoryResponse(username=username, history=result.data)
