from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Literal
from datetime import datetime
from enum import Enum


GameResult = Literal["win", "draw", "loss"]


# PUBLIC_INTERFACE
class FailureKind(str, Enum):
    """Why a score store operation did not succeed."""
    UNAVAILABLE = "unavailable"
    SCHEMA_MISSING = "schema_missing"
    TRANSPORT = "transport"
    INVALID = "invalid"


# PUBLIC_INTERFACE
class LeaderboardEntry(BaseModel):
    """A player's aggregated standing over the fetched rows."""
    rank: int = Field(..., ge=1, description="1-based position on the leaderboard.")
    username: str = Field(..., min_length=1)
    total_score: float = Field(..., description="Sum of the player's scores in the fetch window.")
    games_played: int = Field(..., ge=1)
    last_played: datetime = Field(..., description="Most recent created_at among the player's rows.")


# PUBLIC_INTERFACE
class ScoreHistoryItem(BaseModel):
    """One scores row as read back from the store, score column already resolved."""
    username: str
    score: float
    created_at: Optional[datetime] = None


# PUBLIC_INTERFACE
class RecordResult(BaseModel):
    """Tagged result of recording one outcome."""
    ok: bool
    message: Optional[str] = None
    kind: Optional[FailureKind] = None


# PUBLIC_INTERFACE
class LeaderboardResult(BaseModel):
    """Tagged result of a leaderboard fetch. ``data`` is empty on failure."""
    ok: bool
    message: Optional[str] = None
    kind: Optional[FailureKind] = None
    data: List[LeaderboardEntry] = Field(default_factory=list)


# PUBLIC_INTERFACE
class HistoryResult(BaseModel):
    ok: bool
    message: Optional[str] = None
    kind: Optional[FailureKind] = None
    data: List[ScoreHistoryItem] = Field(default_factory=list)


# PUBLIC_INTERFACE
class ScoreSubmitRequest(BaseModel):
    """Request model for saving a finished game's score."""
    username: str = Field(..., min_length=1, description="Player name the score is saved under.")
    result: Optional[GameResult] = Field(None, description="Game result from the player's point of view.")
    score: Optional[float] = Field(None, description="Explicit numeric score; used when result is omitted.")

    @model_validator(mode="after")
    def _result_or_score(self):
        if self.result is None and self.score is None:
            raise ValueError("Either result or score is required.")
        return self


# PUBLIC_INTERFACE
class ScoreSubmitResponse(BaseModel):
    ok: bool = True
    username: str
    score: float


# PUBLIC_INTERFACE
class ConfigResponse(BaseModel):
    configured: bool = Field(..., description="Whether score saving and the leaderboard are available.")


# PUBLIC_INTERFACE
class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]


# PUBLIC_INTERFACE
class ScoreHistoryResponse(BaseModel):
    username: str
    history: List[ScoreHistoryItem]
