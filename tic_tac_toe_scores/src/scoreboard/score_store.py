import logging
import math
from enum import Enum
from typing import Awaitable, Callable, Optional, Tuple

from .config import Settings
from .core import aggregate_leaderboard, history_items
from .errors import ErrorClassifier, ErrorKind, MessageErrorClassifier, schema_help_message
from .models import FailureKind, HistoryResult, LeaderboardResult, RecordResult
from .store_client import PostgrestClient, StoreResponse, TableClient

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "scores"
DEFAULT_WINDOW = 1000


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


class ColumnState(str, Enum):
    UNKNOWN = "unknown"
    CONFIRMED_PRIMARY = "confirmed_primary"
    CONFIRMED_ALTERNATE = "confirmed_alternate"


class ColumnNegotiator:
    """Tracks which of two candidate score column names the live table uses."""

    def __init__(self, primary: str, alternate: str):
        self.primary = primary
        self.alternate = alternate
        self.state = ColumnState.UNKNOWN

    @property
    def current(self) -> str:
        if self.state is ColumnState.CONFIRMED_ALTERNATE:
            return self.alternate
        return self.primary

    def other(self, column: str) -> str:
        return self.alternate if column == self.primary else self.primary

    def confirm(self, column: str) -> None:
        state = ColumnState.CONFIRMED_PRIMARY if column == self.primary else ColumnState.CONFIRMED_ALTERNATE
        if state is not self.state:
            logger.debug("Score column confirmed as %r", column)
        self.state = state


# PUBLIC_INTERFACE
class ScoreStore:
    """Persists game scores and builds the leaderboard from a remote scores table.

    Without both an endpoint and an access key the store is disabled for its
    whole lifetime: every operation returns an ``unavailable`` failure and no
    request is made. Operations never raise; they return tagged results whose
    ``message`` is ready to show to the player.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        access_key: Optional[str] = None,
        *,
        table: str = DEFAULT_TABLE,
        primary_column: str = "score",
        alternate_column: str = "points",
        window: int = DEFAULT_WINDOW,
        client: Optional[TableClient] = None,
        classifier: Optional[ErrorClassifier] = None,
    ):
        endpoint = (endpoint or "").strip()
        access_key = (access_key or "").strip()
        self.table = table
        self.window = window
        self.columns = ColumnNegotiator(primary_column, alternate_column)
        self.classifier: ErrorClassifier = classifier or MessageErrorClassifier()
        self._schema_help_shown = False
        self._client: Optional[TableClient] = None

        if not (endpoint and access_key):
            logger.warning("Supabase is not configured (missing URL or key). Score saving is disabled.")
            return
        self._client = client or PostgrestClient(endpoint, access_key)

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[TableClient] = None) -> "ScoreStore":
        return cls(
            settings.supabase_url,
            settings.supabase_key,
            table=settings.scores_table,
            primary_column=settings.score_column,
            alternate_column=settings.alternate_score_column,
            window=settings.leaderboard_window,
            client=client,
        )

    # PUBLIC_INTERFACE
    def is_configured(self) -> bool:
        return self._client is not None

    # PUBLIC_INTERFACE
    async def record_result(self, player_id: str, score: float) -> RecordResult:
        """Insert one score row for ``player_id``."""
        if self._client is None:
            return RecordResult(ok=False, kind=FailureKind.UNAVAILABLE, message="Score saving is unavailable right now.")

        username = (player_id or "").strip() if isinstance(player_id, str) else ""
        if not username:
            return RecordResult(ok=False, kind=FailureKind.INVALID, message="A username is required to save a score.")
        if not _is_finite_number(score):
            return RecordResult(ok=False, kind=FailureKind.INVALID, message=f"Invalid score: {score!r}")

        client = self._client

        def insert(column: str) -> Awaitable[StoreResponse]:
            return client.insert(self.table, {"username": username, column: score})

        response, kind, _ = await self._negotiate(insert)
        if response.error is None:
            return RecordResult(ok=True)
        if kind is ErrorKind.MISSING_TABLE:
            return RecordResult(ok=False, kind=FailureKind.SCHEMA_MISSING, message=self._schema_help())
        logger.warning("Saving score for %s failed: %s", username, response.error.message)
        return RecordResult(
            ok=False,
            kind=FailureKind.TRANSPORT,
            message=f"Failed to save score: {response.error.message}",
        )

    # PUBLIC_INTERFACE
    async def fetch_leaderboard(self, limit: int = 10) -> LeaderboardResult:
        """Top ``limit`` players by total score over the most recent rows."""
        if self._client is None:
            return LeaderboardResult(ok=False, kind=FailureKind.UNAVAILABLE, message="Leaderboard is unavailable right now.")

        client = self._client

        def select(column: str) -> Awaitable[StoreResponse]:
            return client.select(
                self.table,
                ["username", column, "created_at"],
                order="created_at",
                descending=True,
                limit=self.window,
            )

        response, kind, column = await self._negotiate(select)
        if response.error is None:
            return LeaderboardResult(ok=True, data=aggregate_leaderboard(response.data, column, limit))
        if kind is ErrorKind.MISSING_TABLE:
            return LeaderboardResult(ok=False, kind=FailureKind.SCHEMA_MISSING, message=self._schema_help())
        logger.warning("Loading leaderboard failed: %s", response.error.message)
        return LeaderboardResult(
            ok=False,
            kind=FailureKind.TRANSPORT,
            message=f"Failed to load leaderboard: {response.error.message or 'Unknown error'}",
        )

    # PUBLIC_INTERFACE
    async def fetch_player_history(self, player_id: str, limit: int = 20) -> HistoryResult:
        """A single player's most recent score rows, newest first."""
        if self._client is None:
            return HistoryResult(ok=False, kind=FailureKind.UNAVAILABLE, message="Score history is unavailable right now.")

        username = (player_id or "").strip() if isinstance(player_id, str) else ""
        if not username:
            return HistoryResult(ok=False, kind=FailureKind.INVALID, message="A username is required.")

        client = self._client

        def select(column: str) -> Awaitable[StoreResponse]:
            return client.select(
                self.table,
                ["username", column, "created_at"],
                order="created_at",
                descending=True,
                limit=max(limit, 0),
                filters={"username": username},
            )

        response, kind, column = await self._negotiate(select)
        if response.error is None:
            return HistoryResult(ok=True, data=history_items(response.data, column))
        if kind is ErrorKind.MISSING_TABLE:
            return HistoryResult(ok=False, kind=FailureKind.SCHEMA_MISSING, message=self._schema_help())
        logger.warning("Loading score history for %s failed: %s", username, response.error.message)
        return HistoryResult(
            ok=False,
            kind=FailureKind.TRANSPORT,
            message=f"Failed to load score history: {response.error.message or 'Unknown error'}",
        )

    async def aclose(self) -> None:
        close = getattr(self._client, "aclose", None)
        if close is not None:
            await close()

    async def _negotiate(
        self, call: Callable[[str], Awaitable[StoreResponse]]
    ) -> Tuple[StoreResponse, Optional[ErrorKind], str]:
        """Run ``call`` under the current column, retrying once with the other
        candidate when the backend reports that column as missing.

        Returns the final response, its error kind (None on success) and the
        column the response belongs to.
        """
        column = self.columns.current
        response = await call(column)
        if response.error is None:
            self.columns.confirm(column)
            return response, None, column

        kind = self.classifier.classify(response.error, column)
        if kind is not ErrorKind.MISSING_COLUMN:
            return response, kind, column

        retry_column = self.columns.other(column)
        logger.info("Score column %r not found in %s; retrying with %r", column, self.table, retry_column)
        response = await call(retry_column)
        if response.error is None:
            self.columns.confirm(retry_column)
            return response, None, retry_column

        kind = self.classifier.classify(response.error, retry_column)
        if kind is not ErrorKind.MISSING_TABLE:
            kind = ErrorKind.OTHER
        return response, kind, retry_column

    def _schema_help(self) -> str:
        message = schema_help_message(self.table, self.columns.primary, verbose=not self._schema_help_shown)
        if not self._schema_help_shown:
            logger.error('Supabase table "%s" is missing or not accessible', self.table)
        self._schema_help_shown = True
        return message
