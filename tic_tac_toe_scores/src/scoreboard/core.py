import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import GameResult, LeaderboardEntry, ScoreHistoryItem

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

SCORE_FOR_RESULT: Dict[str, float] = {"win": 1.0, "draw": 0.5, "loss": 0.0}


# PUBLIC_INTERFACE
def score_for_result(result: GameResult) -> float:
    """Numeric score persisted for a game result: 1 win, 0.5 draw, 0 loss."""
    return SCORE_FOR_RESULT[result]


def coerce_score(value: Any) -> float:
    """Score value as a finite float; anything else counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp into an aware datetime (naive values are UTC)."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# PUBLIC_INTERFACE
def aggregate_leaderboard(
    rows: Iterable[Mapping[str, Any]], score_column: str, limit: int = 10
) -> List[LeaderboardEntry]:
    """Group rows by username, total their scores and rank the players.

    Order: total score desc, then most recent play desc, then username so the
    result is fully determined by the input rows. Rows without a username are
    ignored and unparseable timestamps count as the epoch.
    """
    totals: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    latest: Dict[str, datetime] = {}
    for row in rows:
        username = row.get("username")
        if not isinstance(username, str) or not username.strip():
            continue
        played = parse_timestamp(row.get("created_at")) or EPOCH
        totals[username] = totals.get(username, 0.0) + coerce_score(row.get(score_column))
        counts[username] = counts.get(username, 0) + 1
        if username not in latest or played > latest[username]:
            latest[username] = played

    ranked = sorted(totals, key=lambda name: (-totals[name], -latest[name].timestamp(), name))
    if limit < 1:
        return []
    return [
        LeaderboardEntry(
            rank=i + 1,
            username=name,
            total_score=totals[name],
            games_played=counts[name],
            last_played=latest[name],
        )
        for i, name in enumerate(ranked[:limit])
    ]


# PUBLIC_INTERFACE
def history_items(rows: Iterable[Mapping[str, Any]], score_column: str) -> List[ScoreHistoryItem]:
    """Raw score rows for one player, in store order."""
    items = []
    for row in rows:
        username = row.get("username")
        if not isinstance(username, str) or not username.strip():
            continue
        items.append(ScoreHistoryItem(
            username=username,
            score=coerce_score(row.get(score_column)),
            created_at=parse_timestamp(row.get("created_at")),
        ))
    return items
