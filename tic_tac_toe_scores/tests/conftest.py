"""Shared fixtures for the scoreboard tests.

The remote scores table is replaced by an in-memory TableClient that speaks
the same error dialect as Postgres / PostgREST, so the store's column
negotiation and error classification run against realistic messages.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional, Sequence

import pytest

from scoreboard.score_store import ScoreStore
from scoreboard.store_client import StoreError, StoreResponse

SCORE_COLUMNS = ("score", "points")
BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeTableClient:
    """In-memory scores table with a single real score column."""

    def __init__(self, column: str = "score", table_exists: bool = True, rows: Optional[list] = None):
        self.column = column
        self.table_exists = table_exists
        self.rows: list[dict] = list(rows or [])
        self.calls: list[tuple] = []
        self.fail_with: Optional[StoreError] = None
        self._tick = 0

    def _check(self, table: str, columns: Sequence[str]) -> Optional[StoreError]:
        if self.fail_with is not None:
            return self.fail_with
        if not self.table_exists:
            return StoreError(message=f'relation "public.{table}" does not exist', code="42P01")
        for column in columns:
            if column in SCORE_COLUMNS and column != self.column:
                return StoreError(message=f"column {table}.{column} does not exist", code="42703")
        return None

    async def insert(self, table: str, row: Mapping[str, Any]) -> StoreResponse:
        self.calls.append(("insert", table, dict(row)))
        error = self._check(table, list(row))
        if error is not None:
            return StoreResponse(error=error)
        self._tick += 1
        stored = dict(row)
        stored["created_at"] = (BASE_TIME + timedelta(seconds=self._tick)).isoformat()
        self.rows.append(stored)
        return StoreResponse()

    async def select(
        self,
        table: str,
        columns: Sequence[str],
        *,
        order: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> StoreResponse:
        self.calls.append(("select", table, list(columns), dict(filters or {}), limit))
        error = self._check(table, columns)
        if error is not None:
            return StoreResponse(error=error)
        rows = [r for r in self.rows if all(r.get(k) == v for k, v in (filters or {}).items())]
        if order:
            rows.sort(key=lambda r: r.get(order) or "", reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return StoreResponse(data=[{c: r.get(c) for c in columns} for r in rows])


def row(username, score, seconds=0, column="score"):
    """A stored scores row created ``seconds`` after BASE_TIME."""
    return {
        "username": username,
        column: score,
        "created_at": (BASE_TIME + timedelta(seconds=seconds)).isoformat(),
    }


@pytest.fixture
def table():
    return FakeTableClient()


@pytest.fixture
def store(table):
    return ScoreStore("https://example.supabase.co", "anon-key", client=table)
