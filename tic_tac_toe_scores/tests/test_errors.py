"""Tests for backend error classification and the schema help text."""
from __future__ import annotations

import pytest

from scoreboard.errors import ErrorKind, MessageErrorClassifier, schema_help_message
from scoreboard.store_client import StoreError

classifier = MessageErrorClassifier()


@pytest.mark.parametrize(
    "message",
    [
        'relation "public.scores" does not exist',
        "Could not find the table 'public.scores' in the schema cache",
        "Unknown table scores",
        "SCHEMA CACHE is stale",
    ],
)
def test_missing_table(message):
    assert classifier.classify(StoreError(message=message), "score") is ErrorKind.MISSING_TABLE


@pytest.mark.parametrize(
    "message",
    [
        "column scores.score does not exist",
        "Column 'score' not found",
    ],
)
def test_missing_column(message):
    assert classifier.classify(StoreError(message=message), "score") is ErrorKind.MISSING_COLUMN


def test_missing_column_must_name_the_attempted_column():
    error = StoreError(message="column scores.points does not exist")
    assert classifier.classify(error, "score") is ErrorKind.OTHER
    assert classifier.classify(error, "points") is ErrorKind.MISSING_COLUMN


@pytest.mark.parametrize(
    "message",
    [
        "permission denied for table scores",
        "duplicate key value violates unique constraint",
        "",
    ],
)
def test_other(message):
    assert classifier.classify(StoreError(message=message), "score") is ErrorKind.OTHER


def test_schema_help_contains_ddl_and_policies():
    message = schema_help_message("scores", "score")
    lowered = message.lower()
    assert "create table if not exists public.scores" in lowered
    assert "username text not null" in lowered
    assert "score numeric not null" in lowered
    assert "created_at timestamptz not null default now()" in lowered
    assert "for select" in lowered and "for insert" in lowered


def test_terse_schema_help_is_one_short_line():
    verbose = schema_help_message("scores", "score")
    terse = schema_help_message("scores", "score", verbose=False)
    assert "\n" not in terse
    assert len(terse) < len(verbose)
    assert '"scores"' in terse


@pytest.mark.parametrize(
    "message",
    [
        "column scores.created_at does not exist",
        "column scores.scored_at does not exist",
        "column high_score not found",
    ],
)
def test_column_name_must_match_whole_identifier(message):
    assert classifier.classify(StoreError(message=message), "score") is ErrorKind.OTHER
