import re
from enum import Enum
from typing import Protocol

from .store_client import StoreError

MISSING_TABLE_PHRASES = (
    "could not find the table",
    "unknown table",
    "schema cache",
)


# PUBLIC_INTERFACE
class ErrorKind(str, Enum):
    """What a backend error means for the score store."""
    MISSING_TABLE = "missing_table"
    MISSING_COLUMN = "missing_column"
    OTHER = "other"


# PUBLIC_INTERFACE
class ErrorClassifier(Protocol):
    def classify(self, error: StoreError, column: str) -> ErrorKind:
        ...


# PUBLIC_INTERFACE
class MessageErrorClassifier:
    """Classifies PostgREST / Postgres errors by their message wording.

    Best effort: a backend that rewords its messages will fall through to
    ErrorKind.OTHER. Missing table wins over missing column.
    """

    def classify(self, error: StoreError, column: str) -> ErrorKind:
        msg = (error.message or "").lower()
        if ("relation" in msg and "does not exist" in msg) or any(p in msg for p in MISSING_TABLE_PHRASES):
            return ErrorKind.MISSING_TABLE
        if (
            "column" in msg
            and _names_column(msg, column)
            and ("does not exist" in msg or "not found" in msg)
        ):
            return ErrorKind.MISSING_COLUMN
        return ErrorKind.OTHER


def _names_column(msg: str, column: str) -> bool:
    """True when ``column`` appears in ``msg`` as a whole identifier."""
    return re.search(rf"(?<!\w){re.escape(column.lower())}(?!\w)", msg) is not None


# PUBLIC_INTERFACE
def schema_help_message(table: str, column: str, verbose: bool = True) -> str:
    """Instructions for provisioning the scores table in the Supabase SQL editor."""
    if not verbose:
        return f'Supabase table "{table}" is missing or not accessible. Please create it in Supabase SQL editor.'

    return f"""Supabase table "{table}" is missing or not accessible.
Create it in Supabase SQL editor with:

create extension if not exists "uuid-ossp";

create table if not exists public.{table} (
  id uuid primary key default uuid_generate_v4(),
  username text not null,
  {column} numeric not null,
  created_at timestamptz not null default now()
);

-- Optional: allow anon inserts/selects for MVP (adjust for production)
alter table public.{table} enable row level security;

create policy "anon_read_{table}"
on public.{table} for select
to anon
using (true);

create policy "anon_insert_{table}"
on public.{table} for insert
to anon
with check (true);"""
