"""Postgres schema management for the nominee store.

Schema creation is idempotent (CREATE IF NOT EXISTS) so every entry point can
call `ensure_postgres_schema` on startup.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Categories: one per (lower(name), ceremony_year)
    """
    CREATE TABLE IF NOT EXISTS categories (
      id BIGSERIAL PRIMARY KEY,
      name TEXT NOT NULL,
      ceremony_year INTEGER NOT NULL,
      is_active BOOLEAN NOT NULL DEFAULT TRUE,
      max_nominees INTEGER NOT NULL DEFAULT 5,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS categories_name_year_uq ON categories (lower(name), ceremony_year);",
    # Nominees (case/diacritic-insensitive uniqueness is enforced by the importer)
    """
    CREATE TABLE IF NOT EXISTS nominees (
      id BIGSERIAL PRIMARY KEY,
      category_id BIGINT NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
      name TEXT NOT NULL,
      ceremony_year INTEGER NOT NULL,
      meta JSONB NOT NULL DEFAULT '{}'::jsonb,
      is_winner BOOLEAN NOT NULL DEFAULT FALSE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS nominees_category_year_idx ON nominees (category_id, ceremony_year);",
    # Key/value settings (ceremony_year, ...)
    """
    CREATE TABLE IF NOT EXISTS app_settings (
      key TEXT PRIMARY KEY,
      value JSONB,
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    # Administrator-configured sources
    """
    CREATE TABLE IF NOT EXISTS scrape_sources (
      id BIGSERIAL PRIMARY KEY,
      url TEXT NOT NULL UNIQUE,
      name TEXT,
      language TEXT,
      enabled BOOLEAN NOT NULL DEFAULT TRUE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS rss_feeds (
      id BIGSERIAL PRIMARY KEY,
      url TEXT NOT NULL,
      category_id BIGINT REFERENCES categories(id) ON DELETE SET NULL,
      keywords TEXT[] NOT NULL DEFAULT '{}',
      language TEXT,
      enabled BOOLEAN NOT NULL DEFAULT TRUE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
