"""Postgres-backed category/nominee store.

Plain psycopg + SQL. Every public method wraps driver errors in StoreError so
the import pipeline can fold them into its summary.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, List, Optional, Sequence

import psycopg
from psycopg.types.json import Jsonb

from awardpool.ingestion.source_types import SOURCE_KIND_FEED, SOURCE_KIND_HTML, Source
from awardpool.storage.store_types import (
    DEFAULT_MAX_NOMINEES,
    Category,
    NewNominee,
    Nominee,
    StoreError,
)

logger = logging.getLogger(__name__)


def _wrap_errors(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except psycopg.Error as e:
            raise StoreError(f"{fn.__name__}: {e}") from e

    return wrapper


def _row_to_category(row) -> Category:
    return Category(
        id=int(row[0]),
        name=row[1],
        ceremony_year=int(row[2]),
        is_active=bool(row[3]),
        max_nominees=int(row[4]),
    )


class PostgresNomineeStore:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self):
        return psycopg.connect(self.pg_dsn, autocommit=True)

    @_wrap_errors
    def list_categories(self, ceremony_year: int) -> List[Category]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, name, ceremony_year, is_active, max_nominees
                    FROM categories
                    WHERE ceremony_year = %s
                    ORDER BY id
                    """,
                    (int(ceremony_year),),
                )
                rows = cur.fetchall()
        return [_row_to_category(r) for r in rows]

    @_wrap_errors
    def get_category(self, category_id: int) -> Optional[Category]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT id, name, ceremony_year, is_active, max_nominees FROM categories WHERE id = %s",
                    (int(category_id),),
                )
                row = cur.fetchone()
        return _row_to_category(row) if row else None

    @_wrap_errors
    def insert_category(
        self,
        name: str,
        ceremony_year: int,
        *,
        max_nominees: int = DEFAULT_MAX_NOMINEES,
        is_active: bool = True,
    ) -> Category:
        with self._connect() as conn:
            with conn.cursor() as cur:
                # A concurrent admin may have created it; return that row instead
                cur.execute(
                    """
                    INSERT INTO categories (name, ceremony_year, max_nominees, is_active)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (lower(name), ceremony_year) DO UPDATE SET updated_at = now()
                    RETURNING id, name, ceremony_year, is_active, max_nominees
                    """,
                    (name, int(ceremony_year), int(max_nominees), bool(is_active)),
                )
                row = cur.fetchone()
        return _row_to_category(row)

    @_wrap_errors
    def list_nominees(self, category_id: int, ceremony_year: int) -> List[Nominee]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, category_id, name, ceremony_year, meta, is_winner
                    FROM nominees
                    WHERE category_id = %s AND ceremony_year = %s
                    ORDER BY id
                    """,
                    (int(category_id), int(ceremony_year)),
                )
                rows = cur.fetchall()
        return [
            Nominee(
                id=int(r[0]),
                category_id=int(r[1]),
                name=r[2],
                ceremony_year=int(r[3]),
                meta=dict(r[4] or {}),
                is_winner=bool(r[5]),
            )
            for r in rows
        ]

    @_wrap_errors
    def insert_nominees(self, batch: Sequence[NewNominee]) -> int:
        if not batch:
            return 0
        # One transaction per batch: a failed row fails the category, not half of it
        with psycopg.connect(self.pg_dsn) as conn:
            with conn.cursor() as cur:
                cur.executemany(
                    """
                    INSERT INTO nominees (category_id, name, ceremony_year, meta)
                    VALUES (%s, %s, %s, %s)
                    """,
                    [(int(n.category_id), n.name, int(n.ceremony_year), Jsonb(n.meta or {})) for n in batch],
                )
        return len(batch)

    @_wrap_errors
    def get_setting(self, key: str) -> Optional[Any]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT value FROM app_settings WHERE key = %s", (key,))
                row = cur.fetchone()
        return row[0] if row else None

    @_wrap_errors
    def list_sources(self) -> List[Source]:
        out: List[Source] = []
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT url, name, language FROM scrape_sources WHERE enabled ORDER BY id")
                for url, name, language in cur.fetchall():
                    out.append(Source(url=url, kind=SOURCE_KIND_HTML, name=name, language=language))
                cur.execute(
                    "SELECT url, keywords, category_id, language FROM rss_feeds WHERE enabled ORDER BY id"
                )
                for url, keywords, category_id, language in cur.fetchall():
                    out.append(
                        Source(
                            url=url,
                            kind=SOURCE_KIND_FEED,
                            keywords=tuple(keywords or ()),
                            language=language,
                            category_id=int(category_id) if category_id is not None else None,
                        )
                    )
        logger.debug(f"[import] loaded {len(out)} configured sources")
        return out
