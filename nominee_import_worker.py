#!/usr/bin/env python3
"""Nominee import worker.

Runs one import cycle (or scheduled) over:
- HTML articles configured in `scrape_sources`
- feeds configured in `rss_feeds` (bound to their category)
- optionally, articles discovered from DISCOVERY_INDEX_URL for the ceremony year

and prints the import summary.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import List, Optional

import schedule
from dotenv import load_dotenv

from awardpool.contracts.import_summary import ImportSummary
from awardpool.ingestion.discovery import DEFAULT_MAX_PAGES, discover_sources
from awardpool.ingestion.source_types import Source
from awardpool.pipeline.reconcile import ImportAbortedError, ReconciliationEngine
from awardpool.storage.postgres_repo import PostgresNomineeStore
from awardpool.storage.postgres_schema import ensure_postgres_schema
from awardpool.storage.store_types import NomineeStore, StoreError

logger = logging.getLogger(__name__)


def _target_category() -> Optional[int]:
    raw = (os.environ.get("IMPORT_TARGET_CATEGORY_ID") or "").strip()
    return int(raw) if raw else None


def collect_sources(store: NomineeStore, engine: ReconciliationEngine) -> List[Source]:
    sources: List[Source] = list(store.list_sources())
    index_url = (os.environ.get("DISCOVERY_INDEX_URL") or "").strip()
    if index_url:
        max_pages = int(os.environ.get("DISCOVERY_MAX_PAGES", str(DEFAULT_MAX_PAGES)))
        year = engine.active_year()
        sources.extend(discover_sources(index_url, year, max_pages=max_pages, fetcher=engine.fetcher))
    return sources


def run_import(store: NomineeStore, *, target_category: Optional[int] = None) -> ImportSummary:
    engine = ReconciliationEngine(store)
    sources = collect_sources(store, engine)
    if not sources:
        logger.warning("[import] no sources configured")
    summary = engine.run(sources, target_category)
    print(
        f"[import] total_imported={summary.total_imported} "
        f"processed={len(summary.processed_sources)} skipped={len(summary.skipped_sources)}"
    )
    return summary


def run_once() -> int:
    load_dotenv()
    pg_dsn = os.environ.get("PG_DSN", "dbname=awardpool user=awardpool password=awardpool host=localhost port=5432")
    ensure_postgres_schema(pg_dsn)
    store = PostgresNomineeStore(pg_dsn)
    try:
        summary = run_import(store, target_category=_target_category())
    except (ImportAbortedError, StoreError) as e:
        logger.error(f"[import] aborted: {e}")
        return 1
    logger.info(json.dumps(summary.to_dict(), ensure_ascii=False))
    return 0


def run_scheduled() -> None:
    minutes = int(os.environ.get("IMPORT_EVERY_MINUTES", "60"))
    run_once()
    schedule.every(minutes).minutes.do(run_once)
    while True:
        schedule.run_pending()
        time.sleep(5)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    mode = (os.environ.get("IMPORT_MODE") or "once").lower().strip()
    if mode in ("scheduled", "daemon"):
        run_scheduled()
    else:
        sys.exit(run_once())
