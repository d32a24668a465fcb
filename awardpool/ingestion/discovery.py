"""Discover per-year nominee article URLs from a site's index page.

Walks the index page and its `?page=N` pagination, keeping anchors whose
path looks like `/oscar-<year>/<slug>` (or `/oscars-<year>/<slug>`).
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

from awardpool.extraction.fetcher import SourceFetcher
from awardpool.ingestion.source_types import SOURCE_KIND_HTML, Source
from awardpool.ingestion.url_utils import absolutize, dedupe_by_url

logger = logging.getLogger(__name__)


DEFAULT_MAX_PAGES = 5


def article_path_re(year: int):
    return re.compile(rf"/oscars?-{int(year)}/[a-z0-9][a-z0-9-]*/?$", re.IGNORECASE)


def page_url(index_url: str, page: int) -> str:
    if page <= 1:
        return index_url
    sep = "&" if urlparse(index_url).query else "?"
    return f"{index_url}{sep}page={page}"


def discover_article_urls(
    index_url: str,
    year: int,
    *,
    max_pages: int = DEFAULT_MAX_PAGES,
    fetcher: Optional[SourceFetcher] = None,
) -> List[str]:
    fetcher = fetcher or SourceFetcher()
    pattern = article_path_re(year)
    found: List[str] = []

    for page in range(1, max(1, int(max_pages)) + 1):
        url = page_url(index_url, page)
        result = fetcher.fetch(url, SOURCE_KIND_HTML)
        if not result.ok:
            logger.warning(f"[discover] {url} -> {result.failure.reason}")
            continue
        soup = result.document
        for a in soup.find_all("a", href=True):
            full = absolutize(a["href"].strip(), result.url)
            if full and pattern.search(urlparse(full).path):
                found.append(full)
        # No pagination links after the first page means we ran off the end
        if page > 1 and not soup.select('a[href*="?page="], a[href*="&page="]'):
            break

    urls = dedupe_by_url(found, key=lambda u: u)
    logger.info(f"[discover] {index_url} year={year} articles={len(urls)}")
    return urls


def discover_sources(index_url: str, year: int, **kwargs) -> List[Source]:
    """Discovered article URLs as html-article sources."""
    return [Source(url=u, kind=SOURCE_KIND_HTML) for u in discover_article_urls(index_url, year, **kwargs)]
