"""Nominee import: sources -> candidates -> categories -> new nominees -> summary.

Sources are processed one after another; the first source that mentions a name
decides its spelling. No failure of a single source or category aborts the run:
fetch/extract failures land in `skipped_sources`, store failures are recorded
on the category entry. Only errors before iteration starts (active year
unreadable, unknown target category) raise `ImportAbortedError`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from awardpool.contracts.import_summary import (
    ERROR_INSERT_FAILED,
    ERROR_LOOKUP_FAILED,
    ERROR_RESOLUTION_FAILED,
    SKIP_NO_TARGET_CATEGORY,
    ImportSummary,
)
from awardpool.extraction.feed_candidates import FeedCandidateExtractor
from awardpool.extraction.fetcher import REASON_PARSE_ERROR, FetchResult, SourceFetcher
from awardpool.extraction.html_nominees import HtmlNomineeExtractor
from awardpool.extraction.text_cleaning import (
    collapse_ws,
    dedup_key,
    is_noise,
    normalize_dashes,
    strip_review_parentheticals,
)
from awardpool.ingestion.source_types import SOURCE_KIND_FEED, Candidate, Source
from awardpool.ingestion.url_utils import canonicalize_url
from awardpool.resolution.category_resolver import (
    CategoryCache,
    CategoryRef,
    CategoryResolutionError,
    CategoryResolver,
)
from awardpool.resolution.synonyms import are_synonyms
from awardpool.storage.store_types import Category, NewNominee, NomineeStore, StoreError

logger = logging.getLogger(__name__)


CEREMONY_YEAR_SETTING = "ceremony_year"

TargetCategory = Union[int, Category, CategoryRef]


class ImportAbortedError(Exception):
    """The run could not start; nothing was fetched or written."""


def clean_candidate(c: Candidate) -> Optional[Candidate]:
    """Import-wide cleanup; returns None for candidates that are still noise."""
    name = collapse_ws(normalize_dashes(c.name))
    if not name or is_noise(name):
        return None
    title = None
    if c.secondary_title:
        title = strip_review_parentheticals(normalize_dashes(c.secondary_title)) or None
        if title and is_noise(title):
            title = None
    label = collapse_ws(c.category_label) if c.category_label else c.category_label
    return replace(c, name=name, secondary_title=title, category_label=label)


def source_identity(source: Source) -> Tuple[Any, ...]:
    # One feed URL may be configured once per category it feeds
    keywords = tuple(sorted({k.strip().lower() for k in source.keywords if k and k.strip()}))
    return (canonicalize_url(source.url), source.kind, source.category_id, keywords)


def dedupe_sources(sources: Iterable[Source]) -> List[Source]:
    """Drop repeated source configurations; the first one wins."""
    seen = set()
    out: List[Source] = []
    for source in sources:
        key = source_identity(source)
        if key in seen:
            continue
        seen.add(key)
        out.append(source)
    return out


@dataclass
class _CategoryBatch:
    ref: CategoryRef
    candidates: List[Candidate] = field(default_factory=list)


class ReconciliationEngine:
    def __init__(
        self,
        store: NomineeStore,
        *,
        fetcher: Optional[SourceFetcher] = None,
        html_extractor: Optional[HtmlNomineeExtractor] = None,
        feed_extractor: Optional[FeedCandidateExtractor] = None,
    ):
        self.store = store
        self.fetcher = fetcher or SourceFetcher()
        self.html_extractor = html_extractor or HtmlNomineeExtractor()
        self.feed_extractor = feed_extractor or FeedCandidateExtractor()

    # --- setup -----------------------------------------------------------------

    def active_year(self) -> int:
        try:
            value = self.store.get_setting(CEREMONY_YEAR_SETTING)
        except StoreError as e:
            raise ImportAbortedError(f"cannot read {CEREMONY_YEAR_SETTING}: {e}") from e
        if value is None or str(value).strip() == "":
            year = datetime.now(timezone.utc).year
            logger.warning(f"[import] {CEREMONY_YEAR_SETTING} not set; using {year}")
            return year
        try:
            return int(str(value).strip())
        except ValueError as e:
            raise ImportAbortedError(f"invalid {CEREMONY_YEAR_SETTING}: {value!r}") from e

    def _target_ref(self, resolver: CategoryResolver, target: TargetCategory, year: int) -> CategoryRef:
        category_id = target if isinstance(target, int) else target.id
        try:
            ref = resolver.category_for_id(category_id, year)
        except CategoryResolutionError as e:
            raise ImportAbortedError(str(e)) from e
        if ref is None:
            raise ImportAbortedError(f"target category {category_id} not found for {year}")
        return ref

    # --- run -------------------------------------------------------------------

    def run(
        self,
        sources: Sequence[Source],
        target_category: Optional[TargetCategory] = None,
        *,
        ceremony_year: Optional[int] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> ImportSummary:
        year = int(ceremony_year) if ceremony_year is not None else self.active_year()
        resolver = CategoryResolver(self.store, CategoryCache())
        target = self._target_ref(resolver, target_category, year) if target_category is not None else None

        summary = ImportSummary(ceremony_year=year)
        candidates: List[Candidate] = []
        feed_refs: Dict[int, CategoryRef] = {target.id: target} if target else {}
        unique_sources = dedupe_sources(sources)
        fetched: Dict[Tuple[str, str], FetchResult] = {}
        logger.info(
            f"[import] start year={year} sources={len(unique_sources)}"
            + (f" target={target.name!r}" if target else "")
        )

        for source in unique_sources:
            if should_cancel is not None and should_cancel():
                summary.cancelled = True
                logger.info(f"[import] cancelled before {source.url}")
                break
            found = self._collect(source, target, year, resolver, feed_refs, fetched, summary)
            if found is not None:
                candidates.extend(found)

        batches = self._group(candidates, target, feed_refs, year, resolver, summary)
        for batch in batches.values():
            self._merge(batch, year, summary)

        logger.info(
            f"[import] total_imported={summary.total_imported} processed={len(summary.processed_sources)} "
            f"skipped={len(summary.skipped_sources)}"
        )
        return summary

    def _collect(
        self,
        source: Source,
        target: Optional[CategoryRef],
        year: int,
        resolver: CategoryResolver,
        feed_refs: Dict[int, CategoryRef],
        fetched: Dict[Tuple[str, str], FetchResult],
        summary: ImportSummary,
    ) -> Optional[List[Candidate]]:
        """Fetch and extract one source; None means it was skipped."""
        feed_ref: Optional[CategoryRef] = None
        if source.kind == SOURCE_KIND_FEED:
            feed_ref = target
            if feed_ref is None and source.category_id is not None:
                try:
                    feed_ref = resolver.category_for_id(source.category_id, year)
                except CategoryResolutionError as e:
                    logger.error(f"[import] {source.url} bound category lookup failed: {e}", exc_info=True)
                    entry = summary.category_entry(f"category:{source.category_id}", source.category_id)
                    entry.error = ERROR_RESOLUTION_FAILED
                    summary.skip(source.url, SKIP_NO_TARGET_CATEGORY)
                    return None
            if feed_ref is None:
                logger.info(f"[import] skipped {source.url}: {SKIP_NO_TARGET_CATEGORY}")
                summary.skip(source.url, SKIP_NO_TARGET_CATEGORY)
                return None
            feed_refs[feed_ref.id] = feed_ref

        fetch_key = (canonicalize_url(source.url), source.kind)
        result = fetched.get(fetch_key)
        if result is None:
            result = fetched[fetch_key] = self.fetcher.fetch(source.url, source.kind)
        if not result.ok:
            logger.info(f"[import] skipped {source.url}: {result.failure.reason}")
            summary.skip(source.url, result.failure.reason)
            return None

        try:
            if feed_ref is not None:
                keywords = list(source.keywords)
                if keywords:
                    keywords.append(str(year))
                found = self.feed_extractor.extract(
                    result.document, keywords, source_url=source.url, category_id=feed_ref.id
                )
            else:
                found = self.html_extractor.run(result.document, source.url).candidates
        except Exception as e:
            logger.warning(f"[import] skipped {source.url}: extractor failed: {e}", exc_info=True)
            summary.skip(source.url, REASON_PARSE_ERROR)
            return None

        summary.processed_sources.append(source.url)
        for c in found:
            if c.category_label:
                summary.detected(c.category_label)
        logger.info(f"[import] processed {source.url} candidates={len(found)}")
        return found

    def _group(
        self,
        candidates: Iterable[Candidate],
        target: Optional[CategoryRef],
        feed_refs: Dict[int, CategoryRef],
        year: int,
        resolver: CategoryResolver,
        summary: ImportSummary,
    ) -> Dict[int, _CategoryBatch]:
        batches: Dict[int, _CategoryBatch] = {}
        resolved: Dict[str, Optional[CategoryRef]] = {}
        dropped = 0

        for raw in candidates:
            c = clean_candidate(raw)
            if c is None:
                dropped += 1
                continue

            if c.category_id is not None:
                ref = feed_refs.get(c.category_id)
                if ref is None:
                    continue
            elif target is not None:
                if not c.category_label or not are_synonyms(c.category_label, target.name):
                    continue
                ref = target
            else:
                key = dedup_key(c.category_label)
                if not key:
                    continue
                if key not in resolved:
                    try:
                        resolved[key] = resolver.resolve(c.category_label, year)
                    except CategoryResolutionError as e:
                        logger.error(f"[import] category {c.category_label!r} unresolved: {e}", exc_info=True)
                        summary.category_entry(c.category_label, None).error = ERROR_RESOLUTION_FAILED
                        resolved[key] = None
                ref = resolved[key]
                if ref is None:
                    continue

            batch = batches.get(ref.id)
            if batch is None:
                batch = batches[ref.id] = _CategoryBatch(ref)
            batch.candidates.append(c.with_category(ref.id))

        if dropped:
            logger.info(f"[import] dropped {dropped} noisy candidates")
        return batches

    def _merge(self, batch: _CategoryBatch, year: int, summary: ImportSummary) -> None:
        ref = batch.ref
        entry = summary.category_entry(ref.name, ref.id)
        try:
            existing = self.store.list_nominees(ref.id, year)
        except StoreError as e:
            logger.error(f"[import] {ref.name!r}: listing nominees failed: {e}", exc_info=True)
            entry.error = ERROR_LOOKUP_FAILED
            return

        seen = {dedup_key(n.name) for n in existing}
        new: List[NewNominee] = []
        for c in batch.candidates:
            key = dedup_key(c.name)
            if key in seen:
                continue
            seen.add(key)
            meta: Dict[str, Any] = {}
            if c.secondary_title:
                meta["film_title"] = c.secondary_title
            new.append(NewNominee(category_id=ref.id, name=c.name, ceremony_year=year, meta=meta))

        if not new:
            logger.info(f"[import] {ref.name!r}: nothing new ({len(batch.candidates)} candidates)")
            return
        try:
            inserted = self.store.insert_nominees(new)
        except StoreError as e:
            logger.error(f"[import] {ref.name!r}: insert of {len(new)} nominees failed: {e}", exc_info=True)
            entry.error = ERROR_INSERT_FAILED
            return
        entry.imported_count += inserted
        logger.info(f"[import] {ref.name!r}: imported {inserted}")


def import_from_sources(
    store: NomineeStore,
    sources: Sequence[Source],
    target_category: Optional[TargetCategory] = None,
    *,
    ceremony_year: Optional[int] = None,
    fetcher: Optional[SourceFetcher] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> ImportSummary:
    """Run one import over `sources` and return its summary."""
    engine = ReconciliationEngine(store, fetcher=fetcher)
    return engine.run(
        sources,
        target_category,
        ceremony_year=ceremony_year,
        should_cancel=should_cancel,
    )
