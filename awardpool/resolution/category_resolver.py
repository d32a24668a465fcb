"""Map free-text category labels to categories of the active ceremony year.

Resolution order:
1. per-run cache (revalidated against the store: the cached category must
   still exist and belong to the requested year)
2. exact match on the dedup key among the year's categories
3. synonym match against the year's categories (revalidated like 1)
4. create the category for the year

The cache is owned by one import run and passed in explicitly; nothing is
shared between runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from awardpool.extraction.text_cleaning import collapse_ws, dedup_key
from awardpool.resolution.synonyms import synonyms_for
from awardpool.storage.store_types import (
    DEFAULT_MAX_NOMINEES,
    Category,
    NomineeStore,
    StoreError,
)

logger = logging.getLogger(__name__)


class CategoryResolutionError(StoreError):
    """Lookup or creation of a category failed in the store."""


RESOLVED_CACHE = "cache"
RESOLVED_EXACT = "exact"
RESOLVED_SYNONYM = "synonym"
RESOLVED_CREATED = "created"


@dataclass(frozen=True)
class CategoryRef:
    id: int
    name: str
    ceremony_year: int
    resolved_by: str = RESOLVED_EXACT


@dataclass
class CategoryCache:
    """Label cache plus the per-year category catalog, scoped to one run."""

    by_label: Dict[str, int] = field(default_factory=dict)
    catalog: Dict[int, List[Category]] = field(default_factory=dict)

    def get(self, label_key: str) -> Optional[int]:
        return self.by_label.get(label_key)

    def put(self, label_key: str, category_id: int) -> None:
        self.by_label[label_key] = category_id

    def evict(self, label_key: str) -> None:
        self.by_label.pop(label_key, None)

    def add_to_catalog(self, category: Category) -> None:
        cats = self.catalog.setdefault(category.ceremony_year, [])
        if all(c.id != category.id for c in cats):
            cats.append(category)


class CategoryResolver:
    def __init__(
        self,
        store: NomineeStore,
        cache: Optional[CategoryCache] = None,
        *,
        default_max_nominees: int = DEFAULT_MAX_NOMINEES,
    ):
        self.store = store
        self.cache = cache if cache is not None else CategoryCache()
        self.default_max_nominees = default_max_nominees

    def resolve(self, label: str, ceremony_year: int) -> CategoryRef:
        key = dedup_key(label)
        if not key:
            raise ValueError("empty category label")
        try:
            return self._resolve(collapse_ws(label), key, int(ceremony_year))
        except StoreError as e:
            if isinstance(e, CategoryResolutionError):
                raise
            raise CategoryResolutionError(f"resolve {label!r} ({ceremony_year}): {e}") from e

    def _resolve(self, label: str, key: str, year: int) -> CategoryRef:
        cached_id = self.cache.get(key)
        if cached_id is not None:
            cat = self._revalidate(cached_id, year)
            if cat is not None:
                logger.debug(f"[resolve] cache hit {label!r} -> {cat.id}")
                return CategoryRef(cat.id, cat.name, cat.ceremony_year, RESOLVED_CACHE)
            logger.info(f"[resolve] evicting stale cache entry {label!r} -> {cached_id} (year {year})")
            self.cache.evict(key)

        catalog = self._catalog(year)
        for cat in catalog:
            if dedup_key(cat.name) == key:
                self.cache.put(key, cat.id)
                return CategoryRef(cat.id, cat.name, cat.ceremony_year, RESOLVED_EXACT)

        for cat in catalog:
            if key in synonyms_for(cat.name):
                fresh = self._revalidate(cat.id, year)
                if fresh is None:
                    continue
                logger.info(f"[resolve] synonym {label!r} -> {fresh.name!r} ({fresh.id})")
                self.cache.put(key, fresh.id)
                return CategoryRef(fresh.id, fresh.name, fresh.ceremony_year, RESOLVED_SYNONYM)

        created = self.store.insert_category(
            label,
            year,
            max_nominees=self.default_max_nominees,
            is_active=True,
        )
        logger.info(f"[resolve] created category {created.name!r} ({created.id}) for {year}")
        self.cache.add_to_catalog(created)
        self.cache.put(key, created.id)
        return CategoryRef(created.id, created.name, created.ceremony_year, RESOLVED_CREATED)

    def _revalidate(self, category_id: int, year: int) -> Optional[Category]:
        cat = self.store.get_category(category_id)
        if cat is None or cat.ceremony_year != year:
            return None
        return cat

    def _catalog(self, year: int) -> List[Category]:
        if year not in self.cache.catalog:
            self.cache.catalog[year] = list(self.store.list_categories(year))
        return self.cache.catalog[year]

    def category_for_id(self, category_id: int, ceremony_year: int) -> Optional[CategoryRef]:
        """Look up a caller-supplied category, requiring it to belong to the year."""
        try:
            cat = self._revalidate(int(category_id), int(ceremony_year))
        except StoreError as e:
            raise CategoryResolutionError(f"category {category_id}: {e}") from e
        if cat is None:
            return None
        self.cache.put(dedup_key(cat.name), cat.id)
        return CategoryRef(cat.id, cat.name, cat.ceremony_year, RESOLVED_CACHE)
