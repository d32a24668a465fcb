"""In-process nominee store with the same contract as the Postgres one.

Used by the test suite and for offline dry runs. Failures can be injected per
operation (and per category id) to exercise the importer's isolation paths.
"""

from __future__ import annotations

import itertools
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from awardpool.extraction.text_cleaning import dedup_key
from awardpool.ingestion.source_types import Source
from awardpool.storage.store_types import (
    DEFAULT_MAX_NOMINEES,
    Category,
    NewNominee,
    Nominee,
    StoreError,
)


class InMemoryNomineeStore:
    def __init__(
        self,
        *,
        settings: Optional[Dict[str, Any]] = None,
        sources: Optional[Iterable[Source]] = None,
    ):
        self.categories: Dict[int, Category] = {}
        self.nominees: List[Nominee] = []
        self.settings: Dict[str, Any] = dict(settings or {})
        self.sources: List[Source] = list(sources or [])
        self._ids = itertools.count(1)
        # operation name -> category ids that fail (None means every call fails)
        self._failures: Dict[str, Optional[Set[int]]] = {}
        self.calls: List[str] = []

    # --- test helpers ----------------------------------------------------------

    def fail_on(self, operation: str, category_ids: Optional[Iterable[int]] = None) -> None:
        self._failures[operation] = set(category_ids) if category_ids is not None else None

    def clear_failures(self) -> None:
        self._failures.clear()

    def add_category(self, name: str, ceremony_year: int, **kwargs) -> Category:
        cat = Category(id=next(self._ids), name=name, ceremony_year=int(ceremony_year), **kwargs)
        self.categories[cat.id] = cat
        return cat

    def add_nominee(self, category_id: int, name: str, ceremony_year: int, meta=None) -> Nominee:
        nom = Nominee(
            id=next(self._ids),
            category_id=category_id,
            name=name,
            ceremony_year=int(ceremony_year),
            meta=dict(meta or {}),
        )
        self.nominees.append(nom)
        return nom

    def rename_category(self, category_id: int, **changes) -> Category:
        cat = replace(self.categories[category_id], **changes)
        self.categories[category_id] = cat
        return cat

    def _check(self, operation: str, category_id: Optional[int] = None) -> None:
        self.calls.append(operation)
        if operation not in self._failures:
            return
        ids = self._failures[operation]
        if ids is None or (category_id is not None and category_id in ids):
            raise StoreError(f"{operation}: injected failure")

    # --- store contract --------------------------------------------------------

    def list_categories(self, ceremony_year: int) -> List[Category]:
        self._check("list_categories")
        return [c for c in self.categories.values() if c.ceremony_year == int(ceremony_year)]

    def get_category(self, category_id: int) -> Optional[Category]:
        self._check("get_category", category_id)
        return self.categories.get(category_id)

    def insert_category(
        self,
        name: str,
        ceremony_year: int,
        *,
        max_nominees: int = DEFAULT_MAX_NOMINEES,
        is_active: bool = True,
    ) -> Category:
        self._check("insert_category")
        for c in self.categories.values():
            if c.ceremony_year == int(ceremony_year) and c.name.lower() == name.lower():
                return c
        return self.add_category(name, ceremony_year, max_nominees=max_nominees, is_active=is_active)

    def list_nominees(self, category_id: int, ceremony_year: int) -> List[Nominee]:
        self._check("list_nominees", category_id)
        return [
            n for n in self.nominees if n.category_id == category_id and n.ceremony_year == int(ceremony_year)
        ]

    def insert_nominees(self, batch: Sequence[NewNominee]) -> int:
        for n in batch:
            self._check("insert_nominees", n.category_id)
        for n in batch:
            self.add_nominee(n.category_id, n.name, n.ceremony_year, n.meta)
        return len(batch)

    def get_setting(self, key: str) -> Optional[Any]:
        self._check("get_setting")
        return self.settings.get(key)

    def list_sources(self) -> List[Source]:
        self._check("list_sources")
        return list(self.sources)

    # --- convenience -----------------------------------------------------------

    def nominee_names(self, category_id: int, ceremony_year: Optional[int] = None) -> List[str]:
        return [
            n.name
            for n in self.nominees
            if n.category_id == category_id and (ceremony_year is None or n.ceremony_year == ceremony_year)
        ]

    def find_category(self, name: str, ceremony_year: int) -> Optional[Category]:
        key = dedup_key(name)
        for c in self.categories.values():
            if c.ceremony_year == ceremony_year and dedup_key(c.name) == key:
                return c
        return None
