"""Store records and the store contract the import pipeline consumes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from awardpool.ingestion.source_types import Source


DEFAULT_MAX_NOMINEES = 5


class StoreError(Exception):
    """A store read/write failed (connection, SQL, constraint...)."""


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    ceremony_year: int
    is_active: bool = True
    max_nominees: int = DEFAULT_MAX_NOMINEES


@dataclass(frozen=True)
class Nominee:
    id: int
    category_id: int
    name: str
    ceremony_year: int
    meta: Dict[str, Any] = field(default_factory=dict)
    is_winner: bool = False


@dataclass(frozen=True)
class NewNominee:
    category_id: int
    name: str
    ceremony_year: int
    meta: Dict[str, Any] = field(default_factory=dict)


class NomineeStore(Protocol):
    """Operations the pipeline needs from the category/nominee store.

    Every method raises StoreError on failure.
    """

    def list_categories(self, ceremony_year: int) -> List[Category]:
        ...

    def get_category(self, category_id: int) -> Optional[Category]:
        ...

    def insert_category(
        self,
        name: str,
        ceremony_year: int,
        *,
        max_nominees: int = DEFAULT_MAX_NOMINEES,
        is_active: bool = True,
    ) -> Category:
        ...

    def list_nominees(self, category_id: int, ceremony_year: int) -> List[Nominee]:
        ...

    def insert_nominees(self, batch: Sequence[NewNominee]) -> int:
        ...

    def get_setting(self, key: str) -> Optional[Any]:
        ...

    def list_sources(self) -> List[Source]:
        ...
