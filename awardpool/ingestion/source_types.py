"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Tuple


SOURCE_KIND_HTML = "html-article"
SOURCE_KIND_FEED = "feed"
SOURCE_KINDS = (SOURCE_KIND_HTML, SOURCE_KIND_FEED)


@dataclass(frozen=True)
class Source:
    """An administrator-configured place to pull nominee names from.

    Read-only to the pipeline. `category_id` is only meaningful for feeds,
    which are bound to one category ahead of time.
    """

    url: str
    kind: str = SOURCE_KIND_HTML
    keywords: Tuple[str, ...] = ()
    name: Optional[str] = None
    language: Optional[str] = None
    category_id: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind not in SOURCE_KINDS:
            raise ValueError(f"unknown source kind: {self.kind!r}")
        # Accept lists from config/JSON callers; a bare string is one keyword
        if isinstance(self.keywords, str):
            object.__setattr__(self, "keywords", (self.keywords,) if self.keywords.strip() else ())
        elif not isinstance(self.keywords, tuple):
            object.__setattr__(self, "keywords", tuple(self.keywords or ()))


@dataclass(frozen=True)
class Candidate:
    """Extracted, unpersisted nominee guess.

    HTML candidates carry the category label as printed by the source.
    Feed candidates carry no label; `category_id` is pre-bound instead.
    """

    name: str
    source_url: str
    category_label: Optional[str] = None
    secondary_title: Optional[str] = None
    category_id: Optional[int] = None

    def with_category(self, category_id: int) -> "Candidate":
        return replace(self, category_id=category_id)
