"""Feed candidate extraction.

Feeds are bound to one category ahead of time, so candidates here carry only
a name (plus the pre-bound category id when the caller supplies one).
Names come from entry titles such as
"Oscar 2025: Indicados a Melhor Filme - Duna: Parte 2, Oppenheimer, Barbie".
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence

from awardpool.extraction.text_cleaning import (
    collapse_ws,
    dedup_key,
    is_probable_nominee_name,
    normalize_dashes,
    sanitize,
)
from awardpool.ingestion.source_types import Candidate

logger = logging.getLogger(__name__)


TRIGGER_RE = re.compile(r"\b(?:nominees|nominated|nominations|indicad[oa]s|indica[cç][oõ]es)\b", re.IGNORECASE)
# "... Indicados a Melhor Filme - Duna: Parte 2, ..." -> names start after the first separator
_LEAD_SEP_RE = re.compile(r"\s-\s|:\s")
# ", and Barbie": only a conjunction right after a comma joins the list
_LEAD_AND_RE = re.compile(r"^\s*(?:and|e|&)\s+", re.IGNORECASE)


def _entry_field(entry: Any, key: str) -> str:
    val = getattr(entry, key, None)
    if val is None and isinstance(entry, dict):
        val = entry.get(key)
    return val if isinstance(val, str) else ""


def _entry_content(entry: Any) -> str:
    content = getattr(entry, "content", None)
    if content is None and isinstance(entry, dict):
        content = entry.get("content")
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for c in content or []:
        val = c.get("value") if isinstance(c, dict) else getattr(c, "value", None)
        if isinstance(val, str):
            parts.append(val)
    return " ".join(parts)


def entry_text(entry: Any) -> str:
    """Combined title/summary/content text used for keyword filtering."""
    return collapse_ws(
        " ".join([_entry_field(entry, "title"), _entry_field(entry, "summary"), _entry_content(entry)])
    )


def matches_keywords(text: str, keywords: Sequence[str]) -> bool:
    kws = [k.strip().lower() for k in keywords or [] if k and k.strip()]
    if not kws:
        return True
    low = (text or "").lower()
    return any(k in low for k in kws)


def names_from_title(title: str) -> List[str]:
    """Pull comma-separated names out of a title, after the nominees trigger word.

    Titles without a trigger word yield nothing.
    """
    cleaned = collapse_ws(normalize_dashes(title or ""))
    m = TRIGGER_RE.search(cleaned)
    if not m:
        return []
    tail = cleaned[m.end():]
    sep = _LEAD_SEP_RE.search(tail)
    if sep:
        tail = tail[sep.end():]
    pieces = tail.split(",")
    # "Oscar nominees announced" is a headline, not a list
    if not sep and len(pieces) < 2:
        return []
    out: List[str] = []
    for i, piece in enumerate(pieces):
        name = sanitize(_LEAD_AND_RE.sub("", piece) if i else piece)
        if is_probable_nominee_name(name):
            out.append(name)
    return out


@dataclass(frozen=True)
class FeedCandidateExtractor:
    """Keyword-filter feed entries and split nominee names out of their titles."""

    name: str = "feed"

    def extract(
        self,
        feed: Any,
        keywords: Sequence[str] = (),
        *,
        source_url: str = "",
        category_id: Optional[int] = None,
    ) -> List[Candidate]:
        entries: Iterable[Any] = (feed.get("entries") if isinstance(feed, dict) else getattr(feed, "entries", None)) or []
        out: List[Candidate] = []
        seen = set()
        matched = 0
        for entry in entries:
            if not matches_keywords(entry_text(entry), keywords):
                continue
            matched += 1
            for name in names_from_title(_entry_field(entry, "title")):
                key = dedup_key(name)
                if key in seen:
                    continue
                seen.add(key)
                out.append(Candidate(name=name, source_url=source_url, category_id=category_id))
        logger.info(f"[extract] {source_url or 'feed'} entries_matched={matched} candidates={len(out)}")
        return out
