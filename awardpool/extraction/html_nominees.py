"""HTML nominee extraction for award-announcement articles.

Extraction is an ordered list of strategies; the first one that yields
candidates wins:

1. SectionListStrategy: find headings/bold lead-ins naming a category, walk the
   sibling content up to the next heading and parse list items there, falling
   back to bullet-prefixed paragraph lines for that heading.
2. NomineesBlockStrategy: whole-document heuristic for articles without
   usable sections; looks for text blocks mentioning "nominees", infers the
   category from the block or its neighbours and splits the names out.

Every name goes through the validity filter in `text_cleaning`; candidates
are deduplicated per document by (category, normalized name).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from awardpool.extraction.category_patterns import (
    CATEGORY_TYPE_WORK,
    DEFAULT_CATEGORY_PATTERNS,
    CategoryPattern,
    category_type,
    match_category,
)
from awardpool.extraction.text_cleaning import (
    collapse_ws,
    dedup_key,
    has_bullet,
    is_noise,
    is_probable_nominee_name,
    sanitize,
    split_list_text,
    split_name_and_title,
    strip_review_parentheticals,
)
from awardpool.ingestion.source_types import Candidate

logger = logging.getLogger(__name__)


HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
LEAD_IN_TAGS = ("strong", "b")
BLOCK_TAGS = ("p", "div")
CONTENT_ROOT_SELECTORS = ("article", ".article-body", ".content-body", "main", "body")
MAX_HEADING_LEN = 160

TRIGGER_RE = re.compile(r"\b(?:nominees|nominated|indicad[oa]s?)\b", re.IGNORECASE)
# "nominees are X, Y" / "indicados são X, Y"
_LEAD_FILLER_RE = re.compile(r"^\s*(?:are|were|is|include[sd]?|s[a\u00e3]o|foram)\b", re.IGNORECASE)


@dataclass(frozen=True)
class StrategyResult:
    strategy: str
    candidates: List[Candidate] = field(default_factory=list)
    confidence: float = 0.0


# --- helpers -------------------------------------------------------------------


def content_root(document: Union[BeautifulSoup, Tag]) -> Tag:
    """Pick the main content container, most specific first."""
    for sel in CONTENT_ROOT_SELECTORS:
        found = document.select_one(sel)
        if found is not None:
            return found
    return document


def block_lines(tag: Tag) -> List[str]:
    """Text lines of an element, treating <br> as a line break."""
    parts: List[str] = []
    for node in tag.descendants:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            parts.append(str(node))
        elif isinstance(node, Tag) and node.name == "br":
            parts.append("\n")
    return [line for line in (collapse_ws(x) for x in "".join(parts).split("\n")) if line]


def element_text(tag: Tag) -> str:
    return collapse_ws(tag.get_text(" "))


def parse_nominee_text(raw: str, category_label: Optional[str]) -> Optional[Tuple[str, Optional[str]]]:
    """Turn one list-item/line into (name, secondary_title) for a category.

    Acting categories split "Person - Film" / "Person (Film)"; work categories
    keep the whole phrase; anything ambiguous gets the same split heuristics.
    Review notes on the title are dropped. Returns None when the name itself
    is noise or not plausible.
    """
    cleaned = sanitize(raw)
    if not cleaned:
        return None
    if category_type(category_label) == CATEGORY_TYPE_WORK:
        name, title = cleaned, None
    else:
        name, title = split_name_and_title(cleaned)
    if not is_probable_nominee_name(name):
        return None
    if title:
        title = strip_review_parentheticals(title) or None
    if title and (is_noise(title) or not is_probable_nominee_name(title)):
        title = None
    return name, title


def dedupe_candidates(items: Iterable[Candidate]) -> List[Candidate]:
    seen = set()
    out: List[Candidate] = []
    for it in items:
        key = (dedup_key(it.category_label), dedup_key(it.name))
        if key in seen:
            continue
        seen.add(key)
        out.append(it)
    return out


# --- strategies ----------------------------------------------------------------


class SectionListStrategy:
    """Category headings followed by lists (or bullet paragraphs) of nominees."""

    name = "section_lists"

    def __init__(self, patterns: Sequence[CategoryPattern] = DEFAULT_CATEGORY_PATTERNS):
        self.patterns = tuple(patterns)

    def extract(self, root: Tag, source_url: str) -> StrategyResult:
        out: List[Candidate] = []
        used_lists = False
        for heading in self._headings(root):
            label = match_category(element_text(heading), self.patterns)
            if not label:
                continue
            anchor, inline_lines = self._anchor_for(heading, root)
            region = list(self._region(anchor, root))

            found = self._from_list_items(region, label, source_url)
            if found:
                used_lists = True
            else:
                found = self._from_bullet_lines(region, inline_lines, label, source_url)
            logger.debug(f"[extract] {source_url} heading={label!r} items={len(found)}")
            out.extend(found)

        if not out:
            return StrategyResult(self.name, [], 0.0)
        return StrategyResult(self.name, out, 0.9 if used_lists else 0.6)

    def _headings(self, root: Tag) -> Iterator[Tag]:
        for el in root.find_all(HEADING_TAGS + LEAD_IN_TAGS):
            text = element_text(el)
            if not text or len(text) > MAX_HEADING_LEN:
                continue
            # bold text inside a heading or a list item is emphasis, not a section title
            if el.name in LEAD_IN_TAGS and el.find_parent(HEADING_TAGS + ("li",)) is not None:
                continue
            yield el

    def _anchor_for(self, heading: Tag, root: Tag) -> Tuple[Tag, List[str]]:
        """Element whose following siblings form the section, plus inline lines.

        A bold lead-in that opens its paragraph anchors on the paragraph; lines
        after it in the same paragraph (split on <br>) are returned inline.
        """
        anchor = heading
        inline: List[str] = []
        parent = heading.parent
        if heading.name in LEAD_IN_TAGS and isinstance(parent, Tag) and parent.name in BLOCK_TAGS and parent is not root:
            head_text = element_text(heading)
            if element_text(parent).startswith(head_text):
                anchor = parent
                inline = block_lines(parent)[1:]
        # Headings wrapped alone in a container: climb until there is something after them
        while anchor.find_next_sibling() is None and isinstance(anchor.parent, Tag) and anchor.parent is not root:
            anchor = anchor.parent
        return anchor, inline

    def _is_boundary(self, tag: Tag) -> bool:
        if tag.name in HEADING_TAGS or tag.name in LEAD_IN_TAGS:
            return True
        if tag.find(HEADING_TAGS) is not None:
            return True
        if tag.name in BLOCK_TAGS:
            first = tag.find(True)
            if first is not None and first.name in LEAD_IN_TAGS:
                if element_text(tag).startswith(element_text(first)):
                    return match_category(element_text(first), self.patterns) is not None
        return False

    def _region(self, anchor: Tag, root: Tag) -> Iterator[Tag]:
        for sib in anchor.find_next_siblings():
            if self._is_boundary(sib):
                break
            yield sib

    def _from_list_items(self, region: Sequence[Tag], label: str, source_url: str) -> List[Candidate]:
        out: List[Candidate] = []
        for sib in region:
            if sib.name == "li" or sib.get("role") == "listitem":
                items = [sib]
            else:
                items = sib.find_all("li") + sib.find_all(attrs={"role": "listitem"})
            for li in items:
                if li.find(["ul", "ol"]) is not None:
                    continue
                parsed = parse_nominee_text(element_text(li), label)
                if parsed is None:
                    emph = li.find(["a", "strong", "b", "em"])
                    if emph is not None:
                        parsed = parse_nominee_text(element_text(emph), label)
                if parsed is None:
                    continue
                name, title = parsed
                out.append(Candidate(name=name, secondary_title=title, category_label=label, source_url=source_url))
        return out

    def _from_bullet_lines(
        self,
        region: Sequence[Tag],
        inline_lines: Sequence[str],
        label: str,
        source_url: str,
    ) -> List[Candidate]:
        lines = list(inline_lines)
        for sib in region:
            paragraphs = [sib] if sib.name == "p" else sib.find_all("p")
            for p in paragraphs:
                lines.extend(line for line in block_lines(p) if has_bullet(line))
        out: List[Candidate] = []
        for line in lines:
            parsed = parse_nominee_text(line, label)
            if parsed is None:
                continue
            name, title = parsed
            out.append(Candidate(name=name, secondary_title=title, category_label=label, source_url=source_url))
        return out


class NomineesBlockStrategy:
    """Whole-document fallback over free-text blocks mentioning nominees."""

    name = "nominee_blocks"

    def __init__(self, patterns: Sequence[CategoryPattern] = DEFAULT_CATEGORY_PATTERNS):
        self.patterns = tuple(patterns)

    def extract(self, root: Tag, source_url: str) -> StrategyResult:
        blocks: List[str] = []
        for el in root.find_all(["h2", "h3", "h4", "p", "li"]):
            text = "\n".join(block_lines(el))
            if len(collapse_ws(text)) >= 8:
                blocks.append(text)

        out: List[Candidate] = []
        for i, block in enumerate(blocks):
            m = TRIGGER_RE.search(block)
            if not m:
                continue
            label = self._label_near(blocks, i)
            if not label:
                continue
            for piece in split_list_text(_LEAD_FILLER_RE.sub("", block[m.end():], count=1)):
                parsed = parse_nominee_text(piece, label)
                if parsed is None:
                    continue
                name, title = parsed
                out.append(Candidate(name=name, secondary_title=title, category_label=label, source_url=source_url))
        return StrategyResult(self.name, out, 0.4 if out else 0.0)

    def _label_near(self, blocks: Sequence[str], i: int) -> Optional[str]:
        for j in (i, i - 1, i + 1):
            if 0 <= j < len(blocks):
                label = match_category(blocks[j], self.patterns)
                if label:
                    return label
        return None


# --- extractor -----------------------------------------------------------------


class HtmlNomineeExtractor:
    def __init__(
        self,
        patterns: Sequence[CategoryPattern] = DEFAULT_CATEGORY_PATTERNS,
        strategies: Optional[Sequence] = None,
    ):
        self.patterns = tuple(patterns)
        self.strategies = list(strategies) if strategies is not None else [
            SectionListStrategy(self.patterns),
            NomineesBlockStrategy(self.patterns),
        ]

    def run(self, document, source_url: str) -> StrategyResult:
        """Try strategies in order; stop at the first non-empty result.

        Errors propagate so the caller can record the document as unparseable.
        """
        if isinstance(document, (str, bytes)):
            document = BeautifulSoup(document, "html.parser")
        root = content_root(document)
        for strategy in self.strategies:
            result = strategy.extract(root, source_url)
            if result.candidates:
                items = dedupe_candidates(result.candidates)
                logger.info(
                    f"[extract] {source_url} strategy={result.strategy} candidates={len(items)} "
                    f"confidence={result.confidence:.2f}"
                )
                return StrategyResult(result.strategy, items, result.confidence)
        logger.info(f"[extract] {source_url} no candidates")
        return StrategyResult("none", [], 0.0)

    def extract(self, document, source_url: str) -> List[Candidate]:
        try:
            return self.run(document, source_url).candidates
        except Exception as e:
            logger.warning(f"[extract] {source_url} failed: {e}", exc_info=True)
            return []
