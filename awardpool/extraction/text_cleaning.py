"""Text sanitizing and nominee-name heuristics.

Shared by the HTML and feed extractors and by the import-wide cleanup pass:
- whitespace/dash normalization and bullet stripping
- editorial noise detection ("read our review", "(review)", "full list", ...)
- the nominee-name validity filter
- the dedup key (case-folded, diacritic-stripped)
- name / secondary-title splitting
"""

from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Tuple


DASH_CHARS = "‐‑‒–—―−"
_DASH_RE = re.compile(f"[{DASH_CHARS}]")
_SPACE_RE = re.compile(r"[\s\u00a0\u202f\u200b]+")
_BULLET_RE = re.compile(r"^\s*(?:[•●▪◦‣⁃*·>]|-(?=\s))\s*")
_EDGE_PUNCT = " \t:;,-|/"

NOISE_PATTERNS = [
    r"\bread (?:our|the|my|full) review\b",
    r"[(\[]\s*review\s*[)\]]",
    r"\breview:",
    r"\bread more\b",
    r"\bclick here\b",
    r"\bwatch the trailer\b",
    r"\btrailer\b",
    r"\bfull list\b",
    r"\bsee (?:the )?(?:full )?list\b",
    r"\b(?:nominees|nominations|winners)\b",
    r"\boscars?\s+20\d{2}\b",
    r"\bacademy awards?\b",
    # pt-BR editorial phrasing
    r"\bleia (?:a |nossa )?cr[ií]tica\b",
    r"\bcr[ií]tica\b",
    r"\b(?:lista|completa|confira|indicados|vencedores|premia[cç][aã]o)\b",
]
_NOISE_RE = re.compile("|".join(NOISE_PATTERNS), re.IGNORECASE)

# Parenthetical/bracketed review notes, e.g. "Oppenheimer (review)" or "(leia a crítica)"
REVIEW_PARENTHETICAL_RE = re.compile(
    r"\s*[(\[][^)\]]*\b(?:review|cr[ií]tica)\b[^)\]]*[)\]]",
    re.IGNORECASE,
)

_LETTER_RE = re.compile(r"[^\W\d_]", re.UNICODE)
_PUNCT_RE = re.compile(r"[.,;:!?]")

MIN_NAME_LEN = 2
MAX_NAME_LEN = 120
MAX_PUNCTUATION = 8


def collapse_ws(s: Optional[str]) -> str:
    return _SPACE_RE.sub(" ", s or "").strip()


def normalize_dashes(s: str) -> str:
    """Map every dash variant to a plain hyphen."""
    return _DASH_RE.sub("-", s or "")


def strip_bullet(s: str) -> str:
    return _BULLET_RE.sub("", s or "", count=1)


def sanitize(raw: Optional[str]) -> str:
    """Collapse whitespace, normalize dashes, strip bullet markers and edge separators."""
    t = collapse_ws(normalize_dashes(raw or ""))
    t = strip_bullet(t)
    t = t.strip(_EDGE_PUNCT)
    # Balanced wrapping quotes around a whole title
    if len(t) >= 2 and t[0] in "\"'“‘" and t[-1] in "\"'”’":
        t = t[1:-1].strip()
    return t


def strip_review_parentheticals(s: str) -> str:
    return collapse_ws(REVIEW_PARENTHETICAL_RE.sub("", s or ""))


def is_noise(s: Optional[str]) -> bool:
    return bool(s) and _NOISE_RE.search(s) is not None


def is_probable_nominee_name(s: Optional[str]) -> bool:
    """Validity filter applied to every candidate name before acceptance."""
    t = collapse_ws(s)
    if len(t) < MIN_NAME_LEN or len(t) > MAX_NAME_LEN:
        return False
    if is_noise(t):
        return False
    if len(_LETTER_RE.findall(t)) < 2:
        return False
    if len(_PUNCT_RE.findall(t)) > MAX_PUNCTUATION:
        return False
    return len(strip_bullet(t)) >= MIN_NAME_LEN


def strip_diacritics(s: str) -> str:
    return "".join(c for c in unicodedata.normalize("NFKD", s) if not unicodedata.combining(c))


def dedup_key(s: Optional[str]) -> str:
    """Dedup key: diacritic-stripped, case-folded, whitespace-collapsed."""
    return collapse_ws(strip_diacritics(normalize_dashes(s or ""))).casefold()


# --- name / title splitting --------------------------------------------------

_TRAILING_PAREN_RE = re.compile(r"^(?P<head>.+?)\s*\((?P<tail>[^()]+)\)\s*$")
_SEPARATORS = (" - ", ": ")


def _split_on_separator(t: str) -> Optional[Tuple[str, str]]:
    best = -1
    best_sep = ""
    for sep in _SEPARATORS:
        i = t.find(sep)
        if i > 0 and (best == -1 or i < best):
            best, best_sep = i, sep
    if best == -1:
        return None
    return t[:best], t[best + len(best_sep):]


def split_name_and_title(raw: str) -> Tuple[str, Optional[str]]:
    """Split "Person - Film", "Person: Film" or "Person (Film)" into its parts.

    Returns (name, secondary_title); the title is None when nothing splits.
    """
    t = sanitize(raw)
    if not t:
        return "", None
    # Normalized dashes may have lost their spacing ("Murphy -Oppenheimer")
    t = re.sub(r"\s+-(?=\S)|(?<=\S)-\s+", " - ", t)
    parts = _split_on_separator(t)
    if parts:
        name, title = sanitize(parts[0]), sanitize(parts[1])
        return name, (title or None)
    m = _TRAILING_PAREN_RE.match(t)
    # "Oppenheimer (Read our review)" is one noisy item, not name + title
    if m and not REVIEW_PARENTHETICAL_RE.search(f"({m.group('tail')})"):
        name, title = sanitize(m.group("head")), sanitize(m.group("tail"))
        return name, (title or None)
    return t, None


def split_list_text(block: str) -> List[str]:
    """Split a run-on nominee block on commas, else on line breaks/bullets."""
    text = normalize_dashes(block or "")
    comma = [p for p in (sanitize(x) for x in text.split(",")) if p]
    if len(comma) >= 2:
        return comma
    lines = [p for p in (sanitize(x) for x in re.split(r"\n|•|\s-\s", text)) if p]
    if len(lines) >= 2:
        return lines
    return []


def has_bullet(s: Optional[str]) -> bool:
    return _BULLET_RE.match(normalize_dashes(s or "")) is not None
