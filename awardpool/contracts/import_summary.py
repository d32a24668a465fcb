"""Import summary contract.

The summary is what an import run hands back to its caller (admin UI, worker
log, HTTP response). This module defines:
- the accumulator types the pipeline fills in
- `to_dict()` in the wire shape callers display verbatim
- a JSON Schema for that shape, plus a validator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator


ERROR_RESOLUTION_FAILED = "resolution_failed"
ERROR_LOOKUP_FAILED = "lookup_failed"
ERROR_INSERT_FAILED = "insert_failed"
SKIP_NO_TARGET_CATEGORY = "no_target_category"


@dataclass
class CategoryImport:
    category: str
    category_id: Optional[int] = None
    imported_count: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "category": self.category,
            "category_id": self.category_id,
            "imported_count": self.imported_count,
        }
        if self.error:
            out["error"] = self.error
        return out


@dataclass(frozen=True)
class SkippedSource:
    url: str
    reason: str


@dataclass
class ImportSummary:
    ceremony_year: Optional[int] = None
    per_category: List[CategoryImport] = field(default_factory=list)
    processed_sources: List[str] = field(default_factory=list)
    skipped_sources: List[SkippedSource] = field(default_factory=list)
    detected_categories: Dict[str, int] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def total_imported(self) -> int:
        return sum(c.imported_count for c in self.per_category)

    def skip(self, url: str, reason: str) -> None:
        self.skipped_sources.append(SkippedSource(url=url, reason=reason))

    def detected(self, label: str) -> None:
        self.detected_categories[label] = self.detected_categories.get(label, 0) + 1

    def category_entry(self, category: str, category_id: Optional[int]) -> CategoryImport:
        for c in self.per_category:
            if category_id is not None and c.category_id == category_id:
                return c
            if category_id is None and c.category_id is None and c.category == category:
                return c
        entry = CategoryImport(category=category, category_id=category_id)
        self.per_category.append(entry)
        return entry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_imported": self.total_imported,
            "ceremony_year": self.ceremony_year,
            "per_category": [c.to_dict() for c in self.per_category],
            "processed_sources": list(self.processed_sources),
            "skipped_sources": [{"url": s.url, "reason": s.reason} for s in self.skipped_sources],
            "detected_categories": [
                {"label": label, "count": count} for label, count in self.detected_categories.items()
            ],
            "cancelled": self.cancelled,
        }


IMPORT_SUMMARY_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["total_imported", "per_category", "processed_sources", "skipped_sources"],
    "properties": {
        "total_imported": {"type": "integer", "minimum": 0},
        "ceremony_year": {"type": ["integer", "null"]},
        "per_category": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["category", "category_id", "imported_count"],
                "properties": {
                    "category": {"type": "string", "minLength": 1},
                    "category_id": {"type": ["integer", "null"]},
                    "imported_count": {"type": "integer", "minimum": 0},
                    "error": {
                        "type": "string",
                        "enum": [ERROR_RESOLUTION_FAILED, ERROR_LOOKUP_FAILED, ERROR_INSERT_FAILED],
                    },
                },
                "additionalProperties": False,
            },
        },
        "processed_sources": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "skipped_sources": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["url", "reason"],
                "properties": {
                    "url": {"type": "string", "minLength": 1},
                    "reason": {
                        "type": "string",
                        "pattern": r"^(unreachable|timeout|parse_error|http_status:\d{3}|no_target_category)$",
                    },
                },
                "additionalProperties": False,
            },
        },
        "detected_categories": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["label", "count"],
                "properties": {
                    "label": {"type": "string", "minLength": 1},
                    "count": {"type": "integer", "minimum": 1},
                },
            },
        },
        "cancelled": {"type": "boolean"},
    },
    "additionalProperties": False,
}


_VALIDATOR = Draft202012Validator(IMPORT_SUMMARY_SCHEMA)


def validate_import_summary(payload: Dict[str, Any]) -> List[str]:
    """Return a list of human-readable validation errors (empty means valid)."""
    errors = []
    for e in sorted(_VALIDATOR.iter_errors(payload), key=lambda x: [str(p) for p in x.path]):
        path = ".".join(str(p) for p in e.path) if e.path else "<root>"
        errors.append(f"{path}: {e.message}")
    return errors
