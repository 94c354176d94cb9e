"""
Pydantic models for documents, extraction records and reconciliation output.
All models are frozen: fields cannot be reassigned. Dict fields are plain dicts
and are not copied on access; treat them as read-only.
"""
from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Document(_Frozen):
    """Raw PDF bytes plus the name used for traceability."""
    name: str
    data: bytes = Field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class SpreadsheetMapping(_Frozen):
    """
    Source key -> target identifier declarations from the bookkeeping export.

    `rows` keeps every declaration in sheet order. Everything else is derived from it
    by `from_rows`; a source key repeated with a different target keeps the last one.
    `mapping` keys are the distinct source keys in first-seen order.
    """
    rows: tuple[tuple[str, str], ...] = ()
    source_keys: tuple[str, ...] = ()
    declared_targets: tuple[str, ...] = ()
    mapping: dict[str, str] = Field(default_factory=dict)
    declaration_counts: dict[str, int] = Field(default_factory=dict)
    conflicts: dict[str, tuple[str, ...]] = Field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: Iterable[tuple[str, str]]) -> "SpreadsheetMapping":
        rows = tuple((str(k), str(t)) for k, t in rows)
        mapping: dict[str, str] = {}
        targets_per_key: dict[str, list[str]] = {}
        keys_per_target: dict[str, set[str]] = {}
        for key, target in rows:
            mapping[key] = target
            seen = targets_per_key.setdefault(key, [])
            if target not in seen:
                seen.append(target)
            keys_per_target.setdefault(target, set()).add(key)

        return cls(
            rows=rows,
            source_keys=tuple(k for k, _ in rows),
            declared_targets=tuple(keys_per_target),
            mapping=mapping,
            declaration_counts={t: len(keys) for t, keys in keys_per_target.items()},
            conflicts={k: tuple(ts) for k, ts in targets_per_key.items() if len(ts) > 1},
        )

    @classmethod
    def from_dict(cls, mapping: dict[str, str]) -> "SpreadsheetMapping":
        """One row per dict entry, in insertion order."""
        return cls.from_rows(mapping.items())


class ExtractionMethod(str, Enum):
    TEXT_LAYER = "text_layer"
    EXTERNAL_TOOL = "external_tool"
    RAW_SCAN = "raw_scan"
    NONE = "none"


class ExtractionRecord(_Frozen):
    """Identifiers found in one document (unique, first-seen order)."""
    document_name: str
    identifiers: tuple[str, ...] = ()
    method: ExtractionMethod = ExtractionMethod.NONE
    error: Optional[str] = None

    @property
    def identifier_set(self) -> frozenset[str]:
        return frozenset(self.identifiers)


class BatchIndex(_Frozen):
    """Unique identifiers across a batch and the number of documents each one appears in."""
    unique_identifiers: tuple[str, ...] = ()
    occurrence_counts: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[ExtractionRecord]) -> "BatchIndex":
        counts: Counter[str] = Counter()
        for record in records:
            # a record's identifiers are already unique, so this counts documents
            counts.update(dict.fromkeys(record.identifiers, 1))
        return cls(unique_identifiers=tuple(counts), occurrence_counts=dict(counts))

    @classmethod
    def from_document_sets(cls, documents: dict[str, Iterable[str]]) -> "BatchIndex":
        """Shortcut for callers that already hold name -> identifiers."""
        return cls.from_records(
            ExtractionRecord(document_name=name, identifiers=tuple(dict.fromkeys(ids)))
            for name, ids in documents.items()
        )


class BatchResult(_Frozen):
    records: tuple[ExtractionRecord, ...] = ()
    index: BatchIndex = Field(default_factory=BatchIndex)


class IssueKind(str, Enum):
    MISSING_DOCUMENT = "missing_document"
    ORPHAN_DOCUMENT = "orphan_document"
    DUPLICATE_IN_DOCUMENTS = "duplicate_in_documents"
    DUPLICATE_IN_DECLARATION = "duplicate_in_declaration"
    CONFLICTING_DECLARATION = "conflicting_declaration"


class Issue(_Frozen):
    """An error or warning with enough payload that renderers need no lookups."""
    kind: IssueKind
    message: str
    source_key: Optional[str] = None
    identifier: Optional[str] = None
    count: Optional[int] = None


class CorrectPair(_Frozen):
    source_key: str
    identifier: str


class Summary(_Frozen):
    total_source_keys: int = 0
    total_identifiers_in_documents: int = 0
    matched_pairs: int = 0
    missing_count: int = 0
    orphan_count: int = 0
    error_count: int = 0
    warning_count: int = 0


class ResultPreview(_Frozen):
    """Bounded view of a result for size-constrained transports. Counts are always complete."""
    summary: Summary
    correct_pairs_count: int
    correct_pairs_preview: list[CorrectPair]
    errors_count: int
    errors_preview: list[Issue]
    warnings_count: int
    warnings_preview: list[Issue]


class ReconciliationResult(_Frozen):
    correct_pairs: tuple[CorrectPair, ...] = ()
    errors: tuple[Issue, ...] = ()
    warnings: tuple[Issue, ...] = ()
    summary: Summary = Field(default_factory=Summary)

    def issues_of(self, kind: IssueKind) -> list[Issue]:
        return [i for i in (*self.errors, *self.warnings) if i.kind == kind]

    def preview(self, limit: int = 10) -> ResultPreview:
        limit = max(0, limit)
        return ResultPreview(
            summary=self.summary,
            correct_pairs_count=len(self.correct_pairs),
            correct_pairs_preview=list(self.correct_pairs[:limit]),
            errors_count=len(self.errors),
            errors_preview=list(self.errors[:limit]),
            warnings_count=len(self.warnings),
            warnings_preview=list(self.warnings[:limit]),
        )
