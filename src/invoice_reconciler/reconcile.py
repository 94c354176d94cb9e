"""
Reconciliation of spreadsheet declarations against identifiers found in documents.

Exposes:
- reconcile(mapping, index) -> ReconciliationResult

Pure and deterministic: same inputs, same lists in the same order. Outcomes are data,
never exceptions.
"""
from __future__ import annotations

import logging

from .models import (
    BatchIndex,
    CorrectPair,
    Issue,
    IssueKind,
    ReconciliationResult,
    SpreadsheetMapping,
    Summary,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Checks
# =============================================================================


def _match_declarations(
    mapping: SpreadsheetMapping, found: set[str]
) -> tuple[list[CorrectPair], list[Issue]]:
    """Each distinct source key, in first-seen row order, is either a correct pair or a missing document."""
    pairs: list[CorrectPair] = []
    missing: list[Issue] = []
    for key, target in mapping.mapping.items():
        if target in found:
            pairs.append(CorrectPair(source_key=key, identifier=target))
        else:
            missing.append(
                Issue(
                    kind=IssueKind.MISSING_DOCUMENT,
                    message=f"No PDF invoice for source key {key}, identifier {target}",
                    source_key=key,
                    identifier=target,
                )
            )
    return pairs, missing


def _find_orphans(mapping: SpreadsheetMapping, index: BatchIndex) -> list[Issue]:
    """Identifiers no source key resolves to; a target shadowed by a later row counts as undeclared."""
    declared = set(mapping.mapping.values())
    return [
        Issue(
            kind=IssueKind.ORPHAN_DOCUMENT,
            message=f"PDF invoice {identifier} has no source key in the spreadsheet",
            identifier=identifier,
        )
        for identifier in index.unique_identifiers
        if identifier not in declared
    ]


def _document_duplicates(index: BatchIndex) -> list[Issue]:
    warnings = []
    for identifier in index.unique_identifiers:
        count = index.occurrence_counts.get(identifier, 0)
        if count > 1:
            warnings.append(
                Issue(
                    kind=IssueKind.DUPLICATE_IN_DOCUMENTS,
                    message=f"Identifier {identifier} appears in {count} PDF files",
                    identifier=identifier,
                    count=count,
                )
            )
    return warnings


def _declaration_duplicates(mapping: SpreadsheetMapping) -> list[Issue]:
    warnings = []
    for identifier in mapping.declared_targets:
        count = mapping.declaration_counts.get(identifier, 0)
        if count > 1:
            warnings.append(
                Issue(
                    kind=IssueKind.DUPLICATE_IN_DECLARATION,
                    message=f"Identifier {identifier} is assigned to {count} source keys in the spreadsheet",
                    identifier=identifier,
                    count=count,
                )
            )
    return warnings


def _declaration_conflicts(mapping: SpreadsheetMapping) -> list[Issue]:
    """Source keys declared with several targets; only the last one takes part in matching."""
    return [
        Issue(
            kind=IssueKind.CONFLICTING_DECLARATION,
            message=(
                f"Source key {key} is declared with {len(targets)} different identifiers "
                f"({', '.join(targets)}); using {mapping.mapping[key]}"
            ),
            source_key=key,
            identifier=mapping.mapping[key],
            count=len(targets),
        )
        for key, targets in mapping.conflicts.items()
    ]


# =============================================================================
# Entry point
# =============================================================================


def reconcile(mapping: SpreadsheetMapping, index: BatchIndex) -> ReconciliationResult:
    """Classify every declaration and every found identifier."""
    found = set(index.unique_identifiers)

    correct_pairs, missing = _match_declarations(mapping, found)
    orphans = _find_orphans(mapping, index)
    errors = missing + orphans
    warnings = _document_duplicates(index) + _declaration_duplicates(mapping) + _declaration_conflicts(mapping)

    summary = Summary(
        total_source_keys=len(mapping.mapping),
        total_identifiers_in_documents=len(index.unique_identifiers),
        matched_pairs=len(correct_pairs),
        missing_count=len(missing),
        orphan_count=len(orphans),
        error_count=len(errors),
        warning_count=len(warnings),
    )
    logger.info(
        "Reconciled %d source key(s) against %d identifier(s): %d matched, %d error(s), %d warning(s)",
        summary.total_source_keys,
        summary.total_identifiers_in_documents,
        summary.matched_pairs,
        summary.error_count,
        summary.warning_count,
    )
    return ReconciliationResult(
        correct_pairs=tuple(correct_pairs),
        errors=tuple(errors),
        warnings=tuple(warnings),
        summary=summary,
    )
