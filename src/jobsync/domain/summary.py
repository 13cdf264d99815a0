"""Run summaries and their aggregation across chunks.

Responsibilities:
- count decisions per kind for one window
- merge window summaries into a running total without mutating either side
- keep full error/warning lists for export and a bounded prefix for display
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from jobsync.domain.reconciliation.contracts import (
    DuplicateDecision,
    ErrorDecision,
    InsertDecision,
    RowIssue,
    SkipDecision,
    UpdateDecision,
    issue_from_error,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from jobsync.domain.reconciliation.contracts import Decision

DEFAULT_INLINE_ERROR_LIMIT = 10


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportRunSummary:
    """Counts, issues and preview buckets of one window or one whole run."""

    dry_run: bool
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    duplicates: int = 0
    errors: tuple[RowIssue, ...] = ()
    warnings: tuple[RowIssue, ...] = ()
    inserts: tuple[InsertDecision, ...] = ()
    updates: tuple[UpdateDecision, ...] = ()
    skips: tuple[SkipDecision, ...] = ()

    @classmethod
    def empty(cls, *, dry_run: bool) -> ImportRunSummary:
        return cls(dry_run=dry_run)

    @classmethod
    def from_decisions(
        cls,
        decisions: Iterable[Decision],
        *,
        dry_run: bool,
        warnings: Iterable[RowIssue] = (),
    ) -> ImportRunSummary:
        inserts: list[InsertDecision] = []
        updates: list[UpdateDecision] = []
        skips: list[SkipDecision] = []
        errors: list[RowIssue] = []
        duplicates = 0
        processed = 0
        for decision in decisions:
            processed += 1
            match decision:
                case InsertDecision():
                    inserts.append(decision)
                case UpdateDecision():
                    updates.append(decision)
                case SkipDecision():
                    skips.append(decision)
                case DuplicateDecision():
                    duplicates += 1
                case ErrorDecision():
                    errors.append(issue_from_error(decision))
        return cls(
            dry_run=dry_run,
            processed=processed,
            inserted=len(inserts),
            updated=len(updates),
            skipped=len(skips),
            duplicates=duplicates,
            errors=tuple(errors),
            warnings=tuple(warnings),
            inserts=tuple(inserts),
            updates=tuple(updates),
            skips=tuple(skips),
        )

    def merge(self, other: ImportRunSummary) -> ImportRunSummary:
        """Return the sum of both summaries; lists keep ``self`` entries first."""

        return ImportRunSummary(
            dry_run=self.dry_run and other.dry_run,
            processed=self.processed + other.processed,
            inserted=self.inserted + other.inserted,
            updated=self.updated + other.updated,
            skipped=self.skipped + other.skipped,
            duplicates=self.duplicates + other.duplicates,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
            inserts=self.inserts + other.inserts,
            updates=self.updates + other.updates,
            skips=self.skips + other.skips,
        )

    def with_error(self, issue: RowIssue) -> ImportRunSummary:
        """Append a run- or chunk-level error without touching the row counts."""

        return replace(self, errors=(*self.errors, issue))

    def inline_errors(self, limit: int = DEFAULT_INLINE_ERROR_LIMIT) -> tuple[RowIssue, ...]:
        return self.errors[: max(limit, 0)]

    @property
    def row_errors(self) -> int:
        """Errors that correspond to a processed row (chunk and run entries excluded)."""

        return self.processed - (self.inserted + self.updated + self.skipped + self.duplicates)

    @property
    def is_balanced(self) -> bool:
        """True when every processed row is accounted for by exactly one outcome."""

        return self.processed == (
            self.inserted + self.updated + self.skipped + self.duplicates + len(self.errors)
        )


__all__ = ["DEFAULT_INLINE_ERROR_LIMIT", "ImportRunSummary"]
