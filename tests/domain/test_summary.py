from __future__ import annotations

from jobsync.domain.reconciliation import (
    Decision,
    DuplicateDecision,
    ErrorDecision,
    InsertDecision,
    RowIssue,
    SkipDecision,
    UpdateDecision,
)
from jobsync.domain.summary import ImportRunSummary


def _decisions() -> list[Decision]:
    return [
        InsertDecision(row_index=1, external_id="A", reason="New job"),
        UpdateDecision(row_index=2, external_id="B", reason="Changed"),
        SkipDecision(row_index=3, external_id="C", reason="No change"),
        DuplicateDecision(row_index=4, external_id="A", reason="dup"),
        ErrorDecision(row_index=5, external_id=None, reason="Missing", data={"x": "1"}),
    ]


def test_from_decisions_counts_each_kind() -> None:
    summary = ImportRunSummary.from_decisions(_decisions(), dry_run=True)

    assert summary.processed == 5
    assert (summary.inserted, summary.updated, summary.skipped, summary.duplicates) == (1, 1, 1, 1)
    assert summary.errors == (RowIssue(row=5, message="Missing", data={"x": "1"}),)
    assert summary.is_balanced
    assert summary.row_errors == 1


def test_merge_is_associative_and_keeps_order() -> None:
    a = ImportRunSummary.from_decisions(_decisions()[:2], dry_run=True)
    b = ImportRunSummary.from_decisions(_decisions()[2:4], dry_run=True)
    c = ImportRunSummary.from_decisions(_decisions()[4:], dry_run=True)

    left = a.merge(b).merge(c)
    right = a.merge(b.merge(c))

    assert left == right
    assert [d.external_id for d in left.inserts] == ["A"]


def test_merge_of_live_and_dry_is_live() -> None:
    merged = ImportRunSummary.empty(dry_run=True).merge(ImportRunSummary.empty(dry_run=False))

    assert merged.dry_run is False


def test_inline_errors_are_bounded_but_full_list_kept() -> None:
    summary = ImportRunSummary.empty(dry_run=True)
    for row in range(1, 16):
        summary = summary.with_error(RowIssue(row=row, message=f"bad {row}"))

    assert len(summary.errors) == 15
    assert [issue.row for issue in summary.inline_errors(10)] == list(range(1, 11))
    assert summary.inline_errors(0) == ()
    assert summary.processed == 0
