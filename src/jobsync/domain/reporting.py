"""Flat CSV export of run errors and warnings for offline triage."""

from __future__ import annotations

import csv
import io
import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path
    from typing import TextIO

    from jobsync.domain.reconciliation.contracts import RowIssue
    from jobsync.domain.summary import ImportRunSummary

ISSUE_COLUMNS = ("Kind", "Row Number", "Message", "Partner External ID", "Raw Data")


def iter_issue_rows(summary: ImportRunSummary) -> Iterator[tuple[str, ...]]:
    """Yield one CSV row per error, then one per warning."""

    for kind, issues in (("error", summary.errors), ("warning", summary.warnings)):
        for issue in issues:
            yield _issue_row(kind, issue)


def write_issues(summary: ImportRunSummary, stream: TextIO) -> int:
    """Write the header and all issues to ``stream``; returns the number of issues."""

    writer = csv.writer(stream)
    writer.writerow(ISSUE_COLUMNS)
    count = 0
    for row in iter_issue_rows(summary):
        writer.writerow(row)
        count += 1
    return count


def issues_to_csv(summary: ImportRunSummary) -> str:
    buffer = io.StringIO()
    write_issues(summary, buffer)
    return buffer.getvalue()


def export_issues(summary: ImportRunSummary, path: Path) -> int:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        return write_issues(summary, handle)


def _issue_row(kind: str, issue: RowIssue) -> tuple[str, ...]:
    raw = json.dumps(dict(issue.data), ensure_ascii=False, sort_keys=True) if issue.data else ""
    return (kind, str(issue.row), issue.message, issue.external_id or "", raw)


__all__ = ["ISSUE_COLUMNS", "export_issues", "issues_to_csv", "iter_issue_rows", "write_issues"]
