from __future__ import annotations

import csv
import io
from typing import TYPE_CHECKING

from jobsync.domain.reconciliation import RowIssue
from jobsync.domain.reporting import ISSUE_COLUMNS, export_issues, issues_to_csv
from jobsync.domain.summary import ImportRunSummary

if TYPE_CHECKING:
    from pathlib import Path


def _summary() -> ImportRunSummary:
    return ImportRunSummary(
        dry_run=True,
        processed=2,
        errors=(
            RowIssue(
                row=3,
                message="Missing required field(s): partner_external_id",
                data={"Status": "Booked", "Order Ref": ""},
            ),
        ),
        warnings=(
            RowIssue(
                row=4,
                message="Unmapped partner status 'Lost'; status left unset",
                external_id="J004",
            ),
        ),
    )


def test_issues_to_csv_lists_errors_then_warnings() -> None:
    rows = list(csv.reader(io.StringIO(issues_to_csv(_summary()))))

    assert tuple(rows[0]) == ISSUE_COLUMNS
    assert rows[1] == [
        "error",
        "3",
        "Missing required field(s): partner_external_id",
        "",
        '{"Order Ref": "", "Status": "Booked"}',
    ]
    assert rows[2][:4] == ["warning", "4", "Unmapped partner status 'Lost'; status left unset", "J004"]
    assert rows[2][4] == ""


def test_export_issues_writes_file(tmp_path: Path) -> None:
    target = tmp_path / "reports" / "issues.csv"

    count = export_issues(_summary(), target)

    assert count == 2
    assert target.read_text(encoding="utf-8").splitlines()[0] == ",".join(ISSUE_COLUMNS)
