"""Per-row reconciliation of partner rows against the job store.

Flow for one window of rows:
1) resolve mapped columns against the source headers
2) normalize each row (status translation, override rules, engineers)
3) detect run-wide duplicate external ids
4) look up the stored job and decide insert/update/skip
5) in live runs, apply the decision through the job store
"""

from __future__ import annotations

from .contracts import (
    Decision,
    DecisionKind,
    DuplicateDecision,
    ErrorDecision,
    InsertDecision,
    RowIssue,
    SkipDecision,
    UpdateDecision,
)
from .engine import ReconciliationEngine, WindowReconciliation, claimable_external_ids
from .normalize import parse_partner_date, resolve_columns

__all__ = [
    "Decision",
    "DecisionKind",
    "DuplicateDecision",
    "ErrorDecision",
    "InsertDecision",
    "ReconciliationEngine",
    "RowIssue",
    "SkipDecision",
    "UpdateDecision",
    "WindowReconciliation",
    "claimable_external_ids",
    "parse_partner_date",
    "resolve_columns",
]
