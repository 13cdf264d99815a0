"""Decision and issue types shared by the reconciliation stages.

Every source row yields exactly one decision per run. The decision types form
a tagged union; each variant carries only the fields relevant to its tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping

    from jobsync.domain.model import JobStatus, NormalizedRecord


class DecisionKind(StrEnum):
    INSERT = "insert"
    UPDATE = "update"
    SKIP = "skip"
    DUPLICATE = "duplicate"
    ERROR = "error"


@dataclass(frozen=True, slots=True, kw_only=True)
class InsertDecision:
    """Row has no matching job and a new one is (or would be) created."""

    row_index: int
    external_id: str
    reason: str
    status: JobStatus | None = None
    record: NormalizedRecord | None = None
    kind: Literal[DecisionKind.INSERT] = DecisionKind.INSERT


@dataclass(frozen=True, slots=True, kw_only=True)
class UpdateDecision:
    """Row matches a stored job whose status or mapped fields differ."""

    row_index: int
    external_id: str
    reason: str
    before_status: JobStatus | None = None
    after_status: JobStatus | None = None
    changed_fields: tuple[str, ...] = ()
    record: NormalizedRecord | None = None
    kind: Literal[DecisionKind.UPDATE] = DecisionKind.UPDATE


@dataclass(frozen=True, slots=True, kw_only=True)
class SkipDecision:
    """Row is left alone: unchanged, or missing and not creatable."""

    row_index: int
    external_id: str
    reason: str
    record: NormalizedRecord | None = None
    kind: Literal[DecisionKind.SKIP] = DecisionKind.SKIP


@dataclass(frozen=True, slots=True, kw_only=True)
class DuplicateDecision:
    """External id was already decided earlier in the same run."""

    row_index: int
    external_id: str
    reason: str
    kind: Literal[DecisionKind.DUPLICATE] = DecisionKind.DUPLICATE


@dataclass(frozen=True, slots=True, kw_only=True)
class ErrorDecision:
    """Row could not be reconciled; the run continues with the next row."""

    row_index: int
    external_id: str | None
    reason: str
    data: Mapping[str, str] = field(default_factory=dict[str, str])
    kind: Literal[DecisionKind.ERROR] = DecisionKind.ERROR


type Decision = InsertDecision | UpdateDecision | SkipDecision | DuplicateDecision | ErrorDecision


@dataclass(frozen=True, slots=True, kw_only=True)
class RowIssue:
    """Error or warning entry of a run summary.

    ``row`` is the 1-based source row, or the first row of a chunk for
    chunk-level failures, or 0 for run-level entries such as cancellation.
    """

    row: int
    message: str
    external_id: str | None = None
    data: Mapping[str, str] = field(default_factory=dict[str, str])


def issue_from_error(decision: ErrorDecision) -> RowIssue:
    return RowIssue(
        row=decision.row_index,
        message=decision.reason,
        external_id=decision.external_id,
        data=decision.data,
    )
