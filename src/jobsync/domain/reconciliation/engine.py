"""Reconcile one window of partner rows against the destination store."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.domain.errors import (
    DuplicateRecordError,
    RowValidationError,
    StoreError,
    TransientBackendError,
)
from jobsync.domain.model import UpsertOutcome

from .contracts import (
    Decision,
    DuplicateDecision,
    ErrorDecision,
    InsertDecision,
    RowIssue,
    SkipDecision,
    UpdateDecision,
)
from .normalize import normalize_row, resolve_columns
from .policy import build_job_record, decide

if TYPE_CHECKING:
    from collections.abc import Iterable

    from jobsync.domain.model import NormalizedRecord
    from jobsync.domain.ports import JobStore, RowBatch
    from jobsync.domain.profile import MappingProfile

log = getLogger(__name__)


@dataclass(slots=True)
class WindowReconciliation:
    """Decisions and side findings for one window of rows.

    ``claimed_external_ids`` lists, in row order, the ids whose first
    occurrence in the run fell into this window.
    """

    decisions: list[Decision] = field(default_factory=list)
    warnings: list[RowIssue] = field(default_factory=list)
    unmapped_engineers: set[str] = field(default_factory=set)
    claimed_external_ids: list[str] = field(default_factory=list)
    aborted_by: TransientBackendError | None = None


@dataclass(slots=True, kw_only=True)
class ReconciliationEngine:
    """Run the per-row reconciliation steps for a window, in source order.

    Dry runs stop after deciding; live runs apply each Insert/Update through
    the store. A transient backend failure aborts the rest of the window and
    keeps everything decided so far.
    """

    profile: MappingProfile
    store: JobStore
    dry_run: bool = True
    create_missing_records: bool = True
    run_id: str | None = None
    verbose: bool = False

    async def reconcile(
        self,
        batch: RowBatch,
        *,
        seen_external_ids: Iterable[str] = (),
    ) -> WindowReconciliation:
        columns = resolve_columns(batch.headers, self.profile)
        seen = set(seen_external_ids)
        result = WindowReconciliation()

        for row in batch.source_rows():
            try:
                outcome = normalize_row(row, columns=columns, profile=self.profile)
            except RowValidationError as exc:
                self._record(result, ErrorDecision(
                    row_index=row.row_index,
                    external_id=None,
                    reason=str(exc),
                    data=dict(row.values),
                ))
                continue

            record = outcome.record
            result.warnings.extend(outcome.warnings)
            if record.engineer_identifier and record.engineer_id is None:
                result.unmapped_engineers.add(record.engineer_identifier)

            if record.external_id in seen:
                self._record(result, DuplicateDecision(
                    row_index=record.row_index,
                    external_id=record.external_id,
                    reason="External id already processed earlier in this run",
                ))
                continue

            try:
                decision = await self._decide_and_apply(record)
            except TransientBackendError as exc:
                log.error(f"Aborting window at row {record.row_index}: {exc}")
                result.aborted_by = exc
                break
            seen.add(record.external_id)
            result.claimed_external_ids.append(record.external_id)
            self._record(result, decision)

        return result

    async def _decide_and_apply(self, record: NormalizedRecord) -> Decision:
        try:
            existing = await self.store.lookup(self.profile.partner_id, record.external_id)
        except TransientBackendError:
            raise
        except StoreError as exc:
            return _error_for(record, f"Lookup failed: {exc}")

        decision = decide(record, existing, create_missing_records=self.create_missing_records)
        if self.dry_run or not isinstance(decision, InsertDecision | UpdateDecision):
            return decision

        job = build_job_record(
            record,
            existing,
            partner_id=self.profile.partner_id,
            import_run_id=self.run_id,
        )
        try:
            outcome = await self.store.upsert(job)
        except TransientBackendError:
            raise
        except DuplicateRecordError as exc:
            return DuplicateDecision(
                row_index=record.row_index,
                external_id=record.external_id,
                reason=f"Store reported an existing job: {exc}",
            )
        except StoreError as exc:
            return _error_for(record, f"Write failed: {exc}")
        return _align_with_outcome(decision, outcome)

    def _record(self, result: WindowReconciliation, decision: Decision) -> None:
        result.decisions.append(decision)
        if self.verbose:
            log.debug(
                f"Row {decision.row_index} ({decision.external_id}): "
                f"{decision.kind} - {decision.reason}"
            )


def claimable_external_ids(batch: RowBatch, profile: MappingProfile) -> list[str]:
    """External ids whose rows pass validation, in row order with repeats removed.

    These are the ids a window claims for the run before any lookup or write.
    """

    columns = resolve_columns(batch.headers, profile)
    claimed: dict[str, None] = {}
    for row in batch.source_rows():
        try:
            record = normalize_row(row, columns=columns, profile=profile).record
        except RowValidationError:
            continue
        claimed.setdefault(record.external_id, None)
    return list(claimed)


def _error_for(record: NormalizedRecord, message: str) -> ErrorDecision:
    return ErrorDecision(
        row_index=record.row_index,
        external_id=record.external_id,
        reason=message,
        data=dict(record.raw),
    )


def _align_with_outcome(decision: InsertDecision | UpdateDecision, outcome: UpsertOutcome) -> Decision:
    """Report what the store actually did when it disagrees with the decision."""

    if outcome is UpsertOutcome.SKIPPED:
        return SkipDecision(
            row_index=decision.row_index,
            external_id=decision.external_id,
            reason="Store reported no change",
            record=decision.record,
        )
    if outcome is UpsertOutcome.UPDATED and isinstance(decision, InsertDecision):
        return UpdateDecision(
            row_index=decision.row_index,
            external_id=decision.external_id,
            reason="Job appeared in the store before insert; updated instead",
            after_status=decision.status,
            record=decision.record,
        )
    if outcome is UpsertOutcome.INSERTED and isinstance(decision, UpdateDecision):
        return InsertDecision(
            row_index=decision.row_index,
            external_id=decision.external_id,
            reason="Job disappeared from the store before update; inserted instead",
            status=decision.after_status,
            record=decision.record,
        )
    return decision
