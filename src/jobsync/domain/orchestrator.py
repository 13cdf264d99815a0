"""Drive a full import run as a series of row windows.

Responsibilities:
- size the run with a one-row dry run that also checks configuration and the gate
- run windows sequentially, or fan out the first N windows and then continue
  sequentially
- settle which window owns each external id before fanned-out windows write,
  then thread run-wide duplicate detection through the sequential windows
- record chunk failures, stop on fatal ones and honour cancellation at chunk
  boundaries
- publish an immutable progress snapshot after every chunk
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field, replace
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.domain.data_integration import DEFAULT_CHUNK_SIZE, ImportRunResult
from jobsync.domain.errors import ImportCancelledError, PartnerImportError, TransientBackendError
from jobsync.domain.reconciliation import claimable_external_ids
from jobsync.domain.reconciliation.contracts import RowIssue
from jobsync.domain.summary import ImportRunSummary
from jobsync.domain.windows import iter_windows, total_chunks

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from jobsync.domain.data_integration import ImportService
    from jobsync.domain.ports import RowBatch, SourceDescriptor
    from jobsync.domain.profile import MappingProfile
    from jobsync.domain.windows import ChunkWindow

log = getLogger(__name__)

# backends that only report limits in free text
_FATAL_MESSAGE = re.compile(r"\b(?:timeout|timed out|cpu (?:time )?limit)\b", re.IGNORECASE)


class RunState(StrEnum):
    IDLE = "idle"
    PROBING = "probing"
    RUNNING_SEQUENTIAL = "running_sequential"
    RUNNING_PARALLEL = "running_parallel"
    CANCELLING = "cancelling"
    COMPLETED = "completed"
    FAILED = "failed"


class CancellationToken:
    """Cooperative cancellation flag checked between chunks."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportProgress:
    """Snapshot published to the progress callback after every chunk."""

    current_chunk: int
    total_chunks: int
    processed_rows: int
    total_rows: int
    aggregated: ImportRunSummary
    is_running: bool
    can_cancel: bool


type ProgressCallback = Callable[[ImportProgress], None]


@dataclass(frozen=True, slots=True, kw_only=True)
class OrchestratedRun:
    """Final outcome of a chunked run."""

    success: bool
    state: RunState
    summary: ImportRunSummary
    total_rows: int = 0
    completed_chunks: int = 0
    unmapped_engineers: tuple[str, ...] = ()
    cancelled: bool = False
    run_id: str | None = None


@dataclass(frozen=True, slots=True)
class _RunCursor:
    """Immutable state threaded from one chunk to the next."""

    summary: ImportRunSummary
    seen: frozenset[str] = frozenset()
    attempted_chunks: int = 0
    completed_chunks: int = 0
    failed: bool = False
    stopped: bool = False


def is_fatal_message(message: str) -> bool:
    return _FATAL_MESSAGE.search(message) is not None


def is_fatal_error(error: PartnerImportError) -> bool:
    """Transient backend failures stop the run; other chunk errors are skipped over."""

    return isinstance(error, TransientBackendError) or is_fatal_message(str(error))


@dataclass(slots=True)
class ChunkOrchestrator:
    """Run an import over the whole source in windows of ``chunk_size`` rows."""

    service: ImportService
    chunk_size: int = DEFAULT_CHUNK_SIZE
    parallel_chunks: int = 1
    progress: ProgressCallback | None = None
    state: RunState = field(default=RunState.IDLE, init=False)

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.parallel_chunks <= 0:
            raise ValueError("parallel_chunks must be positive")

    async def run(
        self,
        descriptor: SourceDescriptor,
        profile: MappingProfile,
        *,
        dry_run: bool = True,
        create_missing_records: bool = True,
        verbose: bool = False,
        cancel_token: CancellationToken | None = None,
    ) -> OrchestratedRun:
        token = cancel_token or CancellationToken()
        run_id = self.service.run_id_factory()

        self.state = RunState.PROBING
        try:
            sizing = await self.service.run_import(
                descriptor,
                profile,
                dry_run=True,
                create_missing_records=create_missing_records,
                start_row=0,
                max_rows=1,
                run_id=run_id,
            )
        except PartnerImportError:
            self.state = RunState.FAILED
            raise

        if sizing.blocked:
            self.state = RunState.FAILED
            return OrchestratedRun(
                success=False,
                state=self.state,
                summary=ImportRunSummary.empty(dry_run=dry_run),
                unmapped_engineers=sizing.unmapped_engineers,
                run_id=run_id,
            )

        total_rows = sizing.chunk_info.total_rows if sizing.chunk_info else 0
        chunk_count = total_chunks(total_rows, self.chunk_size)
        log.info(
            f"Import {run_id}: {total_rows} rows in {chunk_count} chunk(s) of {self.chunk_size}"
            + (" (dry run)" if dry_run else "")
        )

        async def run_window(
            window: ChunkWindow,
            seen: frozenset[str],
            batch: RowBatch | None = None,
        ) -> ImportRunResult:
            return await self.service.run_import(
                descriptor,
                profile,
                dry_run=dry_run,
                create_missing_records=create_missing_records,
                start_row=window.start_row,
                max_rows=window.size,
                total_rows_hint=total_rows,
                verbose=verbose,
                seen_external_ids=seen,
                run_id=run_id,
                batch=batch,
            )

        cursor = _RunCursor(summary=ImportRunSummary.empty(dry_run=dry_run))
        pending = list(iter_windows(total_rows, self.chunk_size))
        cancelled = False

        fan_out = min(self.parallel_chunks, len(pending)) if self.parallel_chunks > 1 else 0
        if fan_out and token.cancelled:
            cancelled = True
        elif fan_out:
            self.state = RunState.RUNNING_PARALLEL
            head, pending = pending[:fan_out], pending[fan_out:]
            reads = await asyncio.gather(
                *(self.service.fetch_window(descriptor, window) for window in head),
                return_exceptions=True,
            )
            owned_earlier = _claims_before_each(reads, profile)

            async def run_head_window(
                window: ChunkWindow,
                read: RowBatch | BaseException,
                earlier: frozenset[str],
            ) -> ImportRunResult:
                if isinstance(read, BaseException):
                    raise read
                return await run_window(window, cursor.seen | earlier, read)

            results = await asyncio.gather(
                *(
                    run_head_window(window, read, earlier)
                    for window, read, earlier in zip(head, reads, owned_earlier, strict=True)
                ),
                return_exceptions=True,
            )
            for window, result in zip(head, results, strict=True):
                if not isinstance(result, ImportRunResult | PartnerImportError):
                    raise result
                cursor = _absorb(cursor, window, result)
                running = cursor.attempted_chunks < fan_out or (bool(pending) and not cursor.stopped)
                self._publish(cursor, chunk_count, total_rows, running=running)

        for window in pending:
            if cursor.stopped or cancelled:
                break
            if token.cancelled:
                cancelled = True
                break
            self.state = RunState.RUNNING_SEQUENTIAL
            try:
                result: ImportRunResult | PartnerImportError = await run_window(window, cursor.seen)
            except PartnerImportError as exc:
                result = exc
            cursor = _absorb(cursor, window, result)
            self._publish(cursor, chunk_count, total_rows, running=cursor.attempted_chunks < chunk_count)

        summary = cursor.summary
        if cancelled:
            self.state = RunState.CANCELLING
            log.warning(f"Import {run_id} cancelled after {cursor.completed_chunks} chunk(s)")
            summary = summary.with_error(RowIssue(row=0, message=str(ImportCancelledError())))

        success = not cursor.failed and not cancelled
        self.state = RunState.COMPLETED if success or cancelled else RunState.FAILED
        log.info(
            f"Import {run_id} finished ({self.state}): {summary.processed} processed, "
            f"{summary.inserted} inserted, {summary.updated} updated, "
            f"{summary.skipped} skipped, {summary.duplicates} duplicates, "
            f"{len(summary.errors)} errors"
        )
        return OrchestratedRun(
            success=success,
            state=self.state,
            summary=summary,
            total_rows=total_rows,
            completed_chunks=cursor.completed_chunks,
            cancelled=cancelled,
            run_id=run_id,
        )

    def _publish(self, cursor: _RunCursor, chunk_count: int, total_rows: int, *, running: bool) -> None:
        if self.progress is None:
            return
        self.progress(
            ImportProgress(
                current_chunk=cursor.attempted_chunks,
                total_chunks=chunk_count,
                processed_rows=cursor.summary.processed,
                total_rows=total_rows,
                aggregated=cursor.summary,
                is_running=running,
                can_cancel=running,
            )
        )


def _claims_before_each(
    reads: Sequence[RowBatch | BaseException],
    profile: MappingProfile,
) -> list[frozenset[str]]:
    """For every head window, the external ids first claimed by an earlier head window.

    Runs once, before any head window looks anything up, so a repeated id is
    only ever written by the window holding its first occurrence. A window
    that could not be read claims nothing.
    """

    owned: list[frozenset[str]] = []
    claimed: set[str] = set()
    for read in reads:
        owned.append(frozenset(claimed))
        if isinstance(read, BaseException):
            continue
        try:
            claimed.update(claimable_external_ids(read, profile))
        except PartnerImportError as exc:
            log.warning(f"Could not pre-scan rows from {read.start_row + 1}: {exc}")
    return owned


def _absorb(
    cursor: _RunCursor,
    window: ChunkWindow,
    result: ImportRunResult | PartnerImportError,
) -> _RunCursor:
    """Fold one chunk outcome into the cursor."""

    number = cursor.attempted_chunks + 1
    if isinstance(result, PartnerImportError):
        message = str(result)
        log.error(f"Chunk {number} failed: {message}")
        return replace(
            cursor,
            summary=cursor.summary.with_error(
                RowIssue(row=window.start_row + 1, message=f"Chunk {number} failed: {message}")
            ),
            attempted_chunks=number,
            failed=True,
            stopped=cursor.stopped or is_fatal_error(result),
        )

    summary = cursor.summary.merge(result.summary)
    seen = cursor.seen | frozenset(result.decided_external_ids)
    if result.fatal or not result.success:
        message = result.error or "unknown error"
        log.error(f"Chunk {number} failed: {message}")
        summary = summary.with_error(
            RowIssue(row=window.start_row + 1, message=f"Chunk {number} failed: {message}")
        )
        return replace(
            cursor,
            summary=summary,
            seen=seen,
            attempted_chunks=number,
            completed_chunks=cursor.completed_chunks + 1,
            failed=True,
            stopped=cursor.stopped or result.fatal or is_fatal_message(message),
        )
    return replace(
        cursor,
        summary=summary,
        seen=seen,
        attempted_chunks=number,
        completed_chunks=cursor.completed_chunks + 1,
    )


__all__ = [
    "CancellationToken",
    "ChunkOrchestrator",
    "ImportProgress",
    "OrchestratedRun",
    "ProgressCallback",
    "RunState",
    "is_fatal_error",
    "is_fatal_message",
]
