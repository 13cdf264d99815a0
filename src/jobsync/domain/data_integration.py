"""Application service importing one window of partner rows."""

from __future__ import annotations

from dataclasses import InitVar, dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from jobsync.domain.errors import ConfigurationError, UnmappedEngineerError
from jobsync.domain.gate import EngineerGate
from jobsync.domain.reconciliation import ReconciliationEngine
from jobsync.domain.summary import ImportRunSummary
from jobsync.domain.windows import ChunkInfo, ChunkWindow

DEFAULT_CHUNK_SIZE = 200

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from jobsync.domain.ports import JobStore, RowBatch, RowSource, SourceDescriptor
    from jobsync.domain.profile import MappingProfile

log = getLogger(__name__)


def new_run_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True, kw_only=True)
class ImportRunResult:
    """Outcome of one ``run_import`` call.

    ``fatal`` marks a window aborted by a transient backend failure; the
    summary then holds only the rows decided before the abort.
    """

    success: bool
    summary: ImportRunSummary
    chunk_info: ChunkInfo | None = None
    unmapped_engineers: tuple[str, ...] = ()
    decided_external_ids: tuple[str, ...] = ()
    run_id: str | None = None
    error: str | None = None
    fatal: bool = False

    @property
    def blocked(self) -> bool:
        return bool(self.unmapped_engineers)


@dataclass(slots=True)
class ImportService:
    """Validate, gate, fetch and reconcile one window of a partner source."""

    source: RowSource
    store: JobStore
    engineer_gate: InitVar[EngineerGate | None] = None
    run_id_factory: Callable[[], str] = new_run_id
    gate: EngineerGate = field(init=False)

    def __post_init__(self, engineer_gate: EngineerGate | None) -> None:
        self.gate = engineer_gate or EngineerGate(self.source)

    async def fetch_window(self, descriptor: SourceDescriptor, window: ChunkWindow) -> RowBatch:
        return await self.source.fetch(descriptor, window.start_row, window.size)

    async def run_import(
        self,
        descriptor: SourceDescriptor,
        profile: MappingProfile,
        *,
        dry_run: bool = True,
        create_missing_records: bool = True,
        start_row: int = 0,
        max_rows: int = DEFAULT_CHUNK_SIZE,
        total_rows_hint: int | None = None,
        verbose: bool = False,
        seen_external_ids: Iterable[str] = frozenset(),
        run_id: str | None = None,
        batch: RowBatch | None = None,
    ) -> ImportRunResult:
        """Import rows ``[start_row, start_row + max_rows)``.

        Safe to call again with the same ``start_row``: a dry run has no side
        effects and live writes go through the store's idempotent upsert.
        Run-level failures (configuration, source access) propagate; unmapped
        engineers produce a blocked result with nothing processed. A ``batch``
        already read for this window is used instead of fetching it again.
        """

        run_id = run_id or self.run_id_factory()
        profile.validate_for_run()
        window = ChunkWindow(start_row=start_row, size=max_rows)

        try:
            await self.gate.check(descriptor, profile)
        except UnmappedEngineerError as exc:
            log.warning(f"Import {run_id} blocked: {exc}")
            return ImportRunResult(
                success=False,
                summary=ImportRunSummary.empty(dry_run=dry_run),
                unmapped_engineers=exc.identifiers,
                run_id=run_id,
                error=str(exc),
            )

        if batch is None:
            batch = await self.fetch_window(descriptor, window)
        if batch.total_rows == 0:
            raise ConfigurationError("No data rows found to import")
        if total_rows_hint is not None and total_rows_hint != batch.total_rows:
            log.warning(
                f"Source reports {batch.total_rows} rows but {total_rows_hint} were expected"
            )

        engine = ReconciliationEngine(
            profile=profile,
            store=self.store,
            dry_run=dry_run,
            create_missing_records=create_missing_records,
            run_id=run_id,
            verbose=verbose,
        )
        outcome = await engine.reconcile(batch, seen_external_ids=seen_external_ids)
        summary = ImportRunSummary.from_decisions(
            outcome.decisions,
            dry_run=dry_run,
            warnings=outcome.warnings,
        )
        chunk_info = ChunkInfo.for_window(
            window,
            total_rows=batch.total_rows,
            processed=summary.processed,
        )
        log.info(
            f"Rows {window.start_row + 1}-{chunk_info.end_row} of {batch.total_rows}: "
            f"{summary.inserted} inserted, {summary.updated} updated, "
            f"{summary.skipped} skipped, {summary.duplicates} duplicates, "
            f"{len(summary.errors)} errors"
            + (" (dry run)" if dry_run else "")
        )

        aborted = outcome.aborted_by
        return ImportRunResult(
            success=aborted is None,
            summary=summary,
            chunk_info=chunk_info,
            unmapped_engineers=tuple(sorted(outcome.unmapped_engineers)),
            decided_external_ids=tuple(outcome.claimed_external_ids),
            run_id=run_id,
            error=str(aborted) if aborted is not None else None,
            fatal=aborted is not None,
        )


__all__ = ["DEFAULT_CHUNK_SIZE", "ImportRunResult", "ImportService", "new_run_id"]
