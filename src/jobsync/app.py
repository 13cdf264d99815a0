"""Application entry points wiring the import domain to its adapters."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.adapters.csv_source import CsvRowSource
from jobsync.adapters.sheets import GoogleSheetsRowSource
from jobsync.adapters.sqlalchemy.unit_of_work import (
    is_started,
    job_store,
    profile_repository,
    startup,
)
from jobsync.config import get_import_config
from jobsync.domain.audit import AuditReport, audit_source
from jobsync.domain.data_integration import ImportService
from jobsync.domain.errors import ConfigurationError
from jobsync.domain.gate import EngineerGate
from jobsync.domain.model import SourceType
from jobsync.domain.orchestrator import ChunkOrchestrator, OrchestratedRun

if TYPE_CHECKING:
    from uuid import UUID

    from jobsync.domain.orchestrator import CancellationToken, ProgressCallback
    from jobsync.domain.ports import JobStore, ProfileRepository, RowSource, SourceDescriptor
    from jobsync.domain.profile import MappingProfile


log = getLogger(__name__)


def build_row_source(descriptor: SourceDescriptor) -> RowSource:
    """Return the row source adapter able to read ``descriptor``."""

    if descriptor.source_type is SourceType.CSV:
        return CsvRowSource()
    return GoogleSheetsRowSource()


def _default_store() -> JobStore:
    if not is_started():
        startup()
    return job_store()


def default_profile_repository() -> ProfileRepository:
    if not is_started():
        startup()
    return profile_repository()


def load_stored_profile(
    profile_id: UUID,
    *,
    repository: ProfileRepository | None = None,
) -> MappingProfile:
    repo = repository or default_profile_repository()
    profile = repo.get(profile_id)
    if profile is None:
        raise ConfigurationError(f"Mapping profile {profile_id} not found")
    return profile


def run_partner_import(
    profile: MappingProfile,
    descriptor: SourceDescriptor,
    *,
    dry_run: bool = True,
    create_missing_records: bool = True,
    chunk_size: int | None = None,
    parallel_chunks: int | None = None,
    verbose: bool = False,
    source: RowSource | None = None,
    store: JobStore | None = None,
    progress: ProgressCallback | None = None,
    cancel_token: CancellationToken | None = None,
) -> OrchestratedRun:
    """Run a chunked import of ``descriptor`` through ``profile``."""

    settings = get_import_config()
    effective_source = source or build_row_source(descriptor)
    effective_store = store or _default_store()
    orchestrator = ChunkOrchestrator(
        service=ImportService(effective_source, effective_store),
        chunk_size=chunk_size or settings.chunk_size,
        parallel_chunks=parallel_chunks or settings.parallel_chunks,
        progress=progress,
    )
    log.info(
        f"Starting import for {profile.name!r} (partner {profile.partner_id}): "
        f"dry_run={dry_run}, create_missing_records={create_missing_records}, "
        f"chunk_size={orchestrator.chunk_size}, parallel_chunks={orchestrator.parallel_chunks}"
    )
    return asyncio.run(
        orchestrator.run(
            descriptor,
            profile,
            dry_run=dry_run,
            create_missing_records=create_missing_records,
            verbose=verbose,
            cancel_token=cancel_token,
        )
    )


def audit_partner_source(
    profile: MappingProfile,
    descriptor: SourceDescriptor,
    *,
    source: RowSource | None = None,
    store: JobStore | None = None,
) -> AuditReport:
    effective_source = source or build_row_source(descriptor)
    effective_store = store or _default_store()
    return asyncio.run(audit_source(effective_source, effective_store, descriptor, profile))


def auto_match_engineers(
    profile: MappingProfile,
    descriptor: SourceDescriptor,
    *,
    source: RowSource | None = None,
    store: JobStore | None = None,
) -> tuple[int, tuple[str, ...]]:
    """Map unmapped source engineers by name; returns the count and those still unmapped."""

    effective_source = source or build_row_source(descriptor)
    effective_store = store or _default_store()

    async def match() -> tuple[int, tuple[str, ...]]:
        gate = EngineerGate(effective_source)
        unmapped = await gate.unmapped_engineers(descriptor, profile)
        if not unmapped:
            return 0, ()
        engineers = await effective_store.list_engineers()
        matched = profile.bulk_auto_match_engineers(unmapped, engineers)
        remaining = tuple(ident for ident in unmapped if profile.resolve_engineer(ident) is None)
        return matched, remaining

    matched, remaining = asyncio.run(match())
    log.info(f"Auto-matched {matched} engineer(s); {len(remaining)} still unmapped")
    return matched, remaining
