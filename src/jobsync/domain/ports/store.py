"""Ports for the internal job/order store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobsync.domain.model import Engineer, JobRecord, UpsertOutcome


@runtime_checkable
class JobStore(Protocol):
    """Destination store for reconciled partner jobs.

    ``upsert`` must be idempotent for a given record. Implementations raise
    ``DuplicateRecordError`` on uniqueness violations,
    ``TransientBackendError`` on timeouts/throttling and ``StoreWriteError``
    for any other rejected write.
    """

    async def lookup(self, partner_id: str, external_id: str) -> JobRecord | None: ...

    async def upsert(self, record: JobRecord) -> UpsertOutcome: ...

    async def list_engineers(self) -> Sequence[Engineer]: ...

    async def list_external_ids(self, partner_id: str) -> Sequence[str]: ...
