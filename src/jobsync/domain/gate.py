"""Block imports while engineer identifiers in the source are unmapped.

The gate pages through the *whole* source, not just the window being
imported, so a run cannot create or update jobs for any engineer the profile
does not know yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.domain.errors import UnmappedEngineerError
from jobsync.domain.model import InternalField
from jobsync.domain.reconciliation.normalize import engineer_identifiers, match_header

if TYPE_CHECKING:
    from jobsync.domain.ports import RowSource, SourceDescriptor
    from jobsync.domain.profile import MappingProfile

log = getLogger(__name__)

DEFAULT_GATE_PAGE_SIZE = 500

type GateKey = tuple[SourceDescriptor, str | None, frozenset[tuple[str, str]]]


@dataclass(slots=True)
class EngineerGate:
    """Scan engineer identifiers across a source and cache the result.

    The cache is keyed by source descriptor, mapped engineer column and the
    engineer mappings, so fixing a mapping invalidates it.
    """

    source: RowSource
    page_size: int = DEFAULT_GATE_PAGE_SIZE
    _cache: dict[GateKey, tuple[str, ...]] = field(default_factory=dict)

    async def unmapped_engineers(
        self,
        descriptor: SourceDescriptor,
        profile: MappingProfile,
    ) -> tuple[str, ...]:
        """Return the sorted, de-duplicated identifiers absent from the profile."""

        column = profile.column_for(InternalField.ENGINEER_IDENTIFIER)
        key: GateKey = (descriptor, column, frozenset(profile.engineer_mappings.items()))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        identifiers = await self._scan(descriptor, column) if column else set[str]()
        unmapped = tuple(
            sorted(ident for ident in identifiers if profile.resolve_engineer(ident) is None)
        )
        self._cache[key] = unmapped
        if unmapped:
            log.warning(f"Gate found {len(unmapped)} unmapped engineer(s): {', '.join(unmapped)}")
        return unmapped

    async def check(self, descriptor: SourceDescriptor, profile: MappingProfile) -> None:
        """Raise ``UnmappedEngineerError`` unless every identifier resolves."""

        unmapped = await self.unmapped_engineers(descriptor, profile)
        if unmapped:
            raise UnmappedEngineerError(unmapped)

    async def _scan(self, descriptor: SourceDescriptor, column: str) -> set[str]:
        found: set[str] = set()
        start = 0
        while True:
            batch = await self.source.fetch(descriptor, start, self.page_size)
            header = match_header(batch.headers, column)
            if header is None:
                log.debug(f"Engineer column {column!r} not present in source; nothing to gate")
                return found
            found |= engineer_identifiers(
                batch.source_rows(), {InternalField.ENGINEER_IDENTIFIER: header}
            )
            start += len(batch.rows)
            if not batch.rows or start >= batch.total_rows:
                return found


__all__ = ["DEFAULT_GATE_PAGE_SIZE", "EngineerGate"]
