"""Ports for mapping profile persistence."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from jobsync.domain.profile import MappingProfile


@runtime_checkable
class ProfileRepository(Protocol):
    """Opaque key-value storage for mapping profiles."""

    def get(self, profile_id: UUID) -> MappingProfile | None: ...

    def add(self, profile: MappingProfile) -> None: ...

    def remove(self, profile_id: UUID) -> None: ...

    def list(self, *, partner_id: str | None = None) -> Sequence[MappingProfile]: ...
