"""Value objects flowing through one import run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from .enums import DEFAULT_JOB_STATUS, InternalField, JobStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date


@dataclass(frozen=True, slots=True)
class SourceRow:
    """One data row of the partner source, keyed by source column name."""

    row_index: int
    values: Mapping[str, str]


@dataclass(frozen=True, slots=True, kw_only=True)
class NormalizedRecord:
    """A source row translated through the mapping profile."""

    row_index: int
    external_id: str
    partner_status: str
    status: JobStatus | None = None
    suppress_scheduling: bool | None = None
    engineer_identifier: str | None = None
    engineer_id: str | None = None
    scheduled_date: date | None = None
    fields: Mapping[InternalField, str] = field(default_factory=dict[InternalField, str])
    raw: Mapping[str, str] = field(default_factory=dict[str, str])

    def value(self, internal_field: InternalField) -> str | None:
        return self.fields.get(internal_field)


@dataclass(slots=True, kw_only=True)
class JobRecord:
    """Job/order as held by the destination store."""

    partner_id: str
    partner_external_id: str
    status: JobStatus = DEFAULT_JOB_STATUS
    partner_status: str | None = None
    suppress_scheduling: bool = False
    engineer_id: str | None = None
    scheduled_date: date | None = None
    sub_partner: str | None = None
    partner_external_url: str | None = None
    client_name: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    job_address: str | None = None
    postcode: str | None = None
    import_run_id: str | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass(slots=True, kw_only=True)
class Engineer:
    id: str
    name: str
    email: str | None = None
