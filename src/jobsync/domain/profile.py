"""Administrator-configured mapping profile for one partner source."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from .errors import ConfigurationError
from .model import REQUIRED_FIELDS, InternalField, JobStatus, SourceType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .model import Engineer

log = getLogger(__name__)


def _lookup[TValue](mapping: Mapping[str, TValue], key: str) -> TValue | None:
    """Exact match first, then a case-insensitive match on trimmed keys."""

    if key in mapping:
        return mapping[key]
    folded = key.strip().casefold()
    for candidate, value in mapping.items():
        if candidate.strip().casefold() == folded:
            return value
    return None


def _require_key(value: str, *, what: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{what} must not be blank")
    return stripped


@dataclass(slots=True, kw_only=True)
class MappingProfile:
    """Column, status, override and engineer mappings for a partner source."""

    name: str
    partner_id: str
    partner_name: str | None = None
    source_type: SourceType = SourceType.CSV
    gsheet_id: str | None = None
    gsheet_sheet_name: str | None = None
    is_active: bool = True
    column_mappings: dict[InternalField, str] = field(default_factory=dict[InternalField, str])
    status_mappings: dict[str, JobStatus] = field(default_factory=dict[str, JobStatus])
    status_override_rules: dict[str, bool] = field(default_factory=dict[str, bool])
    engineer_mappings: dict[str, str] = field(default_factory=dict[str, str])
    id: UUID = field(default_factory=uuid4)

    # Column mappings ---------------------------------------------------------

    def set_column_mapping(self, internal_field: InternalField | str, column: str | None) -> None:
        """Map ``internal_field`` onto a source column, or remove it for ``None``."""

        key = _coerce_field(internal_field)
        if column is None or not column.strip():
            self.column_mappings.pop(key, None)
            return
        self.column_mappings[key] = column.strip()

    def column_for(self, internal_field: InternalField) -> str | None:
        return self.column_mappings.get(internal_field)

    # Status mappings ---------------------------------------------------------

    def add_status_mapping(self, partner_status: str, internal_status: JobStatus | str) -> None:
        key = _require_key(partner_status, what="Partner status")
        self.status_mappings[key] = _coerce_status(internal_status)

    def remove_status_mapping(self, partner_status: str) -> None:
        self.status_mappings.pop(partner_status.strip(), None)

    def translate_status(self, partner_status: str) -> JobStatus | None:
        return _lookup(self.status_mappings, partner_status)

    # Override rules ----------------------------------------------------------

    def add_override_rule(self, partner_status: str, *, suppress: bool) -> None:
        key = _require_key(partner_status, what="Partner status")
        self.status_override_rules[key] = suppress

    def remove_override_rule(self, partner_status: str) -> None:
        self.status_override_rules.pop(partner_status.strip(), None)

    def override_for(self, partner_status: str) -> bool | None:
        return _lookup(self.status_override_rules, partner_status)

    # Engineer mappings -------------------------------------------------------

    def add_engineer_mapping(self, partner_identifier: str, engineer_id: str) -> None:
        key = _require_key(partner_identifier, what="Partner engineer identifier")
        self.engineer_mappings[key] = _require_key(engineer_id, what="Engineer id")

    def remove_engineer_mapping(self, partner_identifier: str) -> None:
        self.engineer_mappings.pop(partner_identifier.strip(), None)

    def resolve_engineer(self, partner_identifier: str) -> str | None:
        return _lookup(self.engineer_mappings, partner_identifier)

    def bulk_auto_match_engineers(
        self,
        candidate_identifiers: Iterable[str],
        engineers: Iterable[Engineer],
    ) -> int:
        """Map unmapped identifiers onto engineers with overlapping display names.

        An engineer matches when its name case-insensitively contains the
        identifier or is contained by it. Identifiers without a match stay
        unmapped. Returns the number of newly mapped identifiers.
        """

        roster = [engineer for engineer in engineers if engineer.name.strip()]
        mapped = 0
        for raw_identifier in candidate_identifiers:
            identifier = raw_identifier.strip()
            if not identifier or self.resolve_engineer(identifier) is not None:
                continue
            folded = identifier.casefold()
            for engineer in roster:
                name = engineer.name.strip().casefold()
                if folded in name or name in folded:
                    self.engineer_mappings[identifier] = engineer.id
                    mapped += 1
                    log.debug(f"Auto-matched engineer {identifier!r} -> {engineer.name!r}")
                    break
        return mapped

    # Validation & lifecycle --------------------------------------------------

    def unmapped_required_fields(self) -> tuple[InternalField, ...]:
        return tuple(f for f in REQUIRED_FIELDS if not self.column_mappings.get(f))

    def validate_for_run(self) -> None:
        """Fail fast when a run is requested without the required column mappings."""

        missing = self.unmapped_required_fields()
        if missing:
            names = ", ".join(str(f) for f in missing)
            raise ConfigurationError(f"Required fields are not mapped: {names}")

    def duplicate(self, *, name: str | None = None) -> MappingProfile:
        """Return an inactive copy with its own id and independent mappings."""

        return replace(
            self,
            id=uuid4(),
            name=name or f"{self.name} (Copy)",
            is_active=False,
            column_mappings=dict(self.column_mappings),
            status_mappings=dict(self.status_mappings),
            status_override_rules=dict(self.status_override_rules),
            engineer_mappings=dict(self.engineer_mappings),
        )


def _coerce_field(value: InternalField | str) -> InternalField:
    try:
        return InternalField(value)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown internal field: {value!r}") from exc


def _coerce_status(value: JobStatus | str) -> JobStatus:
    try:
        return JobStatus(value)
    except ValueError as exc:
        raise ConfigurationError(f"Unknown internal status: {value!r}") from exc
