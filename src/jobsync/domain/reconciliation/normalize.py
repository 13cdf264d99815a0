"""Translate raw source rows into normalized records.

Column lookup, status translation, override rules and engineer resolution
all read from the mapping profile; nothing here touches the destination store.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.domain.errors import ConfigurationError, RowValidationError
from jobsync.domain.model import REQUIRED_FIELDS, InternalField, NormalizedRecord

from .contracts import RowIssue

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from jobsync.domain.model import SourceRow
    from jobsync.domain.profile import MappingProfile

log = getLogger(__name__)

_DAY_FIRST_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

type ColumnIndex = dict[InternalField, str]


def match_header(headers: Sequence[str], column: str) -> str | None:
    """Return the source header for ``column``: exact match, then case-insensitive trimmed."""

    if column in headers:
        return column
    folded = column.strip().casefold()
    for header in headers:
        if header.strip().casefold() == folded:
            return header
    return None


def resolve_columns(headers: Sequence[str], profile: MappingProfile) -> ColumnIndex:
    """Match each mapped column against the actual source headers.

    Headers match exactly first and then case-insensitively after trimming. A
    required column missing from the source is a configuration error; optional
    columns that are missing are ignored.
    """

    index: ColumnIndex = {}
    missing_required: list[str] = []
    for internal_field, column in profile.column_mappings.items():
        header = match_header(headers, column)
        if header is not None:
            index[internal_field] = header
            continue
        if internal_field in REQUIRED_FIELDS:
            missing_required.append(f"{internal_field} -> {column!r}")
        else:
            log.warning(f"Mapped column {column!r} for {internal_field} not found in source")
    if missing_required:
        raise ConfigurationError(
            "Mapped columns not found in source headers: " + ", ".join(missing_required)
        )
    return index


def parse_partner_date(value: str) -> date:
    """Parse ``DD/MM/YYYY`` partner dates, falling back to ISO-8601."""

    stripped = value.strip()
    match = _DAY_FIRST_DATE.match(stripped)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return date(year, month, day)
    normalized = stripped[:-1] + "+00:00" if stripped.endswith("Z") else stripped
    try:
        return datetime.fromisoformat(normalized).date()
    except ValueError:
        return date.fromisoformat(stripped)


@dataclass(slots=True)
class NormalizationOutcome:
    record: NormalizedRecord
    warnings: list[RowIssue] = field(default_factory=list[RowIssue])


def normalize_row(
    row: SourceRow,
    *,
    columns: ColumnIndex,
    profile: MappingProfile,
) -> NormalizationOutcome:
    """Map one source row; raises ``RowValidationError`` if required data is absent."""

    values: dict[InternalField, str] = {}
    for internal_field, header in columns.items():
        value = row.values.get(header, "").strip()
        if value:
            values[internal_field] = value

    missing = [str(f) for f in REQUIRED_FIELDS if f not in values]
    if missing:
        raise RowValidationError(
            f"Missing required field(s): {', '.join(missing)}",
            row_index=row.row_index,
        )

    external_id = values[InternalField.PARTNER_EXTERNAL_ID]
    partner_status = values[InternalField.PARTNER_STATUS]
    warnings: list[RowIssue] = []

    status = profile.translate_status(partner_status)
    if status is None:
        warnings.append(
            RowIssue(
                row=row.row_index,
                message=f"Unmapped partner status {partner_status!r}; status left unset",
                external_id=external_id,
                data=dict(row.values),
            )
        )

    if InternalField.CLIENT_EMAIL in values:
        values[InternalField.CLIENT_EMAIL] = values[InternalField.CLIENT_EMAIL].lower()

    scheduled: date | None = None
    raw_date = values.get(InternalField.SCHEDULED_DATE)
    if raw_date is not None:
        try:
            scheduled = parse_partner_date(raw_date)
        except ValueError:
            warnings.append(
                RowIssue(
                    row=row.row_index,
                    message=f"Invalid scheduled date {raw_date!r}; date ignored",
                    external_id=external_id,
                    data=dict(row.values),
                )
            )

    engineer_identifier = values.get(InternalField.ENGINEER_IDENTIFIER)
    engineer_id = profile.resolve_engineer(engineer_identifier) if engineer_identifier else None

    record = NormalizedRecord(
        row_index=row.row_index,
        external_id=external_id,
        partner_status=partner_status,
        status=status,
        suppress_scheduling=profile.override_for(partner_status),
        engineer_identifier=engineer_identifier,
        engineer_id=engineer_id,
        scheduled_date=scheduled,
        fields=values,
        raw=dict(row.values),
    )
    return NormalizationOutcome(record=record, warnings=warnings)


def engineer_identifiers(rows: Sequence[SourceRow], columns: Mapping[InternalField, str]) -> set[str]:
    """Return every non-blank engineer identifier present in ``rows``."""

    header = columns.get(InternalField.ENGINEER_IDENTIFIER)
    if header is None:
        return set()
    found: set[str] = set()
    for row in rows:
        value = row.values.get(header, "").strip()
        if value:
            found.add(value)
    return found
