"""Per-row reconciliation policy.

Given a normalized record and the stored job (if any) decide whether the row
inserts, updates or skips. The policy is deterministic and performs no I/O;
run-wide duplicate detection happens before it is consulted.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from jobsync.domain.model import (
    DEFAULT_JOB_STATUS,
    INSERT_REQUIRED_FIELDS,
    InternalField,
    JobRecord,
)

from .contracts import InsertDecision, SkipDecision, UpdateDecision

if TYPE_CHECKING:
    from jobsync.domain.model import NormalizedRecord

    from .contracts import Decision

# optional text fields copied verbatim onto the job record
_TEXT_FIELDS: tuple[InternalField, ...] = (
    InternalField.SUB_PARTNER,
    InternalField.PARTNER_EXTERNAL_URL,
    InternalField.CLIENT_NAME,
    InternalField.CLIENT_EMAIL,
    InternalField.CLIENT_PHONE,
    InternalField.JOB_ADDRESS,
    InternalField.POSTCODE,
)


def changed_fields(record: NormalizedRecord, existing: JobRecord) -> tuple[str, ...]:
    """Names of job fields the record would change; unset values never count."""

    changes: list[str] = []
    if record.status is not None and record.status != existing.status:
        changes.append("status")
    if record.partner_status != existing.partner_status:
        changes.append("partner_status")
    if (
        record.suppress_scheduling is not None
        and record.suppress_scheduling != existing.suppress_scheduling
    ):
        changes.append("suppress_scheduling")
    if record.engineer_id is not None and record.engineer_id != existing.engineer_id:
        changes.append("engineer_id")
    if record.scheduled_date is not None and record.scheduled_date != existing.scheduled_date:
        changes.append("scheduled_date")
    for text_field in _TEXT_FIELDS:
        value = record.value(text_field)
        if value is not None and value != getattr(existing, text_field.value):
            changes.append(text_field.value)
    return tuple(changes)


def decide(
    record: NormalizedRecord,
    existing: JobRecord | None,
    *,
    create_missing_records: bool,
) -> Decision:
    if existing is None:
        if not create_missing_records:
            return SkipDecision(
                row_index=record.row_index,
                external_id=record.external_id,
                reason="Job not found and creation is disabled",
                record=record,
            )
        missing = [str(f) for f in INSERT_REQUIRED_FIELDS if record.value(f) is None]
        if missing:
            return SkipDecision(
                row_index=record.row_index,
                external_id=record.external_id,
                reason=f"Job not found and contact details missing: {', '.join(missing)}",
                record=record,
            )
        return InsertDecision(
            row_index=record.row_index,
            external_id=record.external_id,
            reason="New job",
            status=record.status or DEFAULT_JOB_STATUS,
            record=record,
        )

    changes = changed_fields(record, existing)
    if not changes:
        return SkipDecision(
            row_index=record.row_index,
            external_id=record.external_id,
            reason="No change",
            record=record,
        )
    if "status" in changes:
        reason = f"Status {existing.status} -> {record.status}"
    else:
        reason = f"Changed: {', '.join(changes)}"
    return UpdateDecision(
        row_index=record.row_index,
        external_id=record.external_id,
        reason=reason,
        before_status=existing.status,
        after_status=record.status or existing.status,
        changed_fields=changes,
        record=record,
    )


def build_job_record(
    record: NormalizedRecord,
    existing: JobRecord | None,
    *,
    partner_id: str,
    import_run_id: str | None = None,
) -> JobRecord:
    """Project ``record`` onto the stored job, keeping stored values the row leaves unset."""

    base = existing or JobRecord(partner_id=partner_id, partner_external_id=record.external_id)
    updates: dict[str, object] = {
        "partner_status": record.partner_status,
        "import_run_id": import_run_id or base.import_run_id,
    }
    if record.status is not None:
        updates["status"] = record.status
    if record.suppress_scheduling is not None:
        updates["suppress_scheduling"] = record.suppress_scheduling
    if record.engineer_id is not None:
        updates["engineer_id"] = record.engineer_id
    if record.scheduled_date is not None:
        updates["scheduled_date"] = record.scheduled_date
    for text_field in _TEXT_FIELDS:
        value = record.value(text_field)
        if value is not None:
            updates[text_field.value] = value
    return replace(base, **updates)
