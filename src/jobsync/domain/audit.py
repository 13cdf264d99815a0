"""Audit a partner source against the job store before or after an import."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.domain.model import InternalField
from jobsync.domain.reconciliation.normalize import match_header

if TYPE_CHECKING:
    from jobsync.domain.ports import JobStore, RowSource, SourceDescriptor
    from jobsync.domain.profile import MappingProfile

log = getLogger(__name__)

AUDIT_PAGE_SIZE = 500


@dataclass(frozen=True, slots=True, kw_only=True)
class AuditReport:
    """Data-quality findings for one source and the matching stored jobs."""

    total_rows: int
    unique_external_ids: int
    duplicate_external_ids: tuple[str, ...]
    blank_external_ids: int
    unique_emails: int
    duplicate_emails: tuple[str, ...]
    blank_emails: int
    blank_names: int
    existing_external_ids: tuple[str, ...]
    missing_external_ids: tuple[str, ...]
    recommendations: tuple[str, ...]


async def audit_source(
    source: RowSource,
    store: JobStore,
    descriptor: SourceDescriptor,
    profile: MappingProfile,
    *,
    page_size: int = AUDIT_PAGE_SIZE,
) -> AuditReport:
    """Read the whole source and compare its external ids with the store."""

    id_counts: Counter[str] = Counter()
    email_counts: Counter[str] = Counter()
    blank_ids = blank_emails = blank_names = 0
    total_rows = 0
    start = 0

    while True:
        batch = await source.fetch(descriptor, start, page_size)
        total_rows = batch.total_rows
        id_header = _header(batch.headers, profile, InternalField.PARTNER_EXTERNAL_ID)
        email_header = _header(batch.headers, profile, InternalField.CLIENT_EMAIL)
        name_header = _header(batch.headers, profile, InternalField.CLIENT_NAME)
        for row in batch.source_rows():
            external_id = row.values.get(id_header, "") if id_header else ""
            email = row.values.get(email_header, "").lower() if email_header else ""
            name = row.values.get(name_header, "") if name_header else ""
            if external_id:
                id_counts[external_id] += 1
            else:
                blank_ids += 1
            if email:
                email_counts[email] += 1
            else:
                blank_emails += 1
            if not name:
                blank_names += 1
        start += len(batch.rows)
        if not batch.rows or start >= batch.total_rows:
            break

    stored = set(await store.list_external_ids(profile.partner_id))
    unique_ids = list(id_counts)
    existing = tuple(sorted(i for i in unique_ids if i in stored))
    missing = tuple(sorted(i for i in unique_ids if i not in stored))
    duplicate_ids = tuple(sorted(i for i, count in id_counts.items() if count > 1))
    duplicate_emails = tuple(sorted(e for e, count in email_counts.items() if count > 1))

    recommendations: list[str] = []
    if duplicate_ids:
        recommendations.append(
            f"Found {len(duplicate_ids)} duplicate external IDs in the source. "
            "Only the first occurrence of each is imported; remove the others."
        )
    if blank_ids:
        recommendations.append(
            f"Found {blank_ids} rows with blank external IDs. These are reported as row errors."
        )
    if blank_emails:
        recommendations.append(
            f"Found {blank_emails} rows with blank client emails. "
            "New jobs cannot be created from these rows."
        )
    if blank_names:
        recommendations.append(
            f"Found {blank_names} rows with blank client names. "
            "New jobs cannot be created from these rows."
        )
    if missing:
        recommendations.append(
            f"{len(missing)} external IDs from the source are missing from the job store. "
            "They are new, or an earlier import failed for them."
        )

    report = AuditReport(
        total_rows=total_rows,
        unique_external_ids=len(unique_ids),
        duplicate_external_ids=duplicate_ids,
        blank_external_ids=blank_ids,
        unique_emails=len(email_counts),
        duplicate_emails=duplicate_emails,
        blank_emails=blank_emails,
        blank_names=blank_names,
        existing_external_ids=existing,
        missing_external_ids=missing,
        recommendations=tuple(recommendations),
    )
    log.info(
        f"Audit of {profile.name}: {total_rows} rows, {len(unique_ids)} unique ids, "
        f"{len(existing)} stored, {len(missing)} missing"
    )
    return report


def _header(headers: tuple[str, ...], profile: MappingProfile, field: InternalField) -> str | None:
    column = profile.column_for(field)
    return match_header(headers, column) if column else None


__all__ = ["AUDIT_PAGE_SIZE", "AuditReport", "audit_source"]
