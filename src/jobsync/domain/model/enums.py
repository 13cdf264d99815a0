"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class SourceType(StrEnum):
    CSV = "csv"
    GSHEET = "gsheet"


class InternalField(StrEnum):
    """Internal job fields a partner column can be mapped onto."""

    PARTNER_EXTERNAL_ID = "partner_external_id"
    PARTNER_STATUS = "partner_status"
    ENGINEER_IDENTIFIER = "engineer_identifier"
    SCHEDULED_DATE = "scheduled_date"
    SUB_PARTNER = "sub_partner"
    PARTNER_EXTERNAL_URL = "partner_external_url"
    CLIENT_NAME = "client_name"
    CLIENT_EMAIL = "client_email"
    CLIENT_PHONE = "client_phone"
    JOB_ADDRESS = "job_address"
    POSTCODE = "postcode"


REQUIRED_FIELDS: tuple[InternalField, ...] = (
    InternalField.PARTNER_EXTERNAL_ID,
    InternalField.PARTNER_STATUS,
)

# contact details a new job cannot be created without
INSERT_REQUIRED_FIELDS: tuple[InternalField, ...] = (
    InternalField.CLIENT_NAME,
    InternalField.CLIENT_EMAIL,
)


class JobStatus(StrEnum):
    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_AGREEMENT = "awaiting_agreement"
    AWAITING_INSTALL_BOOKING = "awaiting_install_booking"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    INSTALL_COMPLETED_PENDING_QA = "install_completed_pending_qa"
    COMPLETED = "completed"


DEFAULT_JOB_STATUS = JobStatus.AWAITING_INSTALL_BOOKING


class UpsertOutcome(StrEnum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"
