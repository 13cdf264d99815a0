from __future__ import annotations

from datetime import date

from jobsync.domain.model import InternalField, JobRecord, JobStatus, NormalizedRecord
from jobsync.domain.reconciliation import InsertDecision, SkipDecision, UpdateDecision
from jobsync.domain.reconciliation.policy import build_job_record, changed_fields, decide


def _record(**overrides: object) -> NormalizedRecord:
    values: dict[str, object] = {
        "row_index": 1,
        "external_id": "J001",
        "partner_status": "Booked",
        "status": JobStatus.SCHEDULED,
        "fields": {
            InternalField.CLIENT_NAME: "Ada Lovelace",
            InternalField.CLIENT_EMAIL: "ada@example.com",
        },
    }
    values.update(overrides)
    return NormalizedRecord(**values)  # type: ignore[arg-type]


def _existing(**overrides: object) -> JobRecord:
    values: dict[str, object] = {
        "partner_id": "acme",
        "partner_external_id": "J001",
        "status": JobStatus.SCHEDULED,
        "partner_status": "Booked",
        "client_name": "Ada Lovelace",
        "client_email": "ada@example.com",
    }
    values.update(overrides)
    return JobRecord(**values)  # type: ignore[arg-type]


def test_missing_job_is_inserted_with_default_status() -> None:
    decision = decide(_record(status=None), None, create_missing_records=True)

    assert isinstance(decision, InsertDecision)
    assert decision.status is JobStatus.AWAITING_INSTALL_BOOKING


def test_missing_job_is_skipped_when_creation_disabled() -> None:
    decision = decide(_record(), None, create_missing_records=False)

    assert isinstance(decision, SkipDecision)
    assert decision.reason == "Job not found and creation is disabled"


def test_missing_job_without_contact_details_is_skipped() -> None:
    decision = decide(_record(fields={}), None, create_missing_records=True)

    assert isinstance(decision, SkipDecision)
    assert "client_name" in decision.reason
    assert "client_email" in decision.reason


def test_unchanged_job_is_skipped() -> None:
    decision = decide(_record(), _existing(), create_missing_records=True)

    assert isinstance(decision, SkipDecision)
    assert decision.reason == "No change"


def test_status_change_is_an_update() -> None:
    decision = decide(
        _record(status=JobStatus.COMPLETED, partner_status="Done"),
        _existing(),
        create_missing_records=True,
    )

    assert isinstance(decision, UpdateDecision)
    assert decision.before_status is JobStatus.SCHEDULED
    assert decision.after_status is JobStatus.COMPLETED
    assert decision.changed_fields == ("status", "partner_status")


def test_unset_values_never_count_as_changes() -> None:
    existing = _existing(engineer_id="eng-1", scheduled_date=date(2025, 3, 1))

    assert changed_fields(_record(status=None), existing) == ()


def test_build_job_record_keeps_stored_values_the_row_leaves_unset() -> None:
    existing = _existing(engineer_id="eng-1", postcode="AB1 2CD")

    job = build_job_record(
        _record(suppress_scheduling=True, scheduled_date=date(2025, 4, 2)),
        existing,
        partner_id="acme",
        import_run_id="run-1",
    )

    assert job.id == existing.id
    assert job.engineer_id == "eng-1"
    assert job.postcode == "AB1 2CD"
    assert job.suppress_scheduling is True
    assert job.scheduled_date == date(2025, 4, 2)
    assert job.import_run_id == "run-1"
