from __future__ import annotations

import asyncio
import threading
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from jobsync.adapters.sqlalchemy import (
    SqlAlchemyJobStore,
    SqlAlchemyProfileRepository,
    classify_error,
)
from jobsync.domain.errors import DuplicateRecordError, StoreWriteError, TransientBackendError
from jobsync.domain.model import Engineer, JobRecord, JobStatus, UpsertOutcome
from tests.helpers.imports import make_profile

if TYPE_CHECKING:
    from sqlalchemy.orm import Session, sessionmaker


def _job(**overrides: object) -> JobRecord:
    values: dict[str, object] = {
        "partner_id": "acme",
        "partner_external_id": "J001",
        "status": JobStatus.SCHEDULED,
        "partner_status": "Booked",
        "scheduled_date": date(2025, 3, 1),
        "client_name": "Ada Lovelace",
        "client_email": "ada@example.com",
        "import_run_id": "run-1",
    }
    values.update(overrides)
    return JobRecord(**values)  # type: ignore[arg-type]


def test_upsert_inserts_updates_and_skips(sqlite_job_store: SqlAlchemyJobStore) -> None:
    store = sqlite_job_store

    assert asyncio.run(store.upsert(_job())) is UpsertOutcome.INSERTED
    assert asyncio.run(store.upsert(_job(import_run_id="run-2"))) is UpsertOutcome.SKIPPED
    assert (
        asyncio.run(store.upsert(_job(status=JobStatus.COMPLETED, import_run_id="run-3")))
        is UpsertOutcome.UPDATED
    )

    stored = asyncio.run(store.lookup("acme", "J001"))
    assert stored is not None
    assert stored.status is JobStatus.COMPLETED
    assert stored.scheduled_date == date(2025, 3, 1)
    assert stored.import_run_id == "run-3"


def test_lookup_is_scoped_by_partner(sqlite_job_store: SqlAlchemyJobStore) -> None:
    asyncio.run(sqlite_job_store.upsert(_job()))

    assert asyncio.run(sqlite_job_store.lookup("other", "J001")) is None
    assert asyncio.run(sqlite_job_store.lookup("acme", "J999")) is None


def test_list_external_ids_and_engineers(sqlite_job_store: SqlAlchemyJobStore) -> None:
    store = sqlite_job_store
    for external_id in ("J002", "J001"):
        asyncio.run(store.upsert(_job(partner_external_id=external_id)))
    asyncio.run(store.upsert(_job(partner_id="other", partner_external_id="X1")))

    written = store.add_engineers(
        [Engineer(id="eng-2", name="Zoe"), Engineer(id="eng-1", name="Adam", email="a@x.io")]
    )
    renamed = store.add_engineers(
        [Engineer(id="eng-2", name="Zoe Q"), Engineer(id="eng-1", name="Adam", email="a@x.io")]
    )

    assert asyncio.run(store.list_external_ids("acme")) == ["J001", "J002"]
    assert (written, renamed) == (2, 1)
    assert [e.name for e in asyncio.run(store.list_engineers())] == ["Adam", "Zoe Q"]


def test_duplicate_primary_key_is_reported_as_duplicate(
    sqlite_job_store: SqlAlchemyJobStore,
) -> None:
    first = _job()
    asyncio.run(sqlite_job_store.upsert(first))

    with pytest.raises(DuplicateRecordError):
        asyncio.run(sqlite_job_store.upsert(_job(id=first.id, partner_external_id="J002")))


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")), DuplicateRecordError),
        (OperationalError("UPDATE", {}, Exception("database is locked")), TransientBackendError),
        (OperationalError("SELECT", {}, Exception("no such table: job")), StoreWriteError),
    ],
)
def test_classify_error(error: SQLAlchemyError, expected: type[Exception]) -> None:
    assert isinstance(classify_error(error), expected)


def test_profile_repository_round_trip(
    sqlite_profile_repository: SqlAlchemyProfileRepository,
) -> None:
    repo = sqlite_profile_repository
    profile = make_profile()
    other = make_profile(partner_id="globex", name="Globex")

    repo.add(profile)
    repo.add(other)
    profile.add_status_mapping("Cancelled", JobStatus.COMPLETED)
    repo.add(profile)

    restored = repo.get(profile.id)
    assert restored == profile
    assert [p.name for p in repo.list()] == ["Acme Solar", "Globex"]
    assert [p.id for p in repo.list(partner_id="globex")] == [other.id]

    repo.remove(profile.id)
    assert repo.get(profile.id) is None


def test_job_store_runs_sessions_off_the_event_loop_thread(
    session_factory: sessionmaker[Session],
) -> None:
    session_threads: list[int] = []

    def tracking_factory() -> Session:
        session_threads.append(threading.get_ident())
        return session_factory()

    store = SqlAlchemyJobStore(session_factory=tracking_factory)

    async def exercise() -> int:
        await store.upsert(_job())
        await store.lookup("acme", "J001")
        await store.list_engineers()
        await store.list_external_ids("acme")
        return threading.get_ident()

    loop_thread = asyncio.run(exercise())

    assert len(session_threads) == 4
    assert loop_thread not in session_threads
