"""SQLAlchemy implementations of the job store and profile repository."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from jobsync.adapters.profile_document import profile_from_json, profile_to_json
from jobsync.domain.errors import (
    DuplicateRecordError,
    StoreError,
    StoreWriteError,
    TransientBackendError,
)
from jobsync.domain.model import Engineer, JobRecord, UpsertOutcome

from .mappings import JOB_COLUMNS, engineer_table, job_table, mapping_profile_table

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from uuid import UUID

    from sqlalchemy import RowMapping
    from sqlalchemy.orm import Session

    from jobsync.domain.profile import MappingProfile

log = getLogger(__name__)

_TRANSIENT_MARKERS = ("timeout", "timed out", "locked", "busy", "too many connections")


def classify_error(exc: SQLAlchemyError) -> StoreError:
    """Map a driver error onto the store error hierarchy."""

    message = str(exc.orig) if getattr(exc, "orig", None) is not None else str(exc)
    if isinstance(exc, IntegrityError):
        return DuplicateRecordError(message)
    if isinstance(exc, OperationalError) and any(
        marker in message.lower() for marker in _TRANSIENT_MARKERS
    ):
        return TransientBackendError(f"Store timeout: {message}")
    return StoreWriteError(message)


def _record_from_row(row: RowMapping) -> JobRecord:
    return JobRecord(id=row["id"], **{name: row[name] for name in JOB_COLUMNS})


def _values_from_record(record: JobRecord) -> dict[str, Any]:
    return {name: getattr(record, name) for name in JOB_COLUMNS}


@dataclass(slots=True)
class SqlAlchemyJobStore:
    """Job store backed by the ``job`` and ``engineer`` tables.

    Every call runs in its own short-lived session on a worker thread, so
    concurrent windows do not block the event loop while the database works.
    """

    session_factory: Callable[[], Session]

    async def lookup(self, partner_id: str, external_id: str) -> JobRecord | None:
        return await asyncio.to_thread(self._lookup, partner_id, external_id)

    async def upsert(self, record: JobRecord) -> UpsertOutcome:
        try:
            return await asyncio.to_thread(self._upsert, record)
        except StoreError as error:
            log.warning(f"Upsert of {record.partner_external_id} failed: {error}")
            raise

    async def list_engineers(self) -> Sequence[Engineer]:
        return await asyncio.to_thread(self._list_engineers)

    async def list_external_ids(self, partner_id: str) -> Sequence[str]:
        return await asyncio.to_thread(self._list_external_ids, partner_id)

    def _lookup(self, partner_id: str, external_id: str) -> JobRecord | None:
        statement = select(job_table).where(
            job_table.c.partner_id == partner_id,
            job_table.c.partner_external_id == external_id,
        )
        try:
            with self.session_factory() as session:
                row = session.execute(statement).mappings().first()
        except SQLAlchemyError as exc:
            raise classify_error(exc) from exc
        return _record_from_row(row) if row is not None else None

    def _upsert(self, record: JobRecord) -> UpsertOutcome:
        values = _values_from_record(record)
        try:
            with self.session_factory() as session, session.begin():
                existing = (
                    session.execute(
                        select(job_table).where(
                            job_table.c.partner_id == record.partner_id,
                            job_table.c.partner_external_id == record.partner_external_id,
                        )
                    )
                    .mappings()
                    .first()
                )
                if existing is None:
                    session.execute(job_table.insert().values(id=record.id, **values))
                    return UpsertOutcome.INSERTED
                changes = {
                    name: value
                    for name, value in values.items()
                    if name != "import_run_id" and existing[name] != value
                }
                if not changes:
                    return UpsertOutcome.SKIPPED
                changes["import_run_id"] = record.import_run_id
                session.execute(
                    job_table.update()
                    .where(job_table.c.id == existing["id"])
                    .values(**changes)
                )
                return UpsertOutcome.UPDATED
        except SQLAlchemyError as exc:
            raise classify_error(exc) from exc

    def _list_engineers(self) -> list[Engineer]:
        statement = select(engineer_table).order_by(engineer_table.c.name)
        try:
            with self.session_factory() as session:
                rows = session.execute(statement).mappings().all()
        except SQLAlchemyError as exc:
            raise classify_error(exc) from exc
        return [Engineer(id=row["id"], name=row["name"], email=row["email"]) for row in rows]

    def _list_external_ids(self, partner_id: str) -> list[str]:
        statement = (
            select(job_table.c.partner_external_id)
            .where(job_table.c.partner_id == partner_id)
            .order_by(job_table.c.partner_external_id)
        )
        try:
            with self.session_factory() as session:
                return list(session.execute(statement).scalars())
        except SQLAlchemyError as exc:
            raise classify_error(exc) from exc

    def add_engineers(self, engineers: Iterable[Engineer]) -> int:
        """Insert or rename engineers; returns how many rows were written."""

        written = 0
        with self.session_factory() as session, session.begin():
            for engineer in engineers:
                current = session.execute(
                    select(engineer_table).where(engineer_table.c.id == engineer.id)
                ).mappings().first()
                values = {"name": engineer.name, "email": engineer.email}
                if current is None:
                    session.execute(engineer_table.insert().values(id=engineer.id, **values))
                elif current["name"] != engineer.name or current["email"] != engineer.email:
                    session.execute(
                        engineer_table.update()
                        .where(engineer_table.c.id == engineer.id)
                        .values(**values)
                    )
                else:
                    continue
                written += 1
        return written


@dataclass(slots=True)
class SqlAlchemyProfileRepository:
    """Stores each profile as a validated JSON document keyed by its id."""

    session_factory: Callable[[], Session]

    def get(self, profile_id: UUID) -> MappingProfile | None:
        with self.session_factory() as session:
            document = session.execute(
                select(mapping_profile_table.c.document).where(
                    mapping_profile_table.c.id == profile_id
                )
            ).scalar_one_or_none()
        return profile_from_json(document) if document is not None else None

    def add(self, profile: MappingProfile) -> None:
        values = {
            "partner_id": profile.partner_id,
            "name": profile.name,
            "document": profile_to_json(profile),
        }
        with self.session_factory() as session, session.begin():
            exists = session.execute(
                select(mapping_profile_table.c.id).where(mapping_profile_table.c.id == profile.id)
            ).first()
            if exists is None:
                session.execute(mapping_profile_table.insert().values(id=profile.id, **values))
            else:
                session.execute(
                    mapping_profile_table.update()
                    .where(mapping_profile_table.c.id == profile.id)
                    .values(**values)
                )
        log.debug(f"Saved mapping profile {profile.name!r} ({profile.id})")

    def remove(self, profile_id: UUID) -> None:
        with self.session_factory() as session, session.begin():
            session.execute(
                delete(mapping_profile_table).where(mapping_profile_table.c.id == profile_id)
            )

    def list(self, *, partner_id: str | None = None) -> Sequence[MappingProfile]:
        statement = select(mapping_profile_table.c.document).order_by(mapping_profile_table.c.name)
        if partner_id is not None:
            statement = statement.where(mapping_profile_table.c.partner_id == partner_id)
        with self.session_factory() as session:
            documents = session.execute(statement).scalars().all()
        return [profile_from_json(document) for document in documents]

