"""SQLAlchemy table metadata for jobs, engineers and mapping profiles."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)

from jobsync.domain.model import JobStatus

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}

engineer_table = Table(
    "engineer",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("name", String, nullable=False),
    Column("email", String, nullable=True),
)

job_table = Table(
    "job",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("partner_id", String, nullable=False),
    Column("partner_external_id", String, nullable=False),
    Column(
        "status",
        Enum(JobStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    ),
    Column("partner_status", String, nullable=True),
    Column("suppress_scheduling", Boolean, nullable=False, default=False),
    Column("engineer_id", String, nullable=True),
    Column("scheduled_date", Date, nullable=True),
    Column("sub_partner", String, nullable=True),
    Column("partner_external_url", String, nullable=True),
    Column("client_name", String, nullable=True),
    Column("client_email", String, nullable=True),
    Column("client_phone", String, nullable=True),
    Column("job_address", String, nullable=True),
    Column("postcode", String, nullable=True),
    Column("import_run_id", String, nullable=True),
    Column("created_at", UTCDateTime(), nullable=False, default=utcnow),
    Column("updated_at", UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow),
    UniqueConstraint("partner_id", "partner_external_id"),
)

mapping_profile_table = Table(
    "mapping_profile",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True),
    Column("partner_id", String, nullable=False, index=True),
    Column("name", String, nullable=False),
    Column("document", Text, nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False, default=utcnow, onupdate=utcnow),
)

# columns copied verbatim between JobRecord and the job table
JOB_COLUMNS: tuple[str, ...] = (
    "partner_id",
    "partner_external_id",
    "status",
    "partner_status",
    "suppress_scheduling",
    "engineer_id",
    "scheduled_date",
    "sub_partner",
    "partner_external_url",
    "client_name",
    "client_email",
    "client_phone",
    "job_address",
    "postcode",
    "import_run_id",
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the registered metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
