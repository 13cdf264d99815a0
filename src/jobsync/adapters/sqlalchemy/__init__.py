"""SQLAlchemy adapter package for jobsync."""

from __future__ import annotations

from .mappings import (
    create_all_tables,
    engineer_table,
    job_table,
    mapper_registry,
    mapping_profile_table,
)
from .repositories import SqlAlchemyJobStore, SqlAlchemyProfileRepository, classify_error
from .unit_of_work import (
    StartupError,
    is_started,
    job_store,
    profile_repository,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyJobStore",
    "SqlAlchemyProfileRepository",
    "StartupError",
    "classify_error",
    "create_all_tables",
    "engineer_table",
    "is_started",
    "job_store",
    "job_table",
    "mapper_registry",
    "mapping_profile_table",
    "profile_repository",
    "shutdown",
    "startup",
]
