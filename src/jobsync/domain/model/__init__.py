"""Domain model for partner job imports."""

from __future__ import annotations

from .enums import (
    DEFAULT_JOB_STATUS,
    INSERT_REQUIRED_FIELDS,
    REQUIRED_FIELDS,
    InternalField,
    JobStatus,
    SourceType,
    UpsertOutcome,
)
from .records import Engineer, JobRecord, NormalizedRecord, SourceRow

__all__ = [
    "DEFAULT_JOB_STATUS",
    "INSERT_REQUIRED_FIELDS",
    "REQUIRED_FIELDS",
    "Engineer",
    "InternalField",
    "JobRecord",
    "JobStatus",
    "NormalizedRecord",
    "SourceRow",
    "SourceType",
    "UpsertOutcome",
]
