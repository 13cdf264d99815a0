"""Domain port definitions for adapters."""

from __future__ import annotations

from .profiles import ProfileRepository
from .sources import RowBatch, RowSource, SourceDescriptor, slice_rows
from .store import JobStore

__all__ = [
    "JobStore",
    "ProfileRepository",
    "RowBatch",
    "RowSource",
    "SourceDescriptor",
    "slice_rows",
]
