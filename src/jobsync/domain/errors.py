"""Error hierarchy for partner imports.

Run-level errors propagate to the caller, chunk-level errors are recorded in
the run summary and row-level errors are turned into decisions by the
reconciliation engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class PartnerImportError(RuntimeError):
    """Base class for all partner import failures."""


class ConfigurationError(PartnerImportError):
    """Raised when mapping or run configuration makes a run impossible."""


class SourceAccessError(PartnerImportError):
    """Raised when the row source cannot be read.

    ``hint`` carries an actionable remediation for the operator instead of the
    raw transport error.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        message = super().__str__()
        if self.hint:
            return f"{message} {self.hint}"
        return message


class SourceNotFoundError(SourceAccessError):
    """The source document or sheet does not exist."""


class SourceAccessDeniedError(SourceAccessError):
    """The configured credentials may not read the source."""


class SourceUnavailableError(SourceAccessError):
    """The source service is unreachable or failing."""


class UnmappedEngineerError(PartnerImportError):
    """Raised by the gate while engineer identifiers remain unresolved."""

    def __init__(self, identifiers: Iterable[str]) -> None:
        self.identifiers: tuple[str, ...] = tuple(sorted(set(identifiers)))
        super().__init__(
            f"{len(self.identifiers)} unmapped engineer(s): {', '.join(self.identifiers)}"
        )


class RowValidationError(PartnerImportError):
    """Raised when a single source row is malformed or misses required data."""

    def __init__(self, message: str, *, row_index: int) -> None:
        super().__init__(message)
        self.row_index = row_index


class StoreError(PartnerImportError):
    """Base class for destination store failures."""


class StoreWriteError(StoreError):
    """A single write was rejected by the destination store."""


class DuplicateRecordError(StoreError):
    """The store refused a write because the external id already exists."""


class TransientBackendError(StoreError):
    """Timeout or throttling at the destination store; aborts the current chunk."""


class ImportCancelledError(PartnerImportError):
    """Raised or recorded when an operator cancels a running import."""

    def __init__(self, message: str = "Import was cancelled by user") -> None:
        super().__init__(message)
