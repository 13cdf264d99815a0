"""Ports for reading partner rows from an external tabular source."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from jobsync.domain.model import SourceRow, SourceType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from jobsync.domain.profile import MappingProfile


@dataclass(frozen=True, slots=True, kw_only=True)
class SourceDescriptor:
    """Where the rows of one run come from.

    CSV sources carry their text inline or a path to read it from; spreadsheet
    sources carry the sheet id and tab name.
    """

    source_type: SourceType
    csv_data: str | None = field(default=None, repr=False)
    csv_path: Path | None = None
    gsheet_id: str | None = None
    gsheet_sheet_name: str | None = None

    @classmethod
    def for_profile(
        cls,
        profile: MappingProfile,
        *,
        csv_data: str | None = None,
        csv_path: Path | None = None,
    ) -> SourceDescriptor:
        """Build a descriptor for ``profile``; inline CSV data wins over the profile sheet."""

        if csv_data is not None or csv_path is not None:
            return cls(source_type=SourceType.CSV, csv_data=csv_data, csv_path=csv_path)
        return cls(
            source_type=profile.source_type,
            gsheet_id=profile.gsheet_id,
            gsheet_sheet_name=profile.gsheet_sheet_name,
        )


@dataclass(frozen=True, slots=True)
class RowBatch:
    """A window of source rows plus the size of the whole source."""

    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    total_rows: int
    start_row: int = 0

    def source_rows(self) -> list[SourceRow]:
        """Pair every cell with its header; ``row_index`` is 1-based over data rows."""

        result: list[SourceRow] = []
        for offset, cells in enumerate(self.rows):
            values = {
                header: (cells[position].strip() if position < len(cells) else "")
                for position, header in enumerate(self.headers)
            }
            result.append(SourceRow(row_index=self.start_row + offset + 1, values=values))
        return result


@runtime_checkable
class RowSource(Protocol):
    """Windowed, stable access to the rows of a partner source.

    Implementations must return the same ``total_rows`` and the same row at a
    given index for repeated calls within one run, and raise
    ``SourceAccessError`` subclasses with a remediation hint on failure.
    """

    async def fetch(
        self,
        descriptor: SourceDescriptor,
        start_row: int,
        max_rows: int,
    ) -> RowBatch: ...


def slice_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    start_row: int,
    max_rows: int,
) -> RowBatch:
    """Cut a ``RowBatch`` out of a fully loaded snapshot."""

    if start_row < 0 or max_rows < 0:
        raise ValueError("start_row and max_rows must be non-negative")
    window = rows[start_row : start_row + max_rows]
    return RowBatch(
        headers=tuple(headers),
        rows=tuple(tuple(cell for cell in row) for row in window),
        total_rows=len(rows),
        start_row=start_row,
    )
