"""Row source reading delimited text uploads."""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from jobsync.domain.errors import ConfigurationError, SourceAccessError, SourceNotFoundError
from jobsync.domain.model import SourceType
from jobsync.domain.ports import slice_rows

if TYPE_CHECKING:
    from jobsync.domain.ports import RowBatch, SourceDescriptor

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvSnapshot:
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


def parse_csv(text: str, *, delimiter: str | None = None) -> CsvSnapshot:
    """Parse ``text`` into trimmed headers and data rows.

    The first non-blank line is the header row; rows whose cells are all
    blank are dropped. Without an explicit delimiter the most frequent of
    comma, semicolon, tab and pipe in the header line is used.
    """

    stripped = text.lstrip("\ufeff")
    if delimiter is None:
        delimiter = _guess_delimiter(stripped)

    reader = csv.reader(io.StringIO(stripped), delimiter=delimiter)
    headers: tuple[str, ...] | None = None
    rows: list[tuple[str, ...]] = []
    for record in reader:
        cells = tuple(cell.strip() for cell in record)
        if not any(cells):
            continue
        if headers is None:
            headers = cells
            continue
        rows.append(cells)

    if headers is None:
        raise ConfigurationError("CSV source has no header row")
    return CsvSnapshot(headers=headers, rows=tuple(rows))


_DELIMITERS = (",", ";", "\t", "|")


def _guess_delimiter(text: str) -> str:
    header_line = next((line for line in text.splitlines() if line.strip()), "")
    counts = {candidate: header_line.count(candidate) for candidate in _DELIMITERS}
    best = max(_DELIMITERS, key=lambda candidate: counts[candidate])
    return best if counts[best] else ","


@dataclass(slots=True)
class CsvRowSource:
    """Serve windows of a CSV upload from a snapshot taken on first read."""

    delimiter: str | None = None
    _snapshots: dict[SourceDescriptor, CsvSnapshot] = field(default_factory=dict)

    async def fetch(
        self,
        descriptor: SourceDescriptor,
        start_row: int,
        max_rows: int,
    ) -> RowBatch:
        snapshot = self._snapshot(descriptor)
        return slice_rows(snapshot.headers, snapshot.rows, start_row, max_rows)

    def forget(self, descriptor: SourceDescriptor) -> None:
        self._snapshots.pop(descriptor, None)

    def _snapshot(self, descriptor: SourceDescriptor) -> CsvSnapshot:
        cached = self._snapshots.get(descriptor)
        if cached is not None:
            return cached
        if descriptor.source_type is not SourceType.CSV:
            raise ConfigurationError(f"CSV reader cannot read {descriptor.source_type} sources")

        snapshot = parse_csv(self._read_text(descriptor), delimiter=self.delimiter)
        log.info(f"Loaded CSV source: {len(snapshot.rows)} data rows, {len(snapshot.headers)} columns")
        self._snapshots[descriptor] = snapshot
        return snapshot

    @staticmethod
    def _read_text(descriptor: SourceDescriptor) -> str:
        if descriptor.csv_data is not None:
            return descriptor.csv_data
        if descriptor.csv_path is None:
            raise ConfigurationError("CSV source needs either inline data or a file path")
        path = descriptor.csv_path
        try:
            return path.read_text(encoding="utf-8-sig")
        except FileNotFoundError as exc:
            raise SourceNotFoundError(
                f"CSV file not found: {path}",
                hint="Check the path and try again.",
            ) from exc
        except OSError as exc:
            raise SourceAccessError(
                f"Could not read CSV file {path}: {exc}",
                hint="Check the file permissions.",
            ) from exc
