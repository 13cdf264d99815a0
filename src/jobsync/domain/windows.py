"""Utilities for splitting a source into disjoint row windows."""

from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True, slots=True)
class ChunkWindow:
    """Half-open row range ``[start_row, start_row + size)`` over data rows (0-based)."""

    start_row: int
    size: int

    def __post_init__(self) -> None:
        if self.start_row < 0:
            raise ValueError("Window start must be non-negative")
        if self.size <= 0:
            raise ValueError("Window size must be positive")

    def end_row(self, total_rows: int) -> int:
        """Exclusive end of the window, clamped to the source size."""

        return min(self.start_row + self.size, total_rows)

    def has_more(self, total_rows: int) -> bool:
        return self.end_row(total_rows) < total_rows

    def next_start_row(self, total_rows: int) -> int | None:
        return self.end_row(total_rows) if self.has_more(total_rows) else None

    def row_count(self, total_rows: int) -> int:
        return max(0, self.end_row(total_rows) - self.start_row)


@dataclass(frozen=True, slots=True)
class ChunkInfo:
    """Window bookkeeping reported back by one ``run_import`` call."""

    start_row: int
    end_row: int
    processed_count: int
    total_rows: int
    has_more: bool
    next_start_row: int | None

    @classmethod
    def for_window(cls, window: ChunkWindow, *, total_rows: int, processed: int) -> ChunkInfo:
        return cls(
            start_row=window.start_row,
            end_row=window.end_row(total_rows),
            processed_count=processed,
            total_rows=total_rows,
            has_more=window.has_more(total_rows),
            next_start_row=window.next_start_row(total_rows),
        )


def total_chunks(total_rows: int, chunk_size: int) -> int:
    if chunk_size <= 0:
        raise ValueError("Chunk size must be positive")
    return ceil(total_rows / chunk_size) if total_rows > 0 else 0


def iter_windows(total_rows: int, chunk_size: int, *, start_row: int = 0) -> Iterator[ChunkWindow]:
    """Yield consecutive windows covering ``[start_row, total_rows)`` exactly once."""

    cursor = start_row
    while cursor < total_rows:
        yield ChunkWindow(start_row=cursor, size=chunk_size)
        cursor += chunk_size


__all__ = ["ChunkInfo", "ChunkWindow", "iter_windows", "total_chunks"]
