"""Run tuning for chunked imports."""

from __future__ import annotations

from dataclasses import dataclass

from jobsync.domain.data_integration import DEFAULT_CHUNK_SIZE
from jobsync.domain.summary import DEFAULT_INLINE_ERROR_LIMIT

from .env import positive_int_env
from .errors import ConfigurationError

MAX_PARALLEL_CHUNKS = 8


@dataclass(frozen=True, slots=True)
class ImportConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    parallel_chunks: int = 1
    inline_error_limit: int = DEFAULT_INLINE_ERROR_LIMIT

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ConfigurationError("Chunk size must be positive")
        if not 1 <= self.parallel_chunks <= MAX_PARALLEL_CHUNKS:
            raise ConfigurationError(
                f"Parallel chunks must be between 1 and {MAX_PARALLEL_CHUNKS}"
            )


def get_import_config() -> ImportConfig:
    return ImportConfig(
        chunk_size=positive_int_env("JOBSYNC_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
        parallel_chunks=positive_int_env("JOBSYNC_PARALLEL_CHUNKS", 1),
        inline_error_limit=positive_int_env(
            "JOBSYNC_INLINE_ERROR_LIMIT", DEFAULT_INLINE_ERROR_LIMIT
        ),
    )
