from __future__ import annotations

import json

import pytest

from jobsync.config import (
    ConfigurationError,
    ImportConfig,
    MissingConfigurationError,
    ServiceAccountKey,
    cache_from_env,
    get_import_config,
    get_sheets_config,
    positive_int_env,
    require_env_vars,
)
from jobsync.config.importer import MAX_PARALLEL_CHUNKS
from jobsync.config.sheets import GOOGLE_TOKEN_URL


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_missing_and_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_positive_int_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHUNKS", raising=False)
    assert positive_int_env("CHUNKS", 7) == 7

    monkeypatch.setenv("CHUNKS", "25")
    assert positive_int_env("CHUNKS", 7) == 25

    monkeypatch.setenv("CHUNKS", "zero")
    with pytest.raises(ConfigurationError, match="must be an integer"):
        positive_int_env("CHUNKS", 7)

    monkeypatch.setenv("CHUNKS", "0")
    with pytest.raises(ConfigurationError, match="must be positive"):
        positive_int_env("CHUNKS", 7)


def test_import_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JOBSYNC_CHUNK_SIZE", "50")
    monkeypatch.setenv("JOBSYNC_PARALLEL_CHUNKS", "3")
    monkeypatch.delenv("JOBSYNC_INLINE_ERROR_LIMIT", raising=False)

    config = get_import_config()

    assert config == ImportConfig(chunk_size=50, parallel_chunks=3, inline_error_limit=10)


def test_import_config_bounds_parallelism() -> None:
    with pytest.raises(ConfigurationError, match="Parallel chunks"):
        ImportConfig(parallel_chunks=MAX_PARALLEL_CHUNKS + 1)


def test_service_account_key_from_json() -> None:
    key = ServiceAccountKey.from_json(
        json.dumps({"client_email": "svc@x.iam.gserviceaccount.com", "private_key": "pem"})
    )

    assert key.client_email == "svc@x.iam.gserviceaccount.com"
    assert key.token_uri == GOOGLE_TOKEN_URL
    assert "pem" not in repr(key)


@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("{not json", "not valid JSON"),
        ("[]", "must be a JSON object"),
        ('{"client_email": "svc@x"}', "private_key"),
    ],
)
def test_service_account_key_rejects_bad_payloads(raw: str, message: str) -> None:
    with pytest.raises(ConfigurationError, match=message):
        ServiceAccountKey.from_json(raw)


def test_sheets_config_prefers_service_account(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "GOOGLE_SERVICE_ACCOUNT_KEY",
        json.dumps({"client_email": "svc@x.iam.gserviceaccount.com", "private_key": "pem"}),
    )
    monkeypatch.setenv("GOOGLE_SHEETS_API_KEY", " api-key ")

    config = get_sheets_config()

    assert config.service_account is not None
    assert config.api_key == "api-key"
    assert config.resilience.name == "google-sheets"


def test_sheets_config_requires_some_credential(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_SHEETS_API_KEY", "  ")

    with pytest.raises(MissingConfigurationError, match="GOOGLE_SHEETS_API_KEY"):
        get_sheets_config()


def test_cache_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JOBSYNC_HTTP_CACHE", "off")
    assert cache_from_env() is None

    monkeypatch.setenv("JOBSYNC_HTTP_CACHE", " SQLite ")
    cache = cache_from_env(bool)
    assert cache is not None
    assert cache.backend == "sqlite"
    assert cache.predicate is bool

    monkeypatch.delenv("JOBSYNC_HTTP_CACHE")
    assert cache_from_env().backend == "memory"  # type: ignore[union-attr]

    monkeypatch.setenv("JOBSYNC_HTTP_CACHE", "redis")
    with pytest.raises(ConfigurationError, match="JOBSYNC_HTTP_CACHE"):
        cache_from_env()
