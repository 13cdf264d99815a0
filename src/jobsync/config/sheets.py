"""Google Sheets configuration values."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CachePredicate, RateLimit, ResilienceConfig, cache_from_env

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4/"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"
SHEETS_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class ServiceAccountKey:
    """The fields of a Google service-account JSON key used for token exchange."""

    client_email: str
    private_key: str = field(repr=False)
    private_key_id: str | None = None
    token_uri: str = GOOGLE_TOKEN_URL

    @classmethod
    def from_json(cls, raw: str) -> ServiceAccountKey:
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_KEY is not valid JSON") from exc
        if not isinstance(payload, dict):
            raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_KEY must be a JSON object")
        try:
            return cls(
                client_email=payload["client_email"],
                private_key=payload["private_key"],
                private_key_id=payload.get("private_key_id"),
                token_uri=payload.get("token_uri") or GOOGLE_TOKEN_URL,
            )
        except KeyError as exc:
            raise ConfigurationError(
                f"GOOGLE_SERVICE_ACCOUNT_KEY is missing {exc.args[0]!r}"
            ) from exc


@dataclass(frozen=True)
class SheetsConfig:
    """Holds Google Sheets API configuration values.

    Exactly one of ``service_account`` and ``api_key`` is normally set; the
    service account wins when both are.
    """

    resilience: ResilienceConfig
    service_account: ServiceAccountKey | None = None
    api_key: str | None = field(default=None, repr=False)


def _cache_spreadsheet_metadata(payload: object) -> bool:
    """Only spreadsheet metadata is cached; cell values must be read fresh."""

    return isinstance(payload, dict) and "sheets" in payload


def default_sheets_resilience(cache_predicate: CachePredicate | None = None) -> ResilienceConfig:
    return ResilienceConfig(
        name="google-sheets",
        base_url=SHEETS_BASE_URL,
        timeout_seconds=SHEETS_TIMEOUT_SECONDS,
        ratelimit=RateLimit(requests=5, period_seconds=1.0),
        cache=cache_from_env(cache_predicate or _cache_spreadsheet_metadata),
    )


def get_sheets_config(*, resilience: ResilienceConfig | None = None) -> SheetsConfig:
    raw_key = os.getenv("GOOGLE_SERVICE_ACCOUNT_KEY")
    api_key = os.getenv("GOOGLE_SHEETS_API_KEY")
    service_account = ServiceAccountKey.from_json(raw_key) if raw_key and raw_key.strip() else None
    if service_account is None and not (api_key and api_key.strip()):
        raise MissingConfigurationError(
            "Missing configuration for: GOOGLE_SERVICE_ACCOUNT_KEY or GOOGLE_SHEETS_API_KEY"
        )
    return SheetsConfig(
        resilience=resilience or default_sheets_resilience(),
        service_account=service_account,
        api_key=api_key.strip() if api_key and api_key.strip() else None,
    )
