"""Row source reading a Google Sheet through the Sheets v4 API."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from jobsync.adapters.http_resilience import ResilientClient
from jobsync.config.sheets import SHEETS_BASE_URL, SheetsConfig, get_sheets_config
from jobsync.domain.errors import (
    ConfigurationError,
    SourceAccessDeniedError,
    SourceAccessError,
    SourceNotFoundError,
    SourceUnavailableError,
)
from jobsync.domain.model import SourceType
from jobsync.domain.ports import slice_rows

from .auth import ServiceAccountTokenProvider
from .schema import ErrorResponse, SpreadsheetMetadata, ValueRange

if TYPE_CHECKING:
    from collections.abc import Callable

    from jobsync.config.http_resilience import ResilienceConfig
    from jobsync.domain.ports import RowBatch, SourceDescriptor

log = getLogger(__name__)

DEFAULT_COLUMN_SPAN = "A:ZZ"


def quote_sheet_name(name: str) -> str:
    """Quote a sheet title for use in an A1 range when it contains spaces or quotes."""

    if " " in name or "'" in name:
        return "'" + name.replace("'", "''") + "'"
    return name


def resolve_sheet_title(requested: str | None, available: list[str]) -> str:
    """Match ``requested`` against the spreadsheet's tabs, ignoring case.

    Without a requested name the first tab is used.
    """

    if not available:
        raise SourceNotFoundError("Spreadsheet has no sheets", hint="Check the Sheet ID.")
    if not requested:
        return available[0]
    if requested in available:
        return requested
    folded = requested.strip().casefold()
    for title in available:
        if title.casefold() == folded:
            log.info(f"Using sheet {title!r} for requested name {requested!r}")
            return title
    raise SourceNotFoundError(
        f"Sheet {requested!r} not found. Available sheets: {', '.join(available)}",
        hint="Update the sheet name in the import profile.",
    )


@dataclass(frozen=True, slots=True)
class SheetSnapshot:
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class GoogleSheetsRowSource:
    """Serve windows of a Google Sheet from a snapshot taken on first read."""

    config: SheetsConfig = field(default_factory=get_sheets_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _snapshots: dict[tuple[str, str | None], SheetSnapshot] = field(default_factory=dict)
    _token_provider: ServiceAccountTokenProvider | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.config.service_account is not None:
            self._token_provider = ServiceAccountTokenProvider(self.config.service_account)

    async def fetch(
        self,
        descriptor: SourceDescriptor,
        start_row: int,
        max_rows: int,
    ) -> RowBatch:
        snapshot = await self._snapshot(descriptor)
        return slice_rows(snapshot.headers, snapshot.rows, start_row, max_rows)

    def forget(self, descriptor: SourceDescriptor) -> None:
        self._snapshots.pop((descriptor.gsheet_id or "", descriptor.gsheet_sheet_name), None)

    async def _snapshot(self, descriptor: SourceDescriptor) -> SheetSnapshot:
        if descriptor.source_type is not SourceType.GSHEET:
            raise ConfigurationError(
                f"Google Sheets reader cannot read {descriptor.source_type} sources"
            )
        if not descriptor.gsheet_id:
            raise ConfigurationError("Google Sheet ID is not configured for this profile")

        key = (descriptor.gsheet_id, descriptor.gsheet_sheet_name)
        cached = self._snapshots.get(key)
        if cached is not None:
            return cached

        async with self.client_factory(self.config.resilience) as client:
            headers = await self._auth_headers(client)
            metadata = await self._get_metadata(client, descriptor.gsheet_id, headers)
            title = resolve_sheet_title(descriptor.gsheet_sheet_name, metadata.titles)
            values = await self._get_values(client, descriptor.gsheet_id, title, headers)

        if not values.values:
            snapshot = SheetSnapshot(headers=(), rows=())
        else:
            header_row, *data_rows = values.values
            snapshot = SheetSnapshot(
                headers=tuple(cell.strip() for cell in header_row),
                rows=tuple(tuple(row) for row in data_rows if any(cell.strip() for cell in row)),
            )
        log.info(
            f"Loaded sheet {title!r} of {descriptor.gsheet_id}: {len(snapshot.rows)} data rows"
        )
        self._snapshots[key] = snapshot
        return snapshot

    async def _auth_headers(self, client: ResilientClient) -> dict[str, str]:
        if self._token_provider is None:
            return {}
        token = await self._token_provider.access_token(client)
        return {"Authorization": f"Bearer {token}"}

    def _params(self) -> dict[str, str] | None:
        if self._token_provider is None and self.config.api_key:
            return {"key": self.config.api_key}
        return None

    def _base_url(self) -> str:
        return self.config.resilience.base_url or SHEETS_BASE_URL

    async def _get_metadata(
        self,
        client: ResilientClient,
        sheet_id: str,
        headers: dict[str, str],
    ) -> SpreadsheetMetadata:
        url = f"{self._base_url()}spreadsheets/{quote(sheet_id, safe='')}"
        params = {"fields": "spreadsheetId,sheets.properties"} | (self._params() or {})
        response = await self._request(client, url, headers=headers, params=params)
        try:
            return SpreadsheetMetadata.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SourceUnavailableError("Unexpected spreadsheet metadata payload") from exc

    async def _get_values(
        self,
        client: ResilientClient,
        sheet_id: str,
        title: str,
        headers: dict[str, str],
    ) -> ValueRange:
        a1_range = f"{quote_sheet_name(title)}!{DEFAULT_COLUMN_SPAN}"
        url = f"{self._base_url()}spreadsheets/{quote(sheet_id, safe='')}/values/{quote(a1_range, safe='')}"
        response = await self._request(client, url, headers=headers, params=self._params())
        try:
            return ValueRange.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise SourceUnavailableError("Unexpected sheet values payload") from exc

    async def _request(
        self,
        client: ResilientClient,
        url: str,
        *,
        headers: dict[str, str],
        params: dict[str, str] | None,
    ) -> httpx.Response:
        try:
            response = await client.get(url, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise SourceUnavailableError(
                f"Could not reach Google Sheets: {exc}",
                hint="Try again later.",
            ) from exc
        if response.status_code < 400:
            return response
        raise self._classify(response)

    def _classify(self, response: httpx.Response) -> SourceAccessError:
        status = response.status_code
        log.error(f"Google Sheets API returned HTTP {status}")
        if status == 404:
            return SourceNotFoundError(
                "Google Sheet not found.",
                hint="Please check the Sheet ID and ensure the sheet exists.",
            )
        if status in {401, 403}:
            account = self.config.service_account
            hint = (
                f"Please share the sheet with the service account email: {account.client_email}"
                if account is not None
                else "Please make the sheet readable with the configured API key."
            )
            return SourceAccessDeniedError("Access denied to Google Sheet.", hint=hint)
        try:
            message = ErrorResponse.model_validate(response.json()).message
        except (ValueError, ValidationError):
            message = f"HTTP {status}"
        return SourceUnavailableError(f"Failed to fetch Google Sheets data: {message}")
