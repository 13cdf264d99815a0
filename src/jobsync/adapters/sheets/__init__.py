"""Public interface for the Google Sheets adapter."""

from __future__ import annotations

from .auth import ServiceAccountTokenProvider
from .client import GoogleSheetsRowSource, quote_sheet_name, resolve_sheet_title
from .schema import SpreadsheetMetadata, TokenResponse, ValueRange

__all__ = [
    "GoogleSheetsRowSource",
    "ServiceAccountTokenProvider",
    "SpreadsheetMetadata",
    "TokenResponse",
    "ValueRange",
    "quote_sheet_name",
    "resolve_sheet_title",
]
