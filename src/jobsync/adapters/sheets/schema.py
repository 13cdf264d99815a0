"""Pydantic models describing the Google Sheets and OAuth payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SheetsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SheetProperties(SheetsBaseModel):
    title: str
    sheet_id: int | None = Field(default=None, alias="sheetId")


class SheetEntry(SheetsBaseModel):
    properties: SheetProperties


class SpreadsheetMetadata(SheetsBaseModel):
    spreadsheet_id: str | None = Field(default=None, alias="spreadsheetId")
    sheets: list[SheetEntry] = Field(default_factory=list[SheetEntry])

    @property
    def titles(self) -> list[str]:
        return [entry.properties.title for entry in self.sheets]


class ValueRange(SheetsBaseModel):
    range: str | None = None
    major_dimension: str = Field(default="ROWS", alias="majorDimension")
    values: list[list[str]] = Field(default_factory=list[list[str]])

    @field_validator("values", mode="before")
    @classmethod
    def _cells_to_text(cls, value: object) -> object:
        if not isinstance(value, list):
            return value
        rows: list[list[str]] = []
        for row in value:
            if isinstance(row, list):
                rows.append(["" if cell is None else str(cell) for cell in row])
        return rows


class TokenResponse(SheetsBaseModel):
    access_token: str
    expires_in: int = 3600
    token_type: str = "Bearer"


class ErrorDetail(SheetsBaseModel):
    code: int | None = None
    message: str | None = None
    status: str | None = None


class ErrorResponse(SheetsBaseModel):
    error: ErrorDetail | str
    error_description: str | None = None

    @property
    def message(self) -> str:
        if isinstance(self.error, ErrorDetail):
            return self.error.message or self.error.status or "unknown error"
        return self.error_description or self.error
