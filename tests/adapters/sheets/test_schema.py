from __future__ import annotations

from jobsync.adapters.sheets import SpreadsheetMetadata, ValueRange
from jobsync.adapters.sheets.schema import ErrorResponse


def test_value_range_turns_cells_into_text() -> None:
    payload = ValueRange.model_validate(
        {"range": "A1:C2", "values": [["Ref", "Qty", None], [1, 2.5, True]], "extra": 1}
    )

    assert payload.major_dimension == "ROWS"
    assert payload.values == [["Ref", "Qty", ""], ["1", "2.5", "True"]]


def test_value_range_without_values_is_empty() -> None:
    assert ValueRange.model_validate({"range": "Sheet1!A:ZZ"}).values == []


def test_spreadsheet_metadata_titles() -> None:
    metadata = SpreadsheetMetadata.model_validate(
        {"spreadsheetId": "abc", "sheets": [{"properties": {"title": "Jobs", "sheetId": 7}}]}
    )

    assert metadata.spreadsheet_id == "abc"
    assert metadata.titles == ["Jobs"]
    assert metadata.sheets[0].properties.sheet_id == 7


def test_error_response_messages() -> None:
    api_error = ErrorResponse.model_validate(
        {"error": {"code": 403, "message": "The caller does not have permission"}}
    )
    oauth_error = ErrorResponse.model_validate({"error": "invalid_grant"})

    assert api_error.message == "The caller does not have permission"
    assert oauth_error.message == "invalid_grant"
