"""Pydantic document used to store and exchange mapping profiles.

Mapping keys and target statuses are validated against the closed
``InternalField``/``JobStatus`` enums when a profile is saved or loaded, so a
typo is rejected here rather than discovered while rows are processed.
"""

from __future__ import annotations

from pathlib import Path
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from jobsync.domain.errors import ConfigurationError
from jobsync.domain.model import InternalField, JobStatus, SourceType
from jobsync.domain.profile import MappingProfile


def _strip_keys[TValue](value: dict[str, TValue]) -> dict[str, TValue]:
    cleaned: dict[str, TValue] = {}
    for key, item in value.items():
        stripped = key.strip()
        if not stripped:
            raise ValueError("mapping keys must not be blank")
        cleaned[stripped] = item
    return cleaned


class ProfileDocument(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(min_length=1)
    partner_id: str = Field(min_length=1)
    partner_name: str | None = None
    source_type: SourceType = SourceType.CSV
    gsheet_id: str | None = None
    gsheet_sheet_name: str | None = None
    is_active: bool = True
    column_mappings: dict[InternalField, str] = Field(default_factory=dict)
    status_mappings: dict[str, JobStatus] = Field(default_factory=dict)
    status_override_rules: dict[str, bool] = Field(default_factory=dict)
    engineer_mappings: dict[str, str] = Field(
        default_factory=dict,
        validation_alias="engineer_mapping_rules",
    )

    @field_validator("column_mappings")
    @classmethod
    def _drop_blank_columns(cls, value: dict[InternalField, str]) -> dict[InternalField, str]:
        return {field: column.strip() for field, column in value.items() if column.strip()}

    @field_validator("status_mappings", "status_override_rules", "engineer_mappings")
    @classmethod
    def _clean_keys(cls, value: dict[str, object]) -> dict[str, object]:
        return _strip_keys(value)

    @classmethod
    def from_profile(cls, profile: MappingProfile) -> ProfileDocument:
        return cls(
            id=profile.id,
            name=profile.name,
            partner_id=profile.partner_id,
            partner_name=profile.partner_name,
            source_type=profile.source_type,
            gsheet_id=profile.gsheet_id,
            gsheet_sheet_name=profile.gsheet_sheet_name,
            is_active=profile.is_active,
            column_mappings=dict(profile.column_mappings),
            status_mappings=dict(profile.status_mappings),
            status_override_rules=dict(profile.status_override_rules),
            engineer_mappings=dict(profile.engineer_mappings),
        )

    def to_profile(self) -> MappingProfile:
        return MappingProfile(
            id=self.id,
            name=self.name,
            partner_id=self.partner_id,
            partner_name=self.partner_name,
            source_type=self.source_type,
            gsheet_id=self.gsheet_id,
            gsheet_sheet_name=self.gsheet_sheet_name,
            is_active=self.is_active,
            column_mappings=dict(self.column_mappings),
            status_mappings=dict(self.status_mappings),
            status_override_rules=dict(self.status_override_rules),
            engineer_mappings=dict(self.engineer_mappings),
        )


def profile_to_json(profile: MappingProfile, *, indent: int | None = None) -> str:
    return ProfileDocument.from_profile(profile).model_dump_json(indent=indent)


def profile_from_json(raw: str | bytes) -> MappingProfile:
    try:
        return ProfileDocument.model_validate_json(raw).to_profile()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid mapping profile: {exc}") from exc


def load_profile_file(path: Path) -> MappingProfile:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read mapping profile {path}: {exc}") from exc
    return profile_from_json(raw)


def save_profile_file(profile: MappingProfile, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(profile_to_json(profile, indent=2) + "\n", encoding="utf-8")


__all__ = [
    "ProfileDocument",
    "load_profile_file",
    "profile_from_json",
    "profile_to_json",
    "save_profile_file",
]
