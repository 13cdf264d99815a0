from __future__ import annotations

import pytest

from jobsync.domain.errors import ConfigurationError
from jobsync.domain.model import Engineer, InternalField, JobStatus
from jobsync.domain.profile import MappingProfile


def _profile() -> MappingProfile:
    return MappingProfile(name="Acme", partner_id="acme")


def test_set_column_mapping_trims_and_removes_blank_columns() -> None:
    profile = _profile()

    profile.set_column_mapping("partner_external_id", "  Order Ref ")
    assert profile.column_for(InternalField.PARTNER_EXTERNAL_ID) == "Order Ref"

    profile.set_column_mapping(InternalField.PARTNER_EXTERNAL_ID, "   ")
    assert profile.column_for(InternalField.PARTNER_EXTERNAL_ID) is None


def test_set_column_mapping_rejects_unknown_field() -> None:
    with pytest.raises(ConfigurationError, match="Unknown internal field"):
        _profile().set_column_mapping("favourite_colour", "Colour")


def test_status_translation_is_exact_then_case_insensitive() -> None:
    profile = _profile()
    profile.add_status_mapping("Booked", "scheduled")
    profile.add_status_mapping("booked", JobStatus.IN_PROGRESS)

    assert profile.translate_status("booked") is JobStatus.IN_PROGRESS
    assert profile.translate_status("Booked") is JobStatus.SCHEDULED
    assert profile.translate_status("  BOOKED ") is JobStatus.SCHEDULED
    assert profile.translate_status("Cancelled") is None


def test_add_status_mapping_rejects_unknown_status_and_blank_key() -> None:
    profile = _profile()

    with pytest.raises(ConfigurationError, match="Unknown internal status"):
        profile.add_status_mapping("Booked", "teleported")
    with pytest.raises(ConfigurationError):
        profile.add_status_mapping("  ", JobStatus.SCHEDULED)


def test_override_rules_round_trip() -> None:
    profile = _profile()
    profile.add_override_rule("On Hold", suppress=True)
    profile.add_override_rule("Released", suppress=False)

    assert profile.override_for("on hold") is True
    assert profile.override_for("Released") is False
    assert profile.override_for("Booked") is None

    profile.remove_override_rule("On Hold")
    assert profile.override_for("On Hold") is None


def test_engineer_mapping_and_removal() -> None:
    profile = _profile()
    profile.add_engineer_mapping(" J. Smith ", "eng-1")

    assert profile.resolve_engineer("j. smith") == "eng-1"
    profile.remove_engineer_mapping("J. Smith")
    assert profile.resolve_engineer("J. Smith") is None


def test_bulk_auto_match_maps_only_matching_identifiers() -> None:
    profile = _profile()
    profile.add_engineer_mapping("Already Mapped", "eng-9")
    engineers = [
        Engineer(id="eng-1", name="John Smith"),
        Engineer(id="eng-2", name="Priya"),
        Engineer(id="eng-3", name="   "),
    ]

    matched = profile.bulk_auto_match_engineers(
        ["smith", "Priya Patel", "Nobody", "Already Mapped", ""],
        engineers,
    )

    assert matched == 2
    assert profile.resolve_engineer("smith") == "eng-1"
    assert profile.resolve_engineer("Priya Patel") == "eng-2"
    assert profile.resolve_engineer("Nobody") is None
    assert profile.resolve_engineer("Already Mapped") == "eng-9"


def test_validate_for_run_requires_id_and_status_columns() -> None:
    profile = _profile()
    profile.set_column_mapping(InternalField.PARTNER_EXTERNAL_ID, "Order Ref")

    with pytest.raises(ConfigurationError, match="partner_status"):
        profile.validate_for_run()

    profile.set_column_mapping(InternalField.PARTNER_STATUS, "Status")
    profile.validate_for_run()


def test_duplicate_is_inactive_and_independent() -> None:
    profile = _profile()
    profile.add_status_mapping("Booked", JobStatus.SCHEDULED)

    copy = profile.duplicate()
    copy.add_status_mapping("Done", JobStatus.COMPLETED)

    assert copy.id != profile.id
    assert copy.name == "Acme (Copy)"
    assert copy.is_active is False
    assert profile.is_active is True
    assert profile.translate_status("Done") is None
    assert copy.translate_status("Booked") is JobStatus.SCHEDULED
