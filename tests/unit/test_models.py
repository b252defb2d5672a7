"""Unit tests for the shared domain types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from firebase_provisioner.models import (
    AppConfig,
    Failure,
    ProvisioningRequest,
    ProvisioningWarning,
    Success,
    utc_now_iso,
)

FULL = {
    "apiKey": "AIzaKey",
    "authDomain": "demo.firebaseapp.com",
    "projectId": "demo",
    "storageBucket": "demo.appspot.com",
    "messagingSenderId": "42",
    "appId": "1:42:web:abc",
}


class TestAppConfig:
    def test_from_mapping_reads_camel_case(self):
        config = AppConfig.from_mapping(FULL)
        assert config.api_key == "AIzaKey"
        assert config.project_id == "demo"
        assert config.messaging_sender_id == "42"
        assert config.measurement_id is None

    def test_to_dict_round_trips_wire_keys(self):
        assert AppConfig.from_mapping(FULL).to_dict() == FULL

    def test_measurement_id_kept_when_set(self):
        config = AppConfig.from_mapping({**FULL, "measurementId": "G-123"})
        assert config.to_dict()["measurementId"] == "G-123"

    def test_empty_measurement_id_dropped(self):
        config = AppConfig.from_mapping({**FULL, "measurementId": ""})
        assert "measurementId" not in config.to_dict()

    def test_none_values_become_empty(self):
        config = AppConfig.from_mapping({**FULL, "messagingSenderId": None})
        assert config.messaging_sender_id == ""

    def test_unknown_keys_ignored(self):
        config = AppConfig.from_mapping({**FULL, "databaseURL": "https://x"})
        assert "databaseURL" not in config.to_dict()

    def test_missing_fields_in_declared_order(self):
        config = AppConfig.from_mapping({"apiKey": "k", "projectId": "p"})
        assert config.missing_fields() == ["authDomain", "storageBucket", "appId"]
        assert not config.is_valid

    def test_messaging_sender_id_not_mandatory(self):
        config = AppConfig.from_mapping({**FULL, "messagingSenderId": ""})
        assert config.is_valid

    def test_populate_by_field_name(self):
        config = AppConfig(api_key="k", project_id="p")
        assert config.to_dict()["apiKey"] == "k"

    def test_frozen(self):
        config = AppConfig.from_mapping(FULL)
        with pytest.raises(ValidationError):
            config.api_key = "other"  # type: ignore[misc]


class TestProvisioningRequest:
    def test_requires_requester_id(self):
        with pytest.raises(ValueError, match="requester_id"):
            ProvisioningRequest(requester_id="")

    def test_display_name_optional(self):
        assert ProvisioningRequest(requester_id="u1").display_name == ""


class TestResults:
    def test_success_without_warnings_is_not_degraded(self):
        result = Success(project_id="p", config=AppConfig.from_mapping(FULL))
        assert not result.degraded

    def test_success_with_warnings_is_degraded(self):
        result = Success(
            project_id="p",
            config=AppConfig.from_mapping(FULL),
            warnings=[ProvisioningWarning(step="rules", message="403")],
        )
        assert result.degraded
        assert result.warnings[0].to_dict() == {"step": "rules", "message": "403"}

    def test_failure_defaults_to_fatal(self):
        failure = Failure(reason="project-create-failed")
        assert failure.is_fatal
        assert failure.detail is None


def test_utc_now_iso_uses_z_suffix():
    assert utc_now_iso().endswith("Z")
