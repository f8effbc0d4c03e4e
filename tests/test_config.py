"""
Tests for configuration module.
"""

import json
from pathlib import Path

import pytest

from avcimporter.config import (
    Settings,
    apply_env_overrides,
    apply_overrides,
    load_override_file,
    load_settings,
    non_empty_fields,
    parse_set_expressions,
    resolve_integration,
)
from avcimporter.models import Integration, Ordering
from avcimporter.utils.errors import (
    ConfigurationError,
    InvalidConfigurationError,
    MissingConfigurationError,
)


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


EDI_READY = {
    "active": True,
    "host": "sftp.example.com",
    "downloadUsername": "dl",
    "privateKeyPath": "~/.ssh/id_rsa",
    "senderId": "VENDORXYZ",
}

API_READY = {
    "active": True,
    "auth": {"clientId": "cid", "clientSecret": "secret", "refreshToken": "rt"},
}


class TestSettings:
    """Test the Settings configuration class."""

    def test_default_settings(self):
        """Test default settings initialization."""
        settings = Settings()

        assert settings.api.active is False
        assert settings.api.base_url == "https://sellingpartnerapi-na.amazon.com"
        assert settings.api.ordering is Ordering.LEXICAL
        assert settings.edi.port == 22
        assert settings.edi.inbound_dir == "download"
        assert settings.edi.outbound_dir == "upload"
        assert settings.edi.partner_id == "AMAZON"
        assert settings.storage.output_format == "json"
        assert settings.storage.save_path == Path("output/")
        assert settings.storage.file_name == "data_dump"
        assert settings.logging.level == "INFO"

    def test_camel_case_keys(self):
        """Test the file format's camelCase keys populate snake_case fields."""
        settings = Settings.model_validate(
            {"edi": {"downloadUsername": "dl", "senderId": "S"}, "storage": {"savePath": "data"}}
        )

        assert settings.edi.download_username == "dl"
        assert settings.edi.sender_id == "S"
        assert settings.storage.save_path == Path("data")

    def test_empty_strings_use_defaults(self):
        """Test empty values are completed with defaults."""
        settings = Settings.model_validate(
            {"api": {"baseUrl": ""}, "storage": {"outputFormat": "", "savePath": "", "fileName": ""}}
        )

        assert settings.api.base_url == "https://sellingpartnerapi-na.amazon.com"
        assert settings.storage.output_format == "json"
        assert settings.storage.save_path == Path("output/")
        assert settings.storage.file_name == "data_dump"

    def test_unknown_keys_ignored(self):
        """Test extra keys in the file do not fail validation."""
        settings = Settings.model_validate({"comment": "x", "edi": {"legacyField": 1}})
        assert settings.edi.host == ""

    def test_checkpoint_dir(self):
        """Test the checkpoint lives in the storage directory."""
        settings = Settings.model_validate({"storage": {"savePath": "data"}})
        assert settings.checkpoint_dir == Path("data")


class TestLoadSettings:
    """Test reading the config file."""

    def test_load_file(self, tmp_path):
        """Test a valid file loads."""
        path = write_config(tmp_path, {"version": "1.0", "edi": {"host": "h", "port": 2222}})
        settings = load_settings(path)

        assert settings.version == "1.0"
        assert settings.edi.host == "h"
        assert settings.edi.port == 2222

    def test_missing_file(self, tmp_path):
        """Test a missing file raises a configuration error."""
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_settings(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises a configuration error."""
        path = tmp_path / "config.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_not_an_object(self, tmp_path):
        """Test a JSON array is rejected."""
        path = write_config(tmp_path, [1, 2])
        with pytest.raises(InvalidConfigurationError):
            load_settings(path)

    def test_invalid_value(self, tmp_path):
        """Test field validation errors are reported."""
        path = write_config(tmp_path, {"edi": {"port": 0}})
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_settings(path)

        assert any("edi.port" in e for e in exc_info.value.details["errors"])

    @pytest.mark.parametrize("sender_id", ["VENDÖR", "VEND*OR", "VEND~OR", "VEND>OR"])
    def test_invalid_sender_id(self, tmp_path, sender_id):
        """Test sender IDs that cannot be written into an envelope are rejected."""
        path = write_config(tmp_path, {"edi": {"senderId": sender_id}})
        with pytest.raises(InvalidConfigurationError) as exc_info:
            load_settings(path)

        assert any("edi.senderId" in e for e in exc_info.value.details["errors"])

    def test_invalid_partner_id(self, tmp_path):
        """Test the partner ID is held to the same rule."""
        path = write_config(tmp_path, {"edi": {"partnerId": "AMAZÓN"}})
        with pytest.raises(InvalidConfigurationError):
            load_settings(path)

    def test_invalid_ordering(self, tmp_path):
        """Test only known orderings are accepted."""
        path = write_config(tmp_path, {"api": {"ordering": "random"}})
        with pytest.raises(InvalidConfigurationError):
            load_settings(path)

    def test_default_config_file_loads(self):
        """Test the shipped sample configuration is valid."""
        path = Path(__file__).resolve().parent.parent / "configs" / "default.json"
        settings = load_settings(path)

        assert resolve_integration(settings) is Integration.NONE


class TestOverrides:
    """Test partial overrides."""

    def test_apply_overrides_merges(self):
        """Test only the given keys change."""
        settings = Settings.model_validate({"edi": {"host": "h", "port": 2222}})
        updated = apply_overrides(settings, {"edi": {"port": 2200}})

        assert updated.edi.host == "h"
        assert updated.edi.port == 2200
        assert settings.edi.port == 2222

    def test_snake_case_keys(self):
        """Test overrides may use snake_case keys."""
        updated = apply_overrides(Settings(), {"edi": {"sender_id": "S"}})
        assert updated.edi.sender_id == "S"

    def test_override_validation(self):
        """Test overridden values are validated."""
        with pytest.raises(InvalidConfigurationError):
            apply_overrides(Settings(), {"edi": {"port": "not-a-port"}})

    def test_load_override_file(self, tmp_path):
        """Test a partial document is read as a mapping."""
        path = write_config(tmp_path, {"api": {"active": True}})
        assert load_override_file(path) == {"api": {"active": True}}

    def test_parse_set_expressions(self):
        """Test dotted expressions become nested overrides."""
        overrides = parse_set_expressions(["edi.port=2222", "edi.host=sftp.example.com", "api.active=true"])

        assert overrides == {
            "edi": {"port": 2222, "host": "sftp.example.com"},
            "api": {"active": True},
        }

    def test_parse_set_expression_without_equals(self):
        """Test malformed expressions are rejected."""
        with pytest.raises(InvalidConfigurationError):
            parse_set_expressions(["edi.port"])

    def test_env_overrides(self):
        """Test secrets can come from the environment."""
        environ = {"AVC_API_CLIENT_SECRET": "from-env", "AVC_EDI_SENDER_ID": "ENV_SENDER"}
        settings = apply_env_overrides(Settings(), environ)

        assert settings.api.auth.client_secret == "from-env"
        assert settings.edi.sender_id == "ENV_SENDER"

    def test_env_overrides_ignore_empty(self):
        """Test unset or empty variables leave settings alone."""
        base = Settings.model_validate({"edi": {"senderId": "FILE"}})
        settings = apply_env_overrides(base, {"AVC_EDI_SENDER_ID": ""})

        assert settings.edi.sender_id == "FILE"

    def test_env_overrides_from_process(self, monkeypatch):
        """Test the process environment is read by default."""
        monkeypatch.setenv("AVC_API_REFRESH_TOKEN", "rt-env")
        settings = apply_env_overrides(Settings())

        assert settings.api.auth.refresh_token == "rt-env"


class TestResolveIntegration:
    """Test integration resolution."""

    def test_none(self):
        """Test inactive integrations resolve to NONE."""
        assert resolve_integration(Settings()) is Integration.NONE

    def test_edi_only(self):
        """Test an active, complete EDI section."""
        settings = Settings.model_validate({"edi": EDI_READY})
        assert resolve_integration(settings) is Integration.EDI_ONLY

    def test_api_only(self):
        """Test an active, complete API section."""
        settings = Settings.model_validate({"api": API_READY})
        assert resolve_integration(settings) is Integration.API_ONLY

    def test_both(self):
        """Test both integrations active."""
        settings = Settings.model_validate({"edi": EDI_READY, "api": API_READY})
        assert resolve_integration(settings) is Integration.BOTH

    def test_edi_missing_sender(self):
        """Test an active EDI section without a sender ID is rejected."""
        settings = Settings.model_validate({"edi": {**EDI_READY, "senderId": ""}})

        with pytest.raises(MissingConfigurationError, match="edi.senderId"):
            resolve_integration(settings)

    def test_api_missing_secret(self):
        """Test an active API section without a client secret is rejected."""
        settings = Settings.model_validate(
            {"api": {"active": True, "auth": {"clientId": "cid", "refreshToken": "rt"}}}
        )

        with pytest.raises(MissingConfigurationError, match="api.auth.clientSecret"):
            resolve_integration(settings)

    def test_inactive_section_not_checked(self):
        """Test incomplete but inactive sections are fine."""
        settings = Settings.model_validate({"edi": {"active": False, "host": "h"}})
        assert resolve_integration(settings) is Integration.NONE


class TestNonEmptyFields:
    """Test flattening settings for display."""

    def test_masks_secrets(self):
        """Test secret values are not shown."""
        rows = dict(non_empty_fields(Settings.model_validate({"api": API_READY})))

        assert rows["api.auth.clientId"] == "cid"
        assert rows["api.auth.clientSecret"] == "********"
        assert rows["api.auth.refreshToken"] == "********"

    def test_skips_empty_values(self):
        """Test empty strings are omitted."""
        rows = dict(non_empty_fields(Settings()))

        assert "edi.host" not in rows
        assert rows["edi.inboundDir"] == "download"
