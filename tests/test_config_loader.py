"""
Tests for property resolution, config construction and validation.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from realm_export.config.loader import (
    create_config,
    parse_key_values,
    parse_realm_names,
    resolve_properties,
)
from realm_export.config.properties import ConfigurationProperty
from realm_export.config.validator import MASK, ConfigValidator
from realm_export.errors import ConfigError
from realm_export.models.config import (
    DEFAULT_SECRET_KEY_PATTERN,
    DEFAULT_SECRET_NAME_PATTERN,
)
from realm_export.models.secret import LookupPolicy


@pytest.fixture
def base_properties():
    return {
        "realmName": "acme",
        "keycloakApiUri": "http://keycloak:8080/auth",
        "adminUsername": "admin",
        "adminPassword": "secret",
        "secretNamespace": "iam-backups",
    }


@pytest.fixture
def secrets_dir(tmp_path: Path) -> Path:
    (tmp_path / "adminPassword").write_text("from-file\nsecond line ignored\n")
    (tmp_path / "adminUsername").write_text("file-admin\n")
    (tmp_path / "realmName").write_text("file-realm\n")
    (tmp_path / "notAProperty").write_text("ignored\n")
    return tmp_path


class TestResolveProperties:
    """Tests for resolve_properties precedence."""

    def test_files_then_env_then_args(self, secrets_dir):
        """Test arguments beat environment, which beats files."""
        props = resolve_properties(
            ["realmName=arg-realm"],
            secrets_path=secrets_dir,
            environ={"realmName": "env-realm", "adminUsername": "env-admin"},
        )

        assert props["realmName"] == "arg-realm"
        assert props["adminUsername"] == "env-admin"
        assert props["adminPassword"] == "from-file"

    def test_unknown_keys_ignored(self, tmp_path):
        """Test unrecognised names are dropped from every source."""
        props = resolve_properties(
            ["bogus=1", "PATH=/bin"],
            secrets_path=tmp_path,
            environ={"HOME": "/root", "notAProperty": "x"},
        )

        assert props == {}

    def test_bare_argument_is_empty(self, tmp_path):
        """Test a bare key sets an empty value."""
        props = resolve_properties(["debug"], secrets_path=tmp_path, environ={})

        assert props == {"debug": ""}

    def test_value_may_contain_equals(self, tmp_path):
        """Test only the first '=' separates key and value."""
        props = resolve_properties(
            ["adminPassword=a=b=c"], secrets_path=tmp_path, environ={}
        )

        assert props["adminPassword"] == "a=b=c"

    def test_missing_secrets_dir(self, tmp_path):
        """Test a non-existent secrets directory is not an error."""
        props = resolve_properties([], secrets_path=tmp_path / "absent", environ={})

        assert props == {}

    def test_empty_secret_file_skipped(self, tmp_path):
        """Test an empty file does not set a value."""
        (tmp_path / "realmName").write_text("")
        props = resolve_properties([], secrets_path=tmp_path, environ={})

        assert "realmName" not in props


class TestCreateConfig:
    """Tests for create_config."""

    def test_minimal(self, base_properties):
        """Test defaults are applied."""
        config = create_config(base_properties)

        assert config.realm_names == ("acme",)
        assert config.secret_name_pattern == DEFAULT_SECRET_NAME_PATTERN
        assert config.secret_key_pattern == DEFAULT_SECRET_KEY_PATTERN
        assert config.export_users is False
        assert config.debug is False
        assert config.keycloak_host_header is None
        assert config.truststore_path is None
        assert config.lookup_policy == LookupPolicy.CREATE
        assert config.max_retries == 0
        assert config.token_ttl_seconds is None

    def test_realm_names_merged_and_deduplicated(self, base_properties):
        """Test realmName and realmNames combine without duplicates."""
        base_properties["realmNames"] = "demo, acme,,other "
        config = create_config(base_properties)

        assert set(config.realm_names) == {"acme", "demo", "other"}
        assert len(config.realm_names) == 3

    def test_no_realm(self, base_properties):
        """Test a missing realm is refused."""
        del base_properties["realmName"]
        base_properties["realmNames"] = " , "

        with pytest.raises(ConfigError, match="No realm configured"):
            create_config(base_properties)

    @pytest.mark.parametrize(
        "name", ["keycloakApiUri", "adminUsername", "adminPassword", "secretNamespace"]
    )
    def test_required_properties(self, base_properties, name):
        """Test every required property is enforced."""
        base_properties[name] = "  "

        with pytest.raises(ConfigError, match=name):
            create_config(base_properties)

    def test_relative_uri_refused(self, base_properties):
        """Test the API URI must be absolute."""
        base_properties["keycloakApiUri"] = "keycloak:8080/auth"

        with pytest.raises(ConfigError, match="keycloak_api_uri"):
            create_config(base_properties)

    def test_truststore_requires_password(self, base_properties):
        """Test a truststore path without password is fatal."""
        base_properties["keycloakTruststorePath"] = "/etc/trust/store.p12"

        with pytest.raises(ConfigError, match="No truststore password provided"):
            create_config(base_properties)

    def test_truststore_with_password(self, base_properties):
        base_properties["keycloakTruststorePath"] = "/etc/trust/store.p12"
        base_properties["keycloakTruststorePassword"] = "changeit"
        config = create_config(base_properties)

        assert config.truststore_path == Path("/etc/trust/store.p12")
        assert "changeit" not in repr(config)

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("", True),
            ("true", True),
            ("TRUE", True),
            ("false", False),
            ("yes", False),
        ],
    )
    def test_flags(self, base_properties, raw, expected):
        """Test flag parsing: blank means on, otherwise only 'true' is on."""
        base_properties["exportUsers"] = raw
        base_properties["debug"] = raw
        config = create_config(base_properties)

        assert config.export_users is expected
        assert config.debug is expected

    def test_labels_and_annotations(self, base_properties):
        """Test k:v lists are parsed."""
        base_properties["secretLabels"] = "app:keycloak, tier : backup"
        base_properties["secretAnnotations"] = "owner:iam"
        config = create_config(base_properties)

        assert config.secret_labels == {"app": "keycloak", "tier": "backup"}
        assert config.secret_annotations == {"owner": "iam"}

    def test_lookup_policy(self, base_properties):
        base_properties["secretLookupFailure"] = "FAIL"

        assert create_config(base_properties).lookup_policy == LookupPolicy.FAIL

    def test_invalid_lookup_policy(self, base_properties):
        base_properties["secretLookupFailure"] = "ignore"

        with pytest.raises(ConfigError, match="secretLookupFailure"):
            create_config(base_properties)

    def test_retry_settings(self, base_properties):
        base_properties.update(
            {"maxRetries": "3", "retryBackoffSeconds": "0.5", "tokenTtlSeconds": "240"}
        )
        config = create_config(base_properties)

        assert config.max_retries == 3
        assert config.retry_backoff_seconds == 0.5
        assert config.token_ttl_seconds == 240.0

    def test_invalid_number(self, base_properties):
        base_properties["maxRetries"] = "many"

        with pytest.raises(ConfigError, match="maxRetries"):
            create_config(base_properties)

    def test_negative_retries(self, base_properties):
        base_properties["maxRetries"] = "-1"

        with pytest.raises(ConfigError):
            create_config(base_properties)

    @pytest.mark.parametrize(
        "name,field,raw",
        [
            ("retryBackoffSeconds", "retry_backoff_seconds", "-1"),
            ("retryBackoffSeconds", "retry_backoff_seconds", "nan"),
            ("retryBackoffSeconds", "retry_backoff_seconds", "inf"),
            ("tokenTtlSeconds", "token_ttl_seconds", "-30"),
            ("tokenTtlSeconds", "token_ttl_seconds", "nan"),
        ],
    )
    def test_durations_must_be_finite_and_non_negative(self, base_properties, name, field, raw):
        """Test an unusable backoff or token lifetime is refused up front."""
        base_properties.update({"maxRetries": "1", name: raw})

        with pytest.raises(ConfigError, match=field):
            create_config(base_properties)

    def test_zero_backoff_allowed(self, base_properties):
        base_properties["retryBackoffSeconds"] = "0"

        assert create_config(base_properties).retry_backoff_seconds == 0.0

    def test_config_is_frozen(self, base_properties):
        config = create_config(base_properties)

        with pytest.raises(Exception):
            config.secret_namespace = "other"


class TestParsers:
    """Tests for the small value parsers."""

    def test_parse_key_values_drops_malformed(self):
        assert parse_key_values("a:1,b,c:2:3, :4,d:") == {"a": "1", "d": ""}

    def test_parse_key_values_none(self):
        assert parse_key_values(None) == {}

    def test_parse_realm_names_order(self):
        names = parse_realm_names({"realmName": "b", "realmNames": "a,b,c"})
        assert names == ("b", "a", "c")


class TestConfigValidator:
    """Tests for ConfigValidator."""

    def test_valid(self, base_properties):
        status = ConfigValidator(base_properties).validate()

        assert status.valid is True
        assert status.missing == []
        assert status.config.realm_names == ("acme",)

    def test_passwords_masked(self, base_properties):
        base_properties["keycloakTruststorePassword"] = "changeit"
        status = ConfigValidator(base_properties).validate()

        assert status.present["adminPassword"] == MASK
        assert status.present["keycloakTruststorePassword"] == MASK
        assert status.present["adminUsername"] == "admin"

    def test_reports_missing(self):
        status = ConfigValidator({"adminUsername": "admin"}).validate()

        assert status.valid is False
        assert "realmName/realmNames" in status.missing
        assert "keycloakApiUri" in status.missing
        assert "adminUsername" not in status.missing
        assert status.error

    def test_property_catalogue_names_unique(self):
        names = [p.property_name for p in ConfigurationProperty]
        assert len(names) == len(set(names))
        assert "keycloakHostHeader" in ConfigurationProperty.all_property_names()
