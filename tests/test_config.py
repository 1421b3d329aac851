"""Tests for adapter configuration."""

import json
import tempfile
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from localfs import (
    ConfigurationError,
    LinkHandling,
    LocalAdapterConfig,
    LocalFSSettings,
    LockMode,
    PermissionMap,
    Visibility,
    WriteOptions,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestPermissionMap:
    """Tests for PermissionMap."""

    def test_defaults(self):
        """Test the default permission table."""
        permissions = PermissionMap()
        assert permissions.file.public == 0o644
        assert permissions.file.private == 0o600
        assert permissions.dir.public == 0o755
        assert permissions.dir.private == 0o700

    def test_partial_override_keeps_defaults(self):
        """Test that overrides are merged over the defaults."""
        permissions = PermissionMap(file={"private": 0o640})
        assert permissions.file.private == 0o640
        assert permissions.file.public == 0o644
        assert permissions.dir.public == 0o755

    def test_octal_strings(self):
        """Test octal strings as permission values."""
        permissions = PermissionMap.model_validate(
            {"dir": {"public": "0775", "private": "0o750"}}
        )
        assert permissions.dir.public == 0o775
        assert permissions.dir.private == 0o750

    def test_invalid_octal_string(self):
        """Test that non-octal strings are rejected."""
        with pytest.raises(ValidationError):
            PermissionMap.model_validate({"file": {"public": "rw-r--r--"}})

    def test_out_of_range(self):
        """Test that values above 0o7777 are rejected."""
        with pytest.raises(ValidationError):
            PermissionMap(file={"public": 0o17777})


class TestWriteOptions:
    """Tests for WriteOptions."""

    def test_coerce_none(self):
        """Test that no options means no visibility."""
        assert WriteOptions.coerce(None).visibility is None

    def test_coerce_mapping_ignores_unknown_keys(self):
        """Test that unknown keys are ignored."""
        options = WriteOptions.coerce({"visibility": "private", "mimetype": "text/plain"})
        assert options.visibility == Visibility.PRIVATE

    def test_coerce_instance(self):
        """Test that an instance passes through."""
        options = WriteOptions(visibility=Visibility.PUBLIC)
        assert WriteOptions.coerce(options) is options

    def test_invalid_visibility(self):
        """Test that unknown visibilities are rejected."""
        with pytest.raises(ValidationError):
            WriteOptions.coerce({"visibility": "secret"})


class TestLocalAdapterConfig:
    """Tests for LocalAdapterConfig."""

    def test_defaults(self, temp_dir):
        """Test default settings."""
        config = LocalAdapterConfig(root=temp_dir)
        assert config.lock_mode == LockMode.EXCLUSIVE
        assert config.link_handling == LinkHandling.DISALLOW
        assert config.default_visibility == Visibility.PUBLIC
        assert config.create_root is True

    def test_file_scheme_root(self, temp_dir):
        """Test that file:// roots are stripped."""
        config = LocalAdapterConfig(root=f"file://{temp_dir}")
        assert config.root == temp_dir

    def test_extra_fields_forbidden(self, temp_dir):
        """Test that unknown settings are rejected."""
        with pytest.raises(ValidationError):
            LocalAdapterConfig(root=temp_dir, cache=True)

    def test_from_yaml_file(self, temp_dir):
        """Test loading from a YAML file."""
        config_file = temp_dir / "localfs.yaml"
        config_file.write_text(
            yaml.safe_dump(
                {
                    "root": str(temp_dir / "files"),
                    "link_handling": "skip",
                    "lock_mode": "none",
                    "permissions": {"file": {"public": "0640"}},
                }
            )
        )

        config = LocalAdapterConfig.from_file(config_file)
        assert config.root == temp_dir / "files"
        assert config.link_handling == LinkHandling.SKIP
        assert config.lock_mode == LockMode.NONE
        assert config.permissions.file.public == 0o640
        assert config.permissions.file.private == 0o600

    def test_from_json_file(self, temp_dir):
        """Test loading from a JSON file."""
        config_file = temp_dir / "localfs.json"
        config_file.write_text(
            json.dumps({"root": str(temp_dir), "default_visibility": "private"})
        )

        config = LocalAdapterConfig.from_file(config_file)
        assert config.default_visibility == Visibility.PRIVATE

    def test_from_missing_file(self, temp_dir):
        """Test that a missing config file raises."""
        with pytest.raises(FileNotFoundError):
            LocalAdapterConfig.from_file(temp_dir / "missing.yaml")


class TestLocalFSSettings:
    """Tests for environment based settings."""

    def test_from_env(self, temp_dir, monkeypatch):
        """Test loading settings from environment variables."""
        monkeypatch.setenv("LOCALFS_ROOT", str(temp_dir))
        monkeypatch.setenv("LOCALFS_LINK_HANDLING", "skip")
        monkeypatch.setenv("LOCALFS_PERMISSIONS__FILE__PRIVATE", "0640")

        config = LocalAdapterConfig.from_env()
        assert config.root == temp_dir
        assert config.link_handling == LinkHandling.SKIP
        assert config.permissions.file.private == 0o640
        assert config.permissions.file.public == 0o644

    def test_missing_root(self, temp_dir, monkeypatch):
        """Test that a missing root is a configuration error."""
        monkeypatch.delenv("LOCALFS_ROOT", raising=False)
        monkeypatch.chdir(temp_dir)

        with pytest.raises(ConfigurationError):
            LocalFSSettings().to_config()
