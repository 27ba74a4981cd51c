"""Tests for configuration loading."""

import json
import os
import tempfile
from pathlib import Path

import pytest
import yaml

from multikv.config import BackendConfig, Config, substitute_env_vars
from multikv.observability import LogLevel


class TestEnvSubstitution:
    """Tests for environment variable substitution."""

    def test_substitute_string(self, monkeypatch):
        """Test substituting a string value."""
        monkeypatch.setenv("TEST_VAR", "hello")
        assert substitute_env_vars("${TEST_VAR}") == "hello"

    def test_substitute_nested(self, monkeypatch):
        """Values inside dictionaries and lists are substituted."""
        monkeypatch.setenv("S3_SECRET", "secret")
        data = {"backend": {"secret_key": "${S3_SECRET}"}, "items": ["${S3_SECRET}", 3]}
        assert substitute_env_vars(data) == {
            "backend": {"secret_key": "secret"},
            "items": ["secret", 3],
        }

    def test_missing_env_var_raises(self, monkeypatch):
        """Test that missing env vars raise ValueError."""
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)
        with pytest.raises(ValueError, match="NONEXISTENT_VAR"):
            substitute_env_vars("${NONEXISTENT_VAR}")

    def test_partial_substitution(self, monkeypatch):
        """Test substituting part of a string."""
        monkeypatch.setenv("BUCKET_ENV", "prod")
        assert substitute_env_vars("kv-${BUCKET_ENV}") == "kv-prod"


class TestConfigLoading:
    """Tests for configuration loading."""

    def test_from_dict(self, sample_config_dict):
        """Test loading config from dictionary."""
        config = Config.from_dict(sample_config_dict)
        assert config.backend.backend == "local"
        assert config.backend.path == "/tmp/multikv-test/kv"
        assert config.logging.level == LogLevel.DEBUG
        assert config.logging.format == "text"

    def test_from_yaml_file(self, sample_config_dict):
        """Test loading config from YAML file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "multikv.yaml"
            path.write_text(yaml.dump(sample_config_dict))

            config = Config.from_file(path)
            assert config.backend.path == "/tmp/multikv-test/kv"

    def test_from_json_file(self, sample_config_dict):
        """Test loading config from JSON file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "multikv.json"
            path.write_text(json.dumps(sample_config_dict))

            config = Config.from_file(str(path))
            assert config.backend.backend == "local"

    def test_empty_yaml_file(self):
        """An empty YAML file gives the defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "empty.yml"
            path.write_text("")

            config = Config.from_file(path)
            assert config.backend.backend == "local"

    def test_defaults(self):
        """Test that defaults are applied."""
        config = Config.from_dict({})
        assert config.backend.backend == "local"
        assert config.backend.path is None
        assert config.logging.level == LogLevel.INFO
        assert config.logging.format == "json"

    def test_s3_config_from_env(self, monkeypatch):
        """S3 credentials can come from the environment."""
        monkeypatch.setenv("R2_ACCESS_KEY", "access")
        monkeypatch.setenv("R2_SECRET_KEY", "secret")
        config = Config.from_dict({
            "backend": {
                "backend": "s3",
                "bucket": "kv-bucket",
                "endpoint": "https://account.r2.cloudflarestorage.com",
                "access_key": "${R2_ACCESS_KEY}",
                "secret_key": "${R2_SECRET_KEY}",
            },
        })
        assert config.backend.access_key == "access"
        assert config.backend.secret_key == "secret"

    def test_invalid_log_level(self):
        """Unknown log levels are rejected."""
        with pytest.raises(ValueError):
            Config.from_dict({"logging": {"level": "LOUD"}})


class TestBackendConfig:
    """Tests for BackendConfig."""

    def test_backend_options_excludes_unset(self):
        """Only provided settings are passed to the backend."""
        config = BackendConfig(backend="s3", bucket="b", prefix="kv")
        assert config.backend_options() == {"bucket": "b", "prefix": "kv"}
