"""
Unit tests for configuration management.
"""

import pytest
import yaml
from pydantic import ValidationError

from schema_sync.config import (
    LoggingConfig,
    ParseServerConfig,
    PlanOptions,
    SchemaSyncConfig,
)
from schema_sync.exceptions import ConfigurationError
from schema_sync.schema.planner import PlannerSettings


class TestParseServerConfig:
    """Test Parse Server connection settings."""

    def test_defaults(self):
        config = ParseServerConfig(url="http://x/parse", application_id="a", master_key="m")

        assert config.timeout == 30.0
        assert config.max_retries == 2
        assert config.retry_delay == 1.0

    def test_trailing_slash_stripped(self):
        config = ParseServerConfig(url="http://x/parse/", application_id="a", master_key="m")

        assert config.url == "http://x/parse"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"url": "  "},
            {"timeout": 0},
            {"retry_delay": -1},
            {"max_retries": -1},
        ],
    )
    def test_invalid_values(self, overrides):
        values = {"url": "http://x/parse", "application_id": "a", "master_key": "m"}
        values.update(overrides)

        with pytest.raises(ValidationError):
            ParseServerConfig(**values)

    def test_master_key_required(self):
        with pytest.raises(ValidationError):
            ParseServerConfig(url="http://x/parse", application_id="a")


class TestPlanOptions:
    """Test plan option defaults and planner settings."""

    def test_defaults(self):
        options = PlanOptions()

        assert options.hook_url is None
        assert not options.ignore_indexes
        assert not options.disallow_column_redefine
        assert not options.disallow_index_redefine
        assert options.ignored_permission_keys == ["count", "protectedFields"]

    def test_planner_settings(self):
        options = PlanOptions(
            ignored_permission_keys=["count"],
            private_index_prefix="sys_",
            ignore_private_indexes=False,
        )

        assert options.planner_settings() == PlannerSettings(
            ignored_permission_keys=("count",),
            private_index_prefix="sys_",
            ignore_private_indexes=False,
        )


class TestSchemaSyncConfig:
    """Test top-level configuration loading."""

    def test_from_yaml(self, config_file):
        config = SchemaSyncConfig.from_yaml(config_file)

        assert config.server.url == "http://parse.test/parse"
        assert config.server.max_retries == 0
        assert config.options.hook_url == "https://hooks.test"
        assert config.logging == LoggingConfig()

    def test_env_vars_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TEST_PARSE_MASTER_KEY", "secret")
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "server": {
                        "url": "http://x/parse",
                        "application_id": "app",
                        "master_key": "${TEST_PARSE_MASTER_KEY}",
                    }
                }
            ),
            encoding="utf-8",
        )

        config = SchemaSyncConfig.from_yaml(path)

        assert config.server.master_key == "secret"

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCHEMA_SYNC_OPTIONS__IGNORE_INDEXES", "true")

        config = SchemaSyncConfig(
            server={"url": "http://x/parse", "application_id": "a", "master_key": "m"}
        )

        assert config.options.ignore_indexes is True

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            SchemaSyncConfig.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("server: [\n", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            SchemaSyncConfig.from_yaml(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"server": {"url": "http://x"}}), encoding="utf-8")

        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            SchemaSyncConfig.from_yaml(path)

    def test_with_overrides(self, sample_config):
        updated = sample_config.with_overrides(ignore_indexes=True, hook_url=None)

        assert updated.options.ignore_indexes is True
        assert updated.options.hook_url == "https://hooks.test"
        assert sample_config.options.ignore_indexes is False

    def test_with_no_overrides_returns_same(self, sample_config):
        assert sample_config.with_overrides(hook_url=None) is sample_config

    def test_to_yaml_round_trip(self, tmp_path, sample_config):
        path = tmp_path / "saved.yaml"

        sample_config.to_yaml(path)
        loaded = SchemaSyncConfig.from_yaml(path)

        assert loaded.server == sample_config.server
        assert loaded.options == sample_config.options
