# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for configuration loading.
"""

import tempfile
from datetime import timedelta
from pathlib import Path

import pytest

from tapwatch.shared.config import Config
from tapwatch.shared.errors import ConfigError

ENV_VARS = [
    "TAPWATCH_DATA_ROOT",
    "TAPWATCH_RETENTION_DAYS",
    "TAPWATCH_USERS_FILE",
    "TAPWATCH_REDIS_HOST",
    "TAPWATCH_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestConfigDefaults:
    """Test defaults without a config file."""

    def test_defaults(self, tmp_path):
        config = Config(config_dir=tmp_path)
        assert config.data_root == tmp_path / "data"
        assert config.retention == timedelta(days=31)
        assert config.chart_max_lines == 10000
        assert config.archive_interval_seconds == 86400
        assert config.stream_name == "tapwatch:updates"
        assert config.users_file is None
        config.validate()

    def test_get_dotted(self, tmp_path):
        config = Config(config_dir=tmp_path)
        assert config.get("retention.max_age_days") == 31
        assert config.get("stream.dlq") == "tapwatch:dlq"
        assert config.get("auth.users_file", "none") == "none"
        assert config.get("no.such.key") is None


class TestConfigFile:
    """Test loading config.yaml."""

    def test_file_values(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "config.yaml").write_text("""
paths:
  data_root: "{tmpdir}/taps"

retention:
  max_age_days: 7

chart:
  max_lines: 500

archive:
  enabled: false
  time_budget_seconds: 30

auth:
  users_file: "{tmpdir}/users.yaml"

stream:
  enabled: false
  name: custom:updates
""".format(tmpdir=tmpdir))

            config = Config(config_dir=tmpdir)

            assert config.data_root == Path(tmpdir) / "taps"
            assert config.retention == timedelta(days=7)
            assert config.chart_max_lines == 500
            assert config.archive_enabled is False
            assert config.archive_time_budget_seconds == 30
            assert config.users_file == Path(tmpdir) / "users.yaml"
            assert config.stream_enabled is False
            assert config.stream_name == "custom:updates"
            assert config.stream_consumer_group == "ingest"

    def test_save_and_reload(self, tmp_path):
        config = Config(config_dir=tmp_path)
        config.max_age_days = 14
        config.save_to_file()

        reloaded = Config(config_dir=tmp_path)
        assert reloaded.max_age_days == 14
        assert reloaded.data_root == config.data_root

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / "config.yaml").write_text("retention: [unclosed\n")
        with pytest.raises(ConfigError):
            Config(config_dir=tmp_path)

    def test_not_a_mapping(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            Config(config_dir=tmp_path)


class TestConfigEnv:
    """Test environment overrides."""

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("retention:\n  max_age_days: 7\n")
        monkeypatch.setenv("TAPWATCH_RETENTION_DAYS", "2.5")
        monkeypatch.setenv("TAPWATCH_DATA_ROOT", str(tmp_path / "elsewhere"))
        monkeypatch.setenv("TAPWATCH_REDIS_HOST", "redis.internal")

        config = Config(config_dir=tmp_path)

        assert config.max_age_days == 2.5
        assert config.data_root == tmp_path / "elsewhere"
        assert config.redis_host == "redis.internal"

    def test_bad_env_number(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TAPWATCH_RETENTION_DAYS", "a month")
        with pytest.raises(ConfigError):
            Config(config_dir=tmp_path)


class TestConfigValidate:
    """Test validation."""

    def test_reports_every_problem(self, tmp_path):
        config = Config(config_dir=tmp_path)
        config.max_age_days = 0
        config.chart_max_lines = 0
        config.log_level = "LOUD"

        with pytest.raises(ConfigError) as excinfo:
            config.validate()

        message = str(excinfo.value)
        assert "retention.max_age_days" in message
        assert "chart.max_lines" in message
        assert "logging.level" in message
