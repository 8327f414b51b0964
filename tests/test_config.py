"""Tests for trusteeweb.config."""

import json

import pytest

from trusteeweb.config import (
    OutputConfig,
    SqlConfig,
    TraversalConfig,
    WebConfig,
    get_config,
    set_config,
)
from trusteeweb.errors import ConfigError


class TestDefaults:
    """Tests for default values and environment variables."""

    def test_defaults(self, clean_env):
        config = WebConfig()
        assert config.traversal.maximum_depth == 100
        assert config.traversal.deadline_seconds is None
        assert config.thresholds.permissive_mailbox_threshold == 500
        assert config.thresholds.power_trustee_threshold == 500
        assert config.sql.database is None
        assert config.sql.table_name == "MailboxTrustee"
        assert config.output.output_dir == "output"

    def test_env_vars(self, monkeypatch):
        monkeypatch.setenv("TRUSTEEWEB_SQL_DATABASE", "/data/perms.db")
        monkeypatch.setenv("TRUSTEEWEB_OUTPUT_DIR", "/tmp/web")
        assert SqlConfig().database == "/data/perms.db"
        assert OutputConfig().output_dir == "/tmp/web"

    def test_explicit_values_win_over_env(self, monkeypatch):
        monkeypatch.setenv("TRUSTEEWEB_OUTPUT_DIR", "/tmp/web")
        assert OutputConfig(output_dir="reports").output_dir == "reports"


class TestValidate:
    """Tests for WebConfig.validate."""

    def test_valid_returns_self(self):
        config = WebConfig()
        assert config.validate() is config

    @pytest.mark.parametrize("depth", [0, -3, 1.5, True])
    def test_bad_depth(self, depth):
        with pytest.raises(ConfigError, match="maximum_depth"):
            WebConfig(traversal=TraversalConfig(maximum_depth=depth)).validate()

    def test_bad_threshold(self):
        config = WebConfig.from_dict({"thresholds": {"power_trustee_threshold": 0}})
        with pytest.raises(ConfigError, match="power_trustee_threshold"):
            config.validate()

    @pytest.mark.parametrize("deadline", [0, -1, "10"])
    def test_bad_deadline(self, deadline):
        with pytest.raises(ConfigError, match="deadline_seconds"):
            WebConfig(traversal=TraversalConfig(deadline_seconds=deadline)).validate()

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            WebConfig(traversal=TraversalConfig(maximum_depth=0)).validate()


class TestSerialization:
    """Tests for dict/JSON round trips."""

    def test_from_dict(self):
        config = WebConfig.from_dict({
            "traversal": {"maximum_depth": 3},
            "ignore": {"permission_types": ["Calendar"]},
            "verbose": False,
        })
        assert config.traversal.maximum_depth == 3
        assert config.ignore.permission_types == ["Calendar"]
        assert config.verbose is False

    def test_from_dict_unknown_key(self):
        with pytest.raises(ConfigError, match="Invalid configuration"):
            WebConfig.from_dict({"traversal": {"max_depth": 3}})

    def test_to_dict(self):
        data = WebConfig(traversal=TraversalConfig(maximum_depth=7)).to_dict()
        assert data["traversal"]["maximum_depth"] == 7
        assert set(data) == {"traversal", "thresholds", "ignore", "sql", "output", "verbose"}

    def test_from_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"thresholds": {"permissive_mailbox_threshold": 50}}))
        config = WebConfig.from_json_file(str(path))
        assert config.thresholds.permissive_mailbox_threshold == 50

    def test_json_file_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            WebConfig.from_json_file(str(tmp_path / "missing.json"))

    def test_json_file_invalid(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            WebConfig.from_json_file(str(path))

    def test_json_file_not_object(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="JSON object"):
            WebConfig.from_json_file(str(path))


class TestGlobalConfig:
    """Tests for get_config/set_config."""

    def test_set_and_get(self):
        previous = get_config()
        try:
            custom = WebConfig(traversal=TraversalConfig(maximum_depth=4))
            set_config(custom)
            assert get_config() is custom
        finally:
            set_config(previous)
