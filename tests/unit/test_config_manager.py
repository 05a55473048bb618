"""Unit tests for configuration management."""

import os
import stat

import pytest

from orgolin.config_manager import (
    DEFAULT_API_BASE_URL,
    ConfigError,
    ConfigManager,
    OrgolinConfig,
)


class TestOrgolinConfig:
    """Test the config dataclass."""

    def test_defaults(self):
        config = OrgolinConfig()

        assert config.api_base_url == DEFAULT_API_BASE_URL
        assert config.readiness_timeout == 180.0
        assert config.status_refresh_interval == 5.0
        assert config.strict_project_ids is False
        config.validate()

    def test_from_dict_ignores_unknown_keys(self):
        config = OrgolinConfig.from_dict({"readiness_timeout": 60.0, "legacy_option": 1})

        assert config.readiness_timeout == 60.0

    def test_roundtrip_dict(self):
        config = OrgolinConfig(poll_interval=2.0)

        assert OrgolinConfig.from_dict(config.to_dict()) == config

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"api_base_url": "http://orgo.example.com"}, "https"),
            ({"readiness_timeout": 0}, "readiness_timeout"),
            ({"poll_interval": -1}, "poll_interval"),
            ({"status_refresh_interval": 1.0}, "at least 2"),
        ],
    )
    def test_validate_rejects(self, overrides, message):
        with pytest.raises(ConfigError, match=message):
            OrgolinConfig(**overrides).validate()

    def test_localhost_http_allowed(self):
        OrgolinConfig(api_base_url="http://localhost:8080/api").validate()


class TestLoadSave:
    """Test reading and writing the config file."""

    def test_load_defaults_when_missing(self, temp_config_dir):
        config = ConfigManager.load_config()

        assert config == OrgolinConfig()

    def test_save_and_load(self, temp_config_dir):
        ConfigManager.save_config(OrgolinConfig(readiness_timeout=300.0, strict_project_ids=True))

        config = ConfigManager.load_config()

        assert config.readiness_timeout == 300.0
        assert config.strict_project_ids is True

    def test_save_permissions(self, temp_config_dir):
        path = ConfigManager.save_config(OrgolinConfig())

        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(temp_config_dir).st_mode) == 0o700

    def test_save_preserves_comments(self, temp_config_dir):
        config_file = temp_config_dir / "config.toml"
        config_file.write_text("# my settings\nreadiness_timeout = 90.0\n")
        config_file.chmod(0o600)

        ConfigManager.save_config(OrgolinConfig(readiness_timeout=120.0))

        text = config_file.read_text()
        assert "# my settings" in text
        assert "120.0" in text

    def test_insecure_permissions_fixed(self, temp_config_dir):
        config_file = temp_config_dir / "config.toml"
        config_file.write_text("poll_interval = 2.0\n")
        config_file.chmod(0o644)

        ConfigManager.load_config()

        assert stat.S_IMODE(os.stat(config_file).st_mode) == 0o600

    def test_invalid_toml(self, temp_config_dir):
        config_file = temp_config_dir / "config.toml"
        config_file.write_text("poll_interval = [")
        config_file.chmod(0o600)

        with pytest.raises(ConfigError, match="Failed to load config"):
            ConfigManager.load_config()

    def test_custom_path_outside_allowed_dirs(self, temp_config_dir):
        with pytest.raises(ConfigError):
            ConfigManager.get_config_path("/etc/passwd")

    def test_custom_path_must_exist(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigError, match="not found"):
            ConfigManager.get_config_path(str(tmp_path / "missing.toml"))


class TestEnvOverrides:
    """Test environment variable overrides."""

    def test_base_url_override(self, temp_config_dir, monkeypatch):
        monkeypatch.setenv("ORGOLIN_API_BASE_URL", "https://staging.orgo.ai/api")

        assert ConfigManager.load_config().api_base_url == "https://staging.orgo.ai/api"

    def test_readiness_timeout_override(self, temp_config_dir, monkeypatch):
        monkeypatch.setenv("ORGOLIN_READINESS_TIMEOUT", "45")

        assert ConfigManager.load_config().readiness_timeout == 45.0

    def test_invalid_override(self, temp_config_dir, monkeypatch):
        monkeypatch.setenv("ORGOLIN_READINESS_TIMEOUT", "soon")

        with pytest.raises(ConfigError, match="readiness_timeout"):
            ConfigManager.load_config()


class TestUpdateConfig:
    """Test setting single keys."""

    def test_update_float(self, temp_config_dir):
        config = ConfigManager.update_config("poll_interval", "2.5")

        assert config.poll_interval == 2.5
        assert ConfigManager.load_config().poll_interval == 2.5

    @pytest.mark.parametrize("raw,expected", [("true", True), ("off", False), ("1", True)])
    def test_update_bool(self, temp_config_dir, raw, expected):
        config = ConfigManager.update_config("strict_project_ids", raw)

        assert config.strict_project_ids is expected

    def test_update_unknown_key(self, temp_config_dir):
        with pytest.raises(ConfigError, match="Unknown config key"):
            ConfigManager.update_config("resource_group", "x")

    def test_update_invalid_value(self, temp_config_dir):
        with pytest.raises(ConfigError):
            ConfigManager.update_config("status_refresh_interval", "1")


class TestApiKeys:
    """Test API key resolution."""

    def test_cli_value_wins(self, monkeypatch):
        monkeypatch.setenv("ORGO_API_KEY", "from-env")

        assert ConfigManager.get_api_key("ORGO_API_KEY", "from-cli") == "from-cli"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("ORGO_API_KEY", " from-env ")

        assert ConfigManager.get_api_key("ORGO_API_KEY") == "from-env"

    def test_missing(self, monkeypatch):
        monkeypatch.delenv("ORGO_API_KEY", raising=False)

        assert ConfigManager.get_api_key("ORGO_API_KEY") is None
