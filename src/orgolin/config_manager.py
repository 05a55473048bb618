"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores connection preferences like API base URL, readiness timeout and the
Claude model used for command translation.

Security:
- Config file permissions: 0600 (owner read/write only)
- Path validation
- API keys are never written to disk; they come from the environment
"""

import logging
import os
import tempfile
import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

import tomlkit

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://www.orgo.ai/api"
DEFAULT_TRANSLATION_MODEL = "claude-sonnet-4-5-20250929"

ORGO_API_KEY_ENV = "ORGO_API_KEY"
ANTHROPIC_API_KEY_ENV = "ANTHROPIC_API_KEY"


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class OrgolinConfig:
    """orgolin configuration data."""

    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 30.0
    readiness_timeout: float = 180.0
    poll_interval: float = 1.0
    status_refresh_interval: float = 5.0
    translation_model: str = DEFAULT_TRANSLATION_MODEL
    strict_project_ids: bool = False
    capture_screenshots: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrgolinConfig":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def validate(self) -> None:
        """Validate numeric ranges and URL scheme.

        Raises:
            ConfigError: If any value is out of range
        """
        if not self.api_base_url.startswith("https://") and not self.api_base_url.startswith(
            "http://localhost"
        ):
            raise ConfigError(f"api_base_url must use https: {self.api_base_url}")
        for name in ("request_timeout", "readiness_timeout", "poll_interval"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.status_refresh_interval < 2.0:
            raise ConfigError("status_refresh_interval must be at least 2 seconds")


class ConfigManager:
    """Manage orgolin configuration file.

    Configuration is stored at ~/.orgolin/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".orgolin"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    # Environment variables that override file values
    ENV_OVERRIDES = {
        "ORGOLIN_API_BASE_URL": "api_base_url",
        "ORGOLIN_READINESS_TIMEOUT": "readiness_timeout",
    }

    @classmethod
    def _validate_config_path(cls, path: Path) -> Path:
        """Validate configuration file path for security.

        Ensures the path is within ~/.orgolin/, the current working directory
        or the system temp directory to prevent path traversal.

        Raises:
            ConfigError: If path is outside allowed directories
        """
        resolved_path = path.resolve()

        allowed_dirs = [
            cls.DEFAULT_CONFIG_DIR.resolve(),
            Path.cwd().resolve(),
            Path(tempfile.gettempdir()).resolve(),
        ]

        for allowed_dir in allowed_dirs:
            try:
                resolved_path.relative_to(allowed_dir)
                return resolved_path
            except ValueError:
                continue

        raise ConfigError(
            f"Config path outside allowed directories: {resolved_path}\n"
            f"Allowed directories:\n"
            f"  - {cls.DEFAULT_CONFIG_DIR}\n"
            f"  - {Path.cwd()}\n"
            "This restriction prevents path traversal attacks."
        )

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Raises:
            ConfigError: If path is invalid or outside allowed directories
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            path = cls._validate_config_path(path)
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def ensure_config_dir(cls) -> Path:
        """Ensure config directory exists with secure permissions (0700)."""
        try:
            cls.DEFAULT_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
            os.chmod(cls.DEFAULT_CONFIG_DIR, 0o700)
            logger.debug(f"Config directory ready: {cls.DEFAULT_CONFIG_DIR}")
            return cls.DEFAULT_CONFIG_DIR
        except Exception as e:
            raise ConfigError(f"Failed to create config directory: {e}") from e

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> OrgolinConfig:
        """Load configuration from file, then apply environment overrides.

        Returns:
            OrgolinConfig object (defaults if no file exists)

        Raises:
            ConfigError: If loading or validation fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            config = OrgolinConfig()
        else:
            try:
                mode = config_path.stat().st_mode & 0o777
                if mode & 0o077:
                    logger.warning(
                        f"Config file has insecure permissions: {oct(mode)}. Fixing to 0600..."
                    )
                    os.chmod(config_path, 0o600)

                with open(config_path, "rb") as f:
                    data = tomllib.load(f)

                logger.debug(f"Loaded config from: {config_path}")
                config = OrgolinConfig.from_dict(data)
            except Exception as e:
                raise ConfigError(f"Failed to load config: {e}") from e

        cls._apply_env_overrides(config)
        config.validate()
        return config

    @classmethod
    def _apply_env_overrides(cls, config: OrgolinConfig) -> None:
        for env_name, field_name in cls.ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if raw:
                setattr(config, field_name, cls._coerce(field_name, raw))

    @classmethod
    def _coerce(cls, field_name: str, raw: str) -> Any:
        """Convert a string value to the type of the named config field.

        Raises:
            ConfigError: If the field is unknown or the value does not parse
        """
        field_types = {f.name: f.type for f in fields(OrgolinConfig)}
        if field_name not in field_types:
            raise ConfigError(f"Unknown config key: {field_name}")

        field_type = field_types[field_name]
        try:
            if field_type in (bool, "bool"):
                if raw.lower() in ("1", "true", "yes", "on"):
                    return True
                if raw.lower() in ("0", "false", "no", "off"):
                    return False
                raise ValueError(f"not a boolean: {raw}")
            if field_type in (float, "float"):
                return float(raw)
            return raw
        except ValueError as e:
            raise ConfigError(f"Invalid value for {field_name}: {e}") from e

    @classmethod
    def save_config(cls, config: OrgolinConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file atomically with secure permissions.

        Returns:
            Path the config was written to

        Raises:
            ConfigError: If saving fails or path is outside allowed directories
        """
        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = cls._validate_config_path(Path(custom_path).expanduser().resolve())
                config_path.parent.mkdir(parents=True, exist_ok=True)
            else:
                cls.ensure_config_dir()
                config_path = cls.DEFAULT_CONFIG_FILE

            temp_path = config_path.with_suffix(".tmp")

            # Preserve comments/formatting of an existing file
            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()
            for key, value in config.to_dict().items():
                doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except ConfigError:
            raise
        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e

    @classmethod
    def update_config(cls, key: str, raw_value: str, custom_path: str | None = None) -> OrgolinConfig:
        """Set a single config key from its string form and save.

        Raises:
            ConfigError: If the key is unknown or the value is invalid
        """
        config = cls.load_config(custom_path)
        setattr(config, key, cls._coerce(key, raw_value))
        config.validate()
        cls.save_config(config, custom_path)
        return config

    @classmethod
    def get_api_key(cls, env_name: str, cli_value: str | None = None) -> str | None:
        """Resolve an API key: CLI option first, then the environment."""
        if cli_value:
            return cli_value
        value = os.environ.get(env_name, "").strip()
        return value or None


__all__ = [
    "ANTHROPIC_API_KEY_ENV",
    "ConfigError",
    "ConfigManager",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_TRANSLATION_MODEL",
    "ORGO_API_KEY_ENV",
    "OrgolinConfig",
]
