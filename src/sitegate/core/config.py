"""Configuration types with environment variable support.

All settings can be configured via environment variables with the SITEGATE_ prefix.
Example: SITEGATE_DEFAULT_REDIRECT_STATUS=301 makes redirects permanent by default.
"""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


class ServerConfig(BaseSettings):
    """Static file server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SITEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    site_root: str = Field(
        default=".",
        description="Directory holding the site files, _headers and _redirects.",
    )
    bind: str = Field(
        default="0.0.0.0:8080",
        description="host:port to listen on.",
    )
    index_file: str = Field(
        default="index.html",
        description="File served for directory paths.",
    )
    not_found_file: str = Field(
        default="404.html",
        description="File served with status 404 when nothing else matches.",
    )
    hidden_paths: list[str] = Field(
        default_factory=lambda: ["/_headers", "/_redirects"],
        description="Paths that always answer 404, even if the file exists.",
    )


class RulesConfig(BaseSettings):
    """Header and redirect rule configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SITEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    headers_file: str = Field(
        default="_headers",
        description="Headers file name, relative to the site root.",
    )
    redirects_file: str = Field(
        default="_redirects",
        description="Redirects file name, relative to the site root.",
    )
    default_redirect_status: int = Field(
        default=302,
        ge=300,
        le=399,
        description="Status code for redirect lines that do not give one.",
    )


class SitegateConfig(BaseSettings):
    """Master configuration combining all settings.

    Use get_config() to get a cached instance.

    Example:
        config = get_config()
        print(config.server.site_root)
        print(config.rules.default_redirect_status)
    """

    model_config = SettingsConfigDict(
        env_prefix="SITEGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def server(self) -> ServerConfig:
        """Get server configuration."""
        return ServerConfig()

    @property
    def rules(self) -> RulesConfig:
        """Get rules configuration."""
        return RulesConfig()

    def to_env_dict(self) -> dict[str, str]:
        """Export current configuration as environment variable dictionary."""
        result: dict[str, str] = {}

        server = self.server
        result["SITEGATE_SITE_ROOT"] = server.site_root
        result["SITEGATE_BIND"] = server.bind
        result["SITEGATE_INDEX_FILE"] = server.index_file
        result["SITEGATE_NOT_FOUND_FILE"] = server.not_found_file
        result["SITEGATE_HIDDEN_PATHS"] = json.dumps(server.hidden_paths)

        rules = self.rules
        result["SITEGATE_HEADERS_FILE"] = rules.headers_file
        result["SITEGATE_REDIRECTS_FILE"] = rules.redirects_file
        result["SITEGATE_DEFAULT_REDIRECT_STATUS"] = str(rules.default_redirect_status)

        return result

    def to_display_dict(self) -> dict[str, Any]:
        """Export current configuration as a nested dictionary for display."""
        return {
            "server": self.server.model_dump(),
            "rules": self.rules.model_dump(),
        }


_config: SitegateConfig | None = None


def get_config() -> SitegateConfig:
    """Get the global configuration instance.

    Returns a cached instance of SitegateConfig that reads from environment variables.
    To reload config (e.g., in tests), call clear_config() first.
    """
    global _config
    if _config is None:
        _config = SitegateConfig()
    return _config


def clear_config() -> None:
    """Clear the cached configuration.

    Call this to force reloading of environment variables on next get_config() call.
    """
    global _config
    _config = None
