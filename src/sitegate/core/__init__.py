"""Core."""

from .config import (
    RulesConfig,
    ServerConfig,
    SitegateConfig,
    clear_config,
    get_config,
    load_config_from_file,
)
from .exceptions import SitegateError, format_error_for_user

__all__ = [
    # Config
    "ServerConfig",
    "RulesConfig",
    "SitegateConfig",
    "get_config",
    "clear_config",
    "load_config_from_file",
    # Errors
    "SitegateError",
    "format_error_for_user",
]
