"""
cmdhandler Configuration.

Centralized configuration management using Pydantic Settings.
Loads configuration from environment variables.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def get_xdg_state_dir() -> str:
    """
    Get XDG-compliant state directory for cmdhandler logs.

    Follows XDG Base Directory Specification:
    - Uses $XDG_STATE_HOME/cmdhandler if XDG_STATE_HOME is set
    - Falls back to $HOME/.local/state/cmdhandler if not set
    - Returns relative path ./logs if HOME not available (dev/testing)

    Returns:
        str: Path to state/logs directory
    """
    xdg_state_home = os.getenv("XDG_STATE_HOME")
    if xdg_state_home:
        return str(Path(xdg_state_home) / "cmdhandler" / "logs")

    home = os.getenv("HOME")
    if home:
        return str(Path(home) / ".local" / "state" / "cmdhandler" / "logs")

    # Fallback for development/testing environments without HOME
    return "./logs"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Plugins
    plugin_root: str = "/opt/slack-plugins"  # One subdirectory per loader id
    execution_log: str = "plugin-execution.log"  # Append-only audit trail

    # Execution
    sync_timeout_seconds: float = 300.0  # Job runner requests block at most this long
    background_timeout_seconds: Optional[float] = None  # None = run to completion
    max_workers: int = 32  # Detached execution pool size

    # Metrics
    statsd_enabled: bool = True
    statsd_host: str = "localhost"
    statsd_port: int = 8125
    statsd_prefix: str = "slack-plugin-api"

    # Failure webhook
    notify_timeout_seconds: float = 10.0

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 4443
    api_reload: bool = False
    ssl_certfile: str = ""  # Empty = plain HTTP (TLS terminated upstream)
    ssl_keyfile: str = ""

    # Application
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_dir: str = ""  # XDG-compliant log directory (defaults to XDG state dir if empty)
    log_format: str = "standard"  # standard or json
    log_console_enabled: bool = True  # Enable console (stdout/stderr) logging
    log_file_enabled: bool = True  # Enable file-based logging
    log_max_bytes: int = 10_485_760  # 10MB per log file
    log_backup_count: int = 5  # Keep 5 backup files

    @property
    def log_directory(self) -> Path:
        """Get the log directory path, using XDG default if not specified."""
        if self.log_dir:
            return Path(self.log_dir).expanduser()
        return Path(get_xdg_state_dir())

    @property
    def plugin_root_path(self) -> Path:
        """Plugin root as a Path."""
        return Path(self.plugin_root).expanduser()


# Global settings instance
settings = Settings()
