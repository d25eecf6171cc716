"""Configuration management for the engine, server and CLI."""

import os
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import click
from dotenv import load_dotenv

from .errors import ConfigError
from .retention import FREE_USER_LOG_HISTORY_DAYS
from .undo import UNDO_TIMEOUT_SECONDS

DEFAULT_DB_PATH = Path.home() / ".adagio" / "adagio.db"
DEFAULT_PORT = 7878
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{raw}'")


class EngineConfig:
    """Settings read from ADAGIO_* environment variables."""

    def __init__(self, env: Optional[Mapping[str, str]] = None):
        env = os.environ if env is None else env
        self.db_path = Path(env.get("ADAGIO_DB_PATH") or DEFAULT_DB_PATH).expanduser()
        self.remote_url = env.get("ADAGIO_REMOTE_URL") or None
        self.remote_token = env.get("ADAGIO_REMOTE_TOKEN") or None
        self.poll_seconds = _int_env(env, "ADAGIO_POLL_SECONDS", 5)
        self.textgen_url = env.get("ADAGIO_TEXTGEN_URL") or None
        self.textgen_key = env.get("ADAGIO_TEXTGEN_KEY") or None
        self.timezone = env.get("ADAGIO_TIMEZONE") or None
        self.free_history_days = _int_env(env, "ADAGIO_FREE_HISTORY_DAYS", FREE_USER_LOG_HISTORY_DAYS)
        self.undo_seconds = _int_env(env, "ADAGIO_UNDO_SECONDS", UNDO_TIMEOUT_SECONDS)
        self.port = _int_env(env, "ADAGIO_PORT", DEFAULT_PORT)
        self.log_level = (env.get("ADAGIO_LOG_LEVEL") or "INFO").upper()

    @property
    def tzinfo(self):
        """Configured zone, or None for the host's local zone."""
        if not self.timezone:
            return None
        return ZoneInfo(self.timezone)

    def validate(self) -> None:
        """Validate configuration."""
        if self.poll_seconds < 1:
            raise ConfigError("ADAGIO_POLL_SECONDS must be at least 1")
        if self.free_history_days < 1:
            raise ConfigError("ADAGIO_FREE_HISTORY_DAYS must be at least 1")
        if self.undo_seconds < 0:
            raise ConfigError("ADAGIO_UNDO_SECONDS cannot be negative")
        if not 0 < self.port < 65536:
            raise ConfigError(f"ADAGIO_PORT out of range: {self.port}")
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"Invalid ADAGIO_LOG_LEVEL '{self.log_level}'. "
                f"Valid options: {', '.join(LOG_LEVELS)}"
            )
        if self.timezone:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise ConfigError(f"Unknown ADAGIO_TIMEZONE '{self.timezone}'")
        for name, url in (("ADAGIO_REMOTE_URL", self.remote_url), ("ADAGIO_TEXTGEN_URL", self.textgen_url)):
            if url and not url.startswith(("http://", "https://")):
                raise ConfigError(f"{name} must be an http(s) URL, got '{url}'")


def get_config(dotenv_path: Optional[str] = None) -> EngineConfig:
    """Load .env (if any) and return a validated configuration."""
    load_dotenv(dotenv_path)
    config = EngineConfig()
    config.validate()
    return config


def db_option(f):
    """Decorator to add a database path option to commands."""
    return click.option(
        "--db",
        "db_path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Local database path (overrides ADAGIO_DB_PATH)",
    )(f)


def verbose_option(f):
    """Decorator to add verbose option to commands."""
    return click.option(
        "--verbose", "-v",
        is_flag=True,
        help="Enable verbose output",
    )(f)
