"""Configuration management for Touchline.

Loads configuration from environment variables and .env file.
Provides validation and sensible defaults.

Usage:
    from touchline.core.config import get_config, validate_config

    config = get_config()
    issues = validate_config(config)
    if issues:
        for issue in issues:
            print(f"Config issue: {issue}")
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from touchline.core.exceptions import ConfigurationError

# Default paths and tunables (defined once, used by both Config and load_config)
DEFAULT_DB_PATH = Path.home() / ".touchline" / "touchline.db"
DEFAULT_LOG_PATH = Path.home() / ".touchline" / "logs"
DEFAULT_CADENCE_DAYS = 7
DEFAULT_HISTORY_WINDOW = 50
DEFAULT_SWEEP_WORKERS = 1


@dataclass
class Config:
    """Application configuration.

    Attributes:
        db_path: Path to SQLite database file
        log_path: Directory for log files
        cadence_days: Calendar days between automatic follow-ups
        history_window: How many recent send rows the history reader scans
        sweep_workers: Concurrent recomputes during a sweep
        debug: Enable debug mode
    """

    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_PATH)
    cadence_days: int = DEFAULT_CADENCE_DAYS
    history_window: int = DEFAULT_HISTORY_WINDOW
    sweep_workers: int = DEFAULT_SWEEP_WORKERS
    debug: bool = False


def load_env_file(path: Path) -> dict[str, str]:
    """Parse .env file.

    Handles:
        - KEY=VALUE format
        - Comments (lines starting with #)
        - Blank lines
        - Quoted values

    Args:
        path: Path to .env file

    Returns:
        Dictionary of environment variables
    """
    env_vars: dict[str, str] = {}

    if not path.exists():
        return env_vars

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()

                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    value = value[1:-1]

                if key:
                    env_vars[key] = value

    return env_vars


def _get_path(key: str, default: Path, env_vars: dict[str, str]) -> Path:
    """Get path from environment, expanding ~ and resolving."""
    value = os.environ.get(key) or env_vars.get(key)
    if value:
        return Path(value).expanduser().resolve()
    return default


def _get_int(key: str, default: int, env_vars: dict[str, str]) -> int:
    """Get integer from environment.

    Raises:
        ConfigurationError: If the value is present but not an integer
    """
    value = os.environ.get(key) or env_vars.get(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _get_bool(key: str, default: bool, env_vars: dict[str, str]) -> bool:
    """Get boolean from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def load_config(env_file: Optional[Path] = None) -> Config:
    """Load configuration from environment and .env file.

    Priority:
        1. Environment variables (highest)
        2. .env file
        3. Default values (lowest)

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If a numeric setting is not a number
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"

    env_vars = load_env_file(Path(env_file))

    return Config(
        db_path=_get_path("TOUCHLINE_DB_PATH", DEFAULT_DB_PATH, env_vars),
        log_path=_get_path("TOUCHLINE_LOG_PATH", DEFAULT_LOG_PATH, env_vars),
        cadence_days=_get_int("TOUCHLINE_CADENCE_DAYS", DEFAULT_CADENCE_DAYS, env_vars),
        history_window=_get_int("TOUCHLINE_HISTORY_WINDOW", DEFAULT_HISTORY_WINDOW, env_vars),
        sweep_workers=_get_int("TOUCHLINE_SWEEP_WORKERS", DEFAULT_SWEEP_WORKERS, env_vars),
        debug=_get_bool("TOUCHLINE_DEBUG", False, env_vars),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration.

    Checks:
        - Database and log directories exist or can be created
        - Directories are writable
        - Cadence, history window and worker count are positive

    Args:
        config: Configuration to validate

    Returns:
        List of issues (empty if valid)
    """
    issues: list[str] = []

    db_dir = config.db_path.parent
    try:
        db_dir.mkdir(parents=True, exist_ok=True)
        if not os.access(db_dir, os.W_OK):
            issues.append(f"Database directory not writable: {db_dir}")
    except OSError as e:
        issues.append(f"Cannot create database directory {db_dir}: {e}")

    try:
        config.log_path.mkdir(parents=True, exist_ok=True)
        if not os.access(config.log_path, os.W_OK):
            issues.append(f"Log directory not writable: {config.log_path}")
    except OSError as e:
        issues.append(f"Cannot create log directory {config.log_path}: {e}")

    if config.cadence_days < 1:
        issues.append(
            f"CRITICAL: TOUCHLINE_CADENCE_DAYS must be at least 1, got {config.cadence_days}"
        )

    if config.history_window < 1:
        issues.append(
            f"CRITICAL: TOUCHLINE_HISTORY_WINDOW must be at least 1, got {config.history_window}"
        )

    if config.sweep_workers < 1:
        issues.append(f"TOUCHLINE_SWEEP_WORKERS must be at least 1, got {config.sweep_workers}")

    return issues


# Singleton config
_config: Optional[Config] = None


def get_config() -> Config:
    """Return cached configuration singleton.

    Loads configuration on first call, returns cached version thereafter.

    Returns:
        Application configuration
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset cached configuration.

    Used primarily for testing.
    """
    global _config
    _config = None
