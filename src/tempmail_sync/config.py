# =============================================================================
# Configuration Management
# =============================================================================
# Handles loading, saving, and validating tempmail-sync configuration.
#
# XDG Base Directory Compliance (https://specifications.freedesktop.org/basedir-spec/):
#   - Config:  $XDG_CONFIG_HOME/tempmail-sync/  (default: ~/.config/tempmail-sync/)
#   - Data:    $XDG_DATA_HOME/tempmail-sync/    (default: ~/.local/share/tempmail-sync/)
#
# Files:
#   - config.toml: User configuration (polling, storage)
#   - tempmail-sync.db: SQLite database with saved sessions and mail
#                       (in data directory, only written on explicit save)
# =============================================================================

import os
import tomllib  # Built into Python 3.11+
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli_w  # For writing TOML (tomllib is read-only)


# =============================================================================
# XDG Directory Management
# =============================================================================

# Application identifier used in all XDG paths
APP_NAME = "tempmail-sync"


def get_xdg_config_home() -> Path:
    """
    Returns the XDG config directory for tempmail-sync.

    Respects $XDG_CONFIG_HOME if set, otherwise uses ~/.config/tempmail-sync/
    """
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / APP_NAME


def get_xdg_data_home() -> Path:
    """
    Returns the XDG data directory for tempmail-sync.

    Respects $XDG_DATA_HOME if set, otherwise uses ~/.local/share/tempmail-sync/
    This is where the SQLite database lives.
    """
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        base = Path(xdg_data)
    else:
        base = Path.home() / ".local" / "share"
    return base / APP_NAME


def ensure_directories() -> dict[str, Path]:
    """
    Creates all required XDG directories if they don't exist.

    Returns:
        Dictionary mapping directory type to path.
    """
    dirs = {
        "config": get_xdg_config_home(),
        "data": get_xdg_data_home(),
    }

    for dir_path in dirs.values():
        dir_path.mkdir(parents=True, exist_ok=True)

    return dirs


# =============================================================================
# Configuration Data Structures
# =============================================================================

@dataclass
class SyncConfig:
    """
    Configuration for background refresh.

    Attributes:
        poll_interval_seconds: How often to re-fetch the session (0 = manual only).
        poll_on_start: Start polling as soon as the context starts.
        max_poll_failures: Stop polling after this many consecutive failures
                           (0 = keep retrying forever).
    """
    poll_interval_seconds: float = 15.0
    poll_on_start: bool = True
    max_poll_failures: int = 0


@dataclass
class StorageConfig:
    """
    Configuration for explicit persistence.

    Attributes:
        use_keyring: Keep restore keys in the system keyring. When off,
                     restore keys are never written anywhere.
    """
    use_keyring: bool = True


@dataclass
class Config:
    """
    Main configuration container for tempmail-sync.

    Attributes:
        sync: Background refresh configuration.
        storage: Persistence configuration.

    Usage:
        >>> config = Config.load()
        >>> config.sync.poll_interval_seconds
        15.0
    """
    sync: SyncConfig = field(default_factory=SyncConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    # -------------------------------------------------------------------------
    # File Paths
    # -------------------------------------------------------------------------

    @staticmethod
    def config_file_path() -> Path:
        """Returns the path to the main config file."""
        return get_xdg_config_home() / "config.toml"

    @staticmethod
    def database_path() -> Path:
        """Returns the path to the SQLite database."""
        return get_xdg_data_home() / "tempmail-sync.db"

    # -------------------------------------------------------------------------
    # Loading and Saving
    # -------------------------------------------------------------------------

    @classmethod
    def load(cls) -> "Config":
        """
        Load configuration from the config file.

        If the config file doesn't exist, returns default configuration.

        Returns:
            Loaded Config object.

        Raises:
            ConfigError: If the config file exists but is invalid.
        """
        ensure_directories()

        config_path = cls.config_file_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file: {e}") from e

        return cls._from_dict(data)

    def save(self) -> None:
        """Save configuration to the config file."""
        ensure_directories()

        with open(self.config_file_path(), "wb") as f:
            tomli_w.dump(self._to_dict(), f)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """
        Create a Config object from a dictionary (parsed TOML).

        Raises:
            ConfigError: If a value has the wrong type or is out of range.
        """
        config = cls()

        sync = data.get("sync", {})
        config.sync = SyncConfig(
            poll_interval_seconds=sync.get("poll_interval_seconds", 15.0),
            poll_on_start=sync.get("poll_on_start", True),
            max_poll_failures=sync.get("max_poll_failures", 0),
        )

        storage = data.get("storage", {})
        config.storage = StorageConfig(
            use_keyring=storage.get("use_keyring", True),
        )

        config.validate()
        return config

    def _to_dict(self) -> dict[str, Any]:
        """Convert Config to a dictionary for TOML serialization."""
        return {
            "sync": {
                "poll_interval_seconds": self.sync.poll_interval_seconds,
                "poll_on_start": self.sync.poll_on_start,
                "max_poll_failures": self.sync.max_poll_failures,
            },
            "storage": {
                "use_keyring": self.storage.use_keyring,
            },
        }

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: On the first invalid value.
        """
        interval = self.sync.poll_interval_seconds
        if isinstance(interval, bool) or not isinstance(interval, (int, float)) or interval < 0:
            raise ConfigError(
                f"sync.poll_interval_seconds must be a non-negative number, got {interval!r}"
            )
        failures = self.sync.max_poll_failures
        if isinstance(failures, bool) or not isinstance(failures, int) or failures < 0:
            raise ConfigError(
                f"sync.max_poll_failures must be a non-negative integer, got {failures!r}"
            )


# =============================================================================
# Exceptions
# =============================================================================

class ConfigError(Exception):
    """Raised when there's an error loading or parsing configuration."""
    pass
