"""Tests for configuration loading and saving."""

import pytest

from tempmail_sync.config import (
    Config,
    ConfigError,
    SyncConfig,
    get_xdg_config_home,
    get_xdg_data_home,
)


@pytest.fixture(autouse=True)
def xdg_dirs(tmp_path, monkeypatch):
    """Point the XDG directories at a temporary location."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    return tmp_path


def write_config(text: str) -> None:
    path = Config.config_file_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def test_xdg_paths(xdg_dirs):
    assert get_xdg_config_home() == xdg_dirs / "config" / "tempmail-sync"
    assert Config.database_path() == xdg_dirs / "data" / "tempmail-sync" / "tempmail-sync.db"


def test_xdg_fallback(monkeypatch, tmp_path):
    monkeypatch.delenv("XDG_DATA_HOME")
    monkeypatch.setenv("HOME", str(tmp_path))

    assert get_xdg_data_home() == tmp_path / ".local" / "share" / "tempmail-sync"


def test_defaults_when_no_file():
    config = Config.load()

    assert config.sync.poll_interval_seconds == 15.0
    assert config.sync.poll_on_start is True
    assert config.storage.use_keyring is True
    assert get_xdg_config_home().is_dir()


def test_save_and_load():
    config = Config()
    config.sync.poll_interval_seconds = 30
    config.sync.max_poll_failures = 5
    config.storage.use_keyring = False
    config.save()

    loaded = Config.load()

    assert loaded.sync.poll_interval_seconds == 30
    assert loaded.sync.max_poll_failures == 5
    assert loaded.storage.use_keyring is False


def test_partial_file_keeps_defaults():
    write_config("[sync]\npoll_on_start = false\n")

    config = Config.load()

    assert config.sync.poll_on_start is False
    assert config.sync.poll_interval_seconds == 15.0


def test_invalid_toml():
    write_config("[sync\npoll_interval_seconds = ")

    with pytest.raises(ConfigError, match="Invalid config file"):
        Config.load()


@pytest.mark.parametrize("text", [
    "[sync]\npoll_interval_seconds = -1\n",
    "[sync]\npoll_interval_seconds = \"often\"\n",
    "[sync]\npoll_interval_seconds = true\n",
    "[sync]\nmax_poll_failures = 1.5\n",
    "[sync]\nmax_poll_failures = -2\n",
])
def test_invalid_values(text):
    write_config(text)

    with pytest.raises(ConfigError):
        Config.load()


def test_validate_accepts_manual_only():
    Config(sync=SyncConfig(poll_interval_seconds=0)).validate()
