"""Tests for forcewatch.config."""

from pathlib import Path

import pytest

from forcewatch.config import ConfigError, WatchConfig, load_config


def test_defaults(tmp_path):
    config = load_config(env={}, base_dir=tmp_path)
    assert config.subdir == "src"
    assert config.backend == "watchman"
    assert config.deploy_tool == "force"
    assert config.subscription == "forcewatch"
    assert config.watch_root == tmp_path.absolute() / "src"


def test_watch_dir_env_override(tmp_path):
    config = load_config(env={"WATCH_DIR": "force-app"}, base_dir=tmp_path)
    assert config.watch_root == tmp_path.absolute() / "force-app"


def test_empty_env_value_is_ignored(tmp_path):
    config = load_config(env={"WATCH_DIR": ""}, base_dir=tmp_path)
    assert config.subdir == "src"


def test_toml_file(tmp_path):
    path = tmp_path / "custom.toml"
    path.write_text(
        """
[watch]
dir = "app"
backend = "watchdog"
settle_ms = 50

[deploy]
tool = "sfdx force"
"""
    )
    config = load_config(path, env={}, base_dir=tmp_path)
    assert config.subdir == "app"
    assert config.backend == "watchdog"
    assert config.settle_ms == 50
    assert config.deploy_tool == "sfdx force"


def test_env_beats_toml(tmp_path):
    (tmp_path / "forcewatch.toml").write_text('[watch]\ndir = "app"\n')
    config = load_config(env={"WATCH_DIR": "other"}, base_dir=tmp_path)
    assert config.subdir == "other"


def test_default_file_is_picked_up(tmp_path):
    (tmp_path / "forcewatch.toml").write_text('[deploy]\ntool = "force-dev"\n')
    config = load_config(env={}, base_dir=tmp_path)
    assert config.deploy_tool == "force-dev"


def test_explicit_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.toml", env={}, base_dir=tmp_path)


def test_invalid_toml_raises_config_error(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("[watch\n")
    with pytest.raises(ConfigError):
        load_config(path, env={}, base_dir=tmp_path)


def test_unknown_backend_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_config(env={"FORCEWATCH_BACKEND": "inotify"}, base_dir=tmp_path)


def test_watch_root_is_absolute():
    config = WatchConfig(base_dir=Path("relative"), subdir="src")
    assert config.watch_root.is_absolute()
