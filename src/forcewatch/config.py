"""Configuration loading for forcewatch."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "forcewatch.toml"
BACKENDS = ("watchman", "watchdog")


class ConfigError(ValueError):
    """Raised when configuration cannot be parsed or is invalid."""


@dataclass
class WatchConfig:
    """Resolved runtime configuration."""

    base_dir: Path = field(default_factory=Path.cwd)
    """Directory the watched subdirectory is resolved against."""

    subdir: str = "src"
    """Subdirectory to watch (``WATCH_DIR`` in the environment)."""

    backend: str = "watchman"
    """Notification source: ``watchman`` or ``watchdog``."""

    settle_ms: int = 200
    """Quiet period before the watchdog backend emits a batch."""

    subscription: str = "forcewatch"
    """Label the subscription is registered under."""

    deploy_tool: str = "force"
    """Deploy executable, split shell-style (e.g. ``"sfdx force"``)."""

    @property
    def watch_root(self) -> Path:
        return (self.base_dir / self.subdir).absolute()


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    base_dir: str | Path | None = None,
) -> WatchConfig:
    """Load configuration from an optional TOML file and the environment.

    Args:
        path: Path to TOML config file. When None, ``forcewatch.toml`` in
            ``base_dir`` is read if present.
        env: Environment mapping (defaults to ``os.environ``)
        base_dir: Base directory for the watch root (defaults to cwd)

    Returns:
        WatchConfig with environment overrides applied

    Raises:
        FileNotFoundError: If an explicit ``path`` does not exist
        ConfigError: If the file cannot be parsed or holds invalid values
    """
    env = os.environ if env is None else env
    base = Path(base_dir) if base_dir is not None else Path.cwd()

    if path is None:
        config_path = base / DEFAULT_CONFIG_NAME
        raw = _read_toml(config_path) if config_path.exists() else {}
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        raw = _read_toml(config_path)

    watch_raw = raw.get("watch", {})
    deploy_raw = raw.get("deploy", {})

    config = WatchConfig(
        base_dir=base,
        subdir=watch_raw.get("dir", "src"),
        backend=watch_raw.get("backend", "watchman"),
        settle_ms=watch_raw.get("settle_ms", 200),
        subscription=watch_raw.get("subscription", "forcewatch"),
        deploy_tool=deploy_raw.get("tool", "force"),
    )

    if env.get("WATCH_DIR"):
        config.subdir = env["WATCH_DIR"]
    if env.get("FORCEWATCH_BACKEND"):
        config.backend = env["FORCEWATCH_BACKEND"]

    validate_config(config)
    logger.debug(f"Loaded config: root={config.watch_root} backend={config.backend}")
    return config


def validate_config(config: WatchConfig) -> None:
    """Raise ConfigError for values the rest of the tool cannot use."""
    if config.backend not in BACKENDS:
        raise ConfigError(f"Unknown backend '{config.backend}' (expected one of: {', '.join(BACKENDS)})")
    if not isinstance(config.settle_ms, int) or config.settle_ms < 0:
        raise ConfigError(f"settle_ms must be a non-negative integer, got {config.settle_ms!r}")
    if not config.deploy_tool.strip():
        raise ConfigError("deploy tool must not be empty")
    if not config.subscription:
        raise ConfigError("subscription name must not be empty")


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
