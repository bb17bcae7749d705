"""Configuration file management for lajan."""

import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from lajan.domain.models import Currency, UserId
from lajan.store.atomic import DEFAULT_LOCK_TIMEOUT
from lajan.store.schema import get_db_path


def get_xdg_config_home() -> Path:
    """Get XDG config directory, with fallback to ~/.config."""
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


def get_config_path() -> Path:
    """Get the config file path (XDG compliant).

    Returns:
        Path to the config file.
    """
    return get_xdg_config_home() / "lajan" / "config.toml"


def default_config() -> dict[str, Any]:
    """Build the configuration written by 'lajan init'."""
    return {
        "user": os.environ.get("USER", "me"),
        "default_currency": Currency.HTG.value,
        "lock_timeout": DEFAULT_LOCK_TIMEOUT,
        "logging": {"level": "WARNING", "json": False},
    }


def create_default_config(config_path: Path | None = None) -> None:
    """Create default config file with secure permissions.

    Args:
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "wb") as f:
        tomli_w.dump(default_config(), f)

    os.chmod(config_path, 0o600)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Configuration dictionary.

    Raises:
        FileNotFoundError: If config file doesn't exist.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "rb") as f:
        return tomllib.load(f)


def load_config_or_default(config_path: Path | None = None) -> dict[str, Any]:
    """Load configuration, falling back to defaults when no file exists yet."""
    try:
        loaded = load_config(config_path)
    except FileNotFoundError:
        return default_config()
    return {**default_config(), **loaded}


def save_config(config: dict[str, Any], config_path: Path | None = None) -> None:
    """Save configuration to TOML file.

    Args:
        config: Configuration dictionary.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    with open(config_path, "wb") as f:
        tomli_w.dump(config, f)

    os.chmod(config_path, 0o600)


def resolve_user(config: dict[str, Any], override: str | None = None) -> UserId:
    """Pick the acting user: explicit option first, then config."""
    return UserId(override or str(config["user"]))


def resolve_db_path(config: dict[str, Any]) -> Path:
    """Database path from config, or the XDG default."""
    configured = config.get("db_path")
    if configured:
        return Path(configured).expanduser()
    return get_db_path()


def resolve_currency(config: dict[str, Any]) -> Currency:
    """Default currency for new accounts, budgets and sols.

    Raises:
        ValueError: If the configured currency is not supported.
    """
    return Currency(str(config.get("default_currency", Currency.HTG.value)).upper())


def set_value(key: str, value: Any, config_path: Path | None = None) -> None:
    """Set a top-level config key, creating the file if needed.

    Args:
        key: Config key, or 'section.key' for nested tables.
        value: New value.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        create_default_config(config_path)

    config = load_config(config_path)
    section, _, name = key.rpartition(".")
    target = config.setdefault(section, {}) if section else config
    target[name] = value
    save_config(config, config_path)
