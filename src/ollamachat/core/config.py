"""Configuration loader for ollamachat."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from ollamachat.core.fileutil import atomic_write

log = logging.getLogger(__name__)

DEFAULT_HOME = "~/.ollama-chat"

DEFAULTS: dict = {
    "ollama": {
        "base_url": "http://localhost:11434",
        "model": "codellama:7b-instruct-q5_K_M",
        "timeout": 120.0,
        "stream": True,
    },
    "chat": {
        "history_limit": 20,
        "default_title": "New Chat",
        "include_context": True,
    },
    "logging": {
        "level": "warning",
    },
}


def resolve_home() -> Path:
    """Resolve the data directory: OCHAT_HOME env var > ~/.ollama-chat."""
    env_home = os.environ.get("OCHAT_HOME")
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path(DEFAULT_HOME).expanduser().resolve()


def config_path(home: Path | None = None) -> Path:
    """Return the path to config.yaml."""
    if home is None:
        home = resolve_home()
    return home / "config.yaml"


def sessions_path(home: Path | None = None) -> Path:
    """Return the path to the persisted session collection."""
    if home is None:
        home = resolve_home()
    return home / "chats" / "sessions.json"


def load_config(path: Path | None = None) -> dict:
    """Load config.yaml and merge with defaults.

    Args:
        path: Explicit path to config.yaml. If None, uses default location.

    Returns:
        Merged configuration dict.
    """
    if path is None:
        path = config_path()

    return _deep_merge(DEFAULTS, _read_user_config(path))


def save_config(updates: dict, path: Path | None = None) -> dict:
    """Merge ``updates`` into the user's config.yaml and rewrite it.

    Only the user's own settings are written back, not the defaults.

    Returns:
        The new user config dict.
    """
    if path is None:
        path = config_path()

    user_config = _deep_merge(_read_user_config(path), updates)
    content = yaml.safe_dump(user_config, default_flow_style=False, allow_unicode=True, sort_keys=False)
    atomic_write(path, content)
    log.info("Saved config to %s", path)
    return user_config


def _read_user_config(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        log.warning("Failed to read config at %s, using defaults", path, exc_info=True)
        return {}
    if not isinstance(data, dict):
        log.warning("Ignoring config at %s: expected a mapping", path)
        return {}
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
