"""Shared setup for CLI commands: home, config, logging, store."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import click

from ollamachat.core.config import config_path, load_config, resolve_home, sessions_path
from ollamachat.core.fileutil import ensure_dir
from ollamachat.core.storage import SessionStore

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

home_option = click.option(
    "--home",
    type=click.Path(path_type=Path),
    default=None,
    help="Override OCHAT_HOME path.",
)


def load_app(home: Path | None) -> tuple[Path, dict]:
    """Resolve the home directory, load its config and set up logging."""
    home_path = home or resolve_home()
    config = load_config(config_path(home_path))
    setup_logging(home_path, config)
    return home_path, config


def setup_logging(home: Path, config: dict) -> None:
    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx and (ctx.find_root().obj or {}).get("verbose"))
    level_name = "debug" if verbose else config.get("logging", {}).get("level", "warning")

    ensure_dir(home)
    logging.basicConfig(
        level=getattr(logging, str(level_name).upper(), logging.WARNING),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(str(home / "ochat.log"), encoding="utf-8")],
    )


def open_store(home: Path, config: dict) -> SessionStore:
    default_title = config.get("chat", {}).get("default_title", "New Chat")
    return SessionStore(sessions_path(home), default_title=default_title)


def format_ts(ms: int) -> str:
    """Format epoch milliseconds as local ``YYYY-MM-DD HH:MM``."""
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")
