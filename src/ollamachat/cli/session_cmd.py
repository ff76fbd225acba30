"""CLI commands for stored chats: history, show, rename, delete, clear."""

from __future__ import annotations

from pathlib import Path

import click

from ollamachat.cli._common import format_ts, home_option, load_app, open_store
from ollamachat.core.models import Sender


@click.command("history")
@click.option("--limit", "-n", default=None, type=int, help="Number of chats to list.")
@home_option
def history_cmd(limit: int | None, home: Path | None) -> None:
    """List recent chats, newest first."""
    home_path, config = load_app(home)
    store = open_store(home_path, config)
    if limit is None:
        limit = config.get("chat", {}).get("history_limit", 20)

    sessions = store.get_recent_sessions(limit)
    if not sessions:
        click.echo("No chats yet.")
        return

    for s in sessions:
        click.echo(f"  {s.id}  {format_ts(s.updated_at)}  ({len(s.messages)} msgs)  {s.title}")


@click.command("show")
@click.argument("session_id")
@home_option
def show_cmd(session_id: str, home: Path | None) -> None:
    """Print every message of a stored chat."""
    home_path, config = load_app(home)
    session = open_store(home_path, config).load_session(session_id)
    if session is None:
        click.echo(f"Chat not found: {session_id}")
        return

    click.echo(f"# {session.title}")
    click.echo(f"Created: {format_ts(session.created_at)}  Updated: {format_ts(session.updated_at)}\n")
    for m in session.messages:
        label = "You" if m.sender == Sender.USER else "Assistant"
        click.echo(f"[{format_ts(m.timestamp)}] {label}:")
        click.echo(m.content)
        click.echo()


@click.command("rename")
@click.argument("session_id")
@click.argument("title")
@home_option
def rename_cmd(session_id: str, title: str, home: Path | None) -> None:
    """Set the TITLE of a stored chat."""
    home_path, config = load_app(home)
    store = open_store(home_path, config)
    if store.load_session(session_id) is None:
        click.echo(f"Chat not found: {session_id}")
        return
    store.update_session_title(session_id, title)
    click.echo(f"Renamed {session_id}: {title}")


@click.command("delete")
@click.argument("session_id")
@home_option
def delete_cmd(session_id: str, home: Path | None) -> None:
    """Delete a stored chat."""
    home_path, config = load_app(home)
    store = open_store(home_path, config)
    if store.load_session(session_id) is None:
        click.echo(f"Chat not found: {session_id}")
        return
    store.delete_session(session_id)
    click.echo(f"Deleted {session_id}")


@click.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Don't ask for confirmation.")
@home_option
def clear_cmd(yes: bool, home: Path | None) -> None:
    """Delete every stored chat."""
    home_path, config = load_app(home)

    if not yes:
        answer = click.prompt("Delete all chats? [y/N]", default="N", show_default=False)
        if answer.lower() not in ("y", "yes"):
            click.echo("Aborted.")
            return

    store = open_store(home_path, config)
    count = len(store.load_all_sessions())
    store.clear_all_sessions()
    click.echo(f"Cleared {count} chats.")
