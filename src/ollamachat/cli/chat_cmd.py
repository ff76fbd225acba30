"""CLI commands for talking to the model: ochat chat, ochat ask."""

from __future__ import annotations

from pathlib import Path

import click

from ollamachat.chat.context import WorkspaceContext
from ollamachat.chat.orchestrator import ChatOrchestrator
from ollamachat.cli._common import home_option, load_app, open_store
from ollamachat.cli.console import ConsoleView
from ollamachat.llm.ollama_client import OllamaClient

_HELP_TEXT = """\
Commands:
  /new         start a new chat
  /history     list recent chats
  /load <id>   switch to a stored chat
  /quit        leave"""


def _build_orchestrator(
    home: Path | None,
    view: ConsoleView,
    model: str | None,
    no_stream: bool,
    files: tuple[Path, ...],
    workspace: Path | None,
) -> ChatOrchestrator:
    home_path, config = load_app(home)
    ollama_cfg = config.get("ollama", {})
    chat_cfg = config.get("chat", {})

    context_provider = None
    if files and chat_cfg.get("include_context", True):
        context_provider = WorkspaceContext(workspace or Path.cwd(), files)

    return ChatOrchestrator(
        store=open_store(home_path, config),
        client=OllamaClient(ollama_cfg),
        view=view,
        context_provider=context_provider,
        model=model or ollama_cfg.get("model"),
        stream=ollama_cfg.get("stream", True) and not no_stream,
        history_limit=chat_cfg.get("history_limit", 20),
    )


def _chat_options(f):
    f = click.option("--session", "-s", "session_id", default=None, help="Continue a stored chat.")(f)
    f = click.option("--model", "-m", default=None, help="Model to use for this run.")(f)
    f = click.option("--no-stream", is_flag=True, help="Wait for the full reply instead of streaming.")(f)
    f = click.option(
        "--file",
        "-f",
        "files",
        multiple=True,
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Open file to include as context (repeatable).",
    )(f)
    f = click.option(
        "--workspace",
        "-w",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=None,
        help="Workspace root for --file paths (default: current directory).",
    )(f)
    return home_option(f)


# --- ochat chat ---


@click.command("chat")
@_chat_options
def chat_cmd(
    session_id: str | None,
    model: str | None,
    no_stream: bool,
    files: tuple[Path, ...],
    workspace: Path | None,
    home: Path | None,
) -> None:
    """Start an interactive chat with the local Ollama model."""
    view = ConsoleView(echo_user=False)
    orchestrator = _build_orchestrator(home, view, model, no_stream, files, workspace)

    if not orchestrator.client.is_available():
        click.echo(
            f"Warning: Ollama is not reachable at {orchestrator.client.base_url}. "
            "Start it with 'ollama serve'.",
            err=True,
        )

    if session_id:
        orchestrator.load_chat(session_id)
    orchestrator.load_chat_history()

    click.echo("Type /help for commands.")
    while True:
        try:
            text = click.prompt("You", prompt_suffix="> ").strip()
        except click.Abort:
            click.echo()
            break

        if not text:
            continue
        if text in ("/quit", "/exit"):
            break
        if text == "/help":
            click.echo(_HELP_TEXT)
        elif text == "/new":
            orchestrator.new_chat()
        elif text == "/history":
            orchestrator.load_chat_history()
            view.print_history()
        else:
            command, _, arg = text.partition(" ")
            if command == "/load":
                target = arg.strip()
                if target:
                    orchestrator.load_chat(target)
                else:
                    click.echo("Usage: /load <id>")
            else:
                orchestrator.send_message(text)


# --- ochat ask ---


@click.command("ask")
@click.argument("message")
@_chat_options
def ask_cmd(
    message: str,
    session_id: str | None,
    model: str | None,
    no_stream: bool,
    files: tuple[Path, ...],
    workspace: Path | None,
    home: Path | None,
) -> None:
    """Send a single MESSAGE and print the reply.

    Starts a new chat unless --session is given.
    """
    view = ConsoleView(echo_user=False, replay=False)
    orchestrator = _build_orchestrator(home, view, model, no_stream, files, workspace)

    if session_id and orchestrator.load_chat(session_id) is None:
        return

    orchestrator.send_message(message)
    if orchestrator.current_session is not None:
        click.echo(click.style(f"(chat {orchestrator.current_session.id})", dim=True))
