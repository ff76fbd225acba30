"""CLI commands for the Ollama server: status, models, configure."""

from __future__ import annotations

from pathlib import Path

import click

from ollamachat.cli._common import home_option, load_app
from ollamachat.core.config import config_path, save_config
from ollamachat.llm.ollama_client import BackendUnavailable, OllamaClient


@click.command("status")
@home_option
def status_cmd(home: Path | None) -> None:
    """Test the connection to Ollama and list its models."""
    _, config = load_app(home)
    client = OllamaClient(config.get("ollama", {}))

    if not client.is_available():
        click.echo(f"Ollama is not reachable at {client.base_url}. Start it with 'ollama serve'.")
        return

    try:
        models = client.available_models()
    except BackendUnavailable as e:
        click.echo(f"Connected to {client.base_url}, but listing models failed: {e}")
        return

    click.echo(f"Connected to {client.base_url}.")
    click.echo(f"Available models: {', '.join(models) if models else '(none)'}")
    click.echo(f"Default model: {client.model}")


@click.command("models")
@home_option
def models_cmd(home: Path | None) -> None:
    """List models installed on the Ollama server."""
    _, config = load_app(home)
    client = OllamaClient(config.get("ollama", {}))

    try:
        models = client.available_models()
    except BackendUnavailable as e:
        click.echo(f"Error: {e}")
        return

    if not models:
        click.echo("No models installed. Pull one with 'ollama pull <model>'.")
        return
    for name in models:
        marker = "*" if name == client.model else " "
        click.echo(f" {marker} {name}")


@click.command("configure")
@click.option("--url", default=None, help="Ollama server URL, e.g. http://localhost:11434.")
@click.option("--model", "-m", default=None, help="Default model.")
@home_option
def configure_cmd(url: str | None, model: str | None, home: Path | None) -> None:
    """Set the Ollama server URL and default model.

    Prompts for the URL when no option is given.
    """
    home_path, config = load_app(home)
    current = config.get("ollama", {})

    if url is None and model is None:
        url = click.prompt(
            "Ollama server URL",
            default=current.get("base_url", "http://localhost:11434"),
        )

    updates: dict = {}
    if url:
        if not url.startswith(("http://", "https://")):
            click.echo(f"Invalid URL: {url}")
            return
        updates["base_url"] = url.rstrip("/")
    if model:
        updates["model"] = model

    save_config({"ollama": updates}, config_path(home_path))
    for key, value in updates.items():
        click.echo(f"Set ollama.{key} = {value}")
