"""CLI entry point for ollamachat (ochat command)."""

import click

from ollamachat import __version__
from ollamachat.cli.chat_cmd import ask_cmd, chat_cmd
from ollamachat.cli.server_cmd import configure_cmd, models_cmd, status_cmd
from ollamachat.cli.session_cmd import (
    clear_cmd,
    delete_cmd,
    history_cmd,
    rename_cmd,
    show_cmd,
)


@click.group()
@click.version_option(version=__version__, prog_name="ollamachat")
@click.option("--verbose", "-v", is_flag=True, help="Write debug logs to ochat.log.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """ollamachat — chat with a local Ollama model, with saved sessions."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


cli.add_command(chat_cmd)
cli.add_command(ask_cmd)
cli.add_command(history_cmd)
cli.add_command(show_cmd)
cli.add_command(rename_cmd)
cli.add_command(delete_cmd)
cli.add_command(clear_cmd)
cli.add_command(status_cmd)
cli.add_command(models_cmd)
cli.add_command(configure_cmd)


if __name__ == "__main__":
    cli()
