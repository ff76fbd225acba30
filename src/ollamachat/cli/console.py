"""Terminal implementation of ChatView."""

from __future__ import annotations

import click

from ollamachat.cli._common import format_ts
from ollamachat.core.models import Message

_LABELS = {"user": "You", "assistant": "Assistant"}
_COLORS = {"user": "cyan", "assistant": "green"}


class ConsoleView:
    """Prints the conversation with click.echo."""

    def __init__(self, echo_user: bool = True, replay: bool = True) -> None:
        self.echo_user = echo_user
        self.replay = replay
        self.history: list[dict] = []
        self.current_chat: str | None = None
        self._streaming = False

    def add_message(self, sender: str, text: str) -> None:
        if sender == "user" and not self.echo_user:
            return
        click.echo(f"{self._label(sender)} {text}")

    def stream_chunk(self, text: str) -> None:
        if not self._streaming:
            click.echo(f"{self._label('assistant')} ", nl=False)
            self._streaming = True
        click.echo(text, nl=False)

    def finish_stream(self, text: str) -> None:
        if self._streaming:
            click.echo()
        self._streaming = False

    def update_chat_history(self, items: list[dict]) -> None:
        self.history = items

    def set_current_chat(self, session_id: str) -> None:
        self.current_chat = session_id

    def clear_messages(self) -> None:
        click.echo(click.style("--- new chat ---", dim=True))

    def load_chat_messages(self, messages: list[Message]) -> None:
        if not self.replay:
            return
        for m in messages:
            click.echo(f"{self._label(m.sender_name)} {m.content}")

    def show_notice(self, text: str) -> None:
        click.echo(text, err=True)

    def print_history(self) -> None:
        if not self.history:
            click.echo("No chats yet.")
            return
        for item in self.history:
            marker = "*" if item["id"] == self.current_chat else " "
            click.echo(f" {marker} {item['id']}  {format_ts(item['updatedAt'])}  {item['title']}")

    @staticmethod
    def _label(sender: str) -> str:
        return click.style(f"{_LABELS.get(sender, sender)}:", fg=_COLORS.get(sender), bold=True)
