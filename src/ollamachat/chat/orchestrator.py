"""Chat orchestration: one active session, user turns in, model turns out.

The orchestrator owns the reference to the active session, writes both sides
of each exchange through SessionStore, calls OllamaClient, and pushes
everything the user should see to a ChatView.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from ollamachat.core.models import Message, Sender, Session, derive_title
from ollamachat.core.storage import SessionNotFound, SessionStore
from ollamachat.llm.ollama_client import OllamaClient, OllamaError

log = logging.getLogger(__name__)

ERROR_PREFIX = "An error occurred"


class SendInProgress(RuntimeError):
    """Raised when send_message() is called while another send is outstanding."""


@runtime_checkable
class ChatView(Protocol):
    """What the orchestrator needs from the presentation layer."""

    def add_message(self, sender: str, text: str) -> None:
        """Show a complete message."""
        ...

    def stream_chunk(self, text: str) -> None:
        """Show the next piece of an assistant reply being streamed."""
        ...

    def finish_stream(self, text: str) -> None:
        """The streamed reply is complete; ``text`` is the whole reply."""
        ...

    def update_chat_history(self, items: list[dict]) -> None:
        """Replace the history list with ``{id, title, updatedAt}`` items."""
        ...

    def set_current_chat(self, session_id: str) -> None:
        ...

    def clear_messages(self) -> None:
        ...

    def load_chat_messages(self, messages: list[Message]) -> None:
        """Replace the visible conversation with ``messages``."""
        ...

    def show_notice(self, text: str) -> None:
        """Show a transient notice (e.g. "chat not found")."""
        ...


class ChatOrchestrator:
    """Drives a single conversation between the user, the store and the model."""

    def __init__(
        self,
        store: SessionStore,
        client: OllamaClient,
        view: ChatView,
        context_provider: Callable[[], str | None] | None = None,
        model: str | None = None,
        stream: bool = True,
        history_limit: int = 20,
    ) -> None:
        self.store = store
        self.client = client
        self.view = view
        self.context_provider = context_provider
        self.model = model
        self.stream = stream
        self.history_limit = history_limit
        self._current_session: Session | None = None
        self._in_flight = False

    @property
    def current_session(self) -> Session | None:
        return self._current_session

    @property
    def busy(self) -> bool:
        return self._in_flight

    # --- Commands from the presentation layer ---

    def send_message(self, text: str) -> str:
        """Send one user message and relay the reply.

        Backend failures never escape: they become an assistant message that
        explains what went wrong, stored and shown like a normal reply.

        Returns:
            The assistant text that was stored and shown.

        Raises:
            SendInProgress: If a previous send has not finished yet.
        """
        if self._in_flight:
            raise SendInProgress("A message is already being sent")

        self._in_flight = True
        try:
            session = self._ensure_session()
            self._record(session, Sender.USER, text)
            self.view.add_message(Sender.USER.value, text)

            reply = self._ask_model(text)

            self._record(session, Sender.ASSISTANT, reply)
            self._update_chat_history()
            return reply
        finally:
            self._in_flight = False

    def new_chat(self) -> Session:
        """Start a fresh session. The previous one stays in the store."""
        session = self.store.create_session()
        self._current_session = session
        self.view.clear_messages()
        self.view.set_current_chat(session.id)
        self._update_chat_history()
        return session

    def load_chat(self, session_id: str) -> Session | None:
        """Make a stored session active and show its messages."""
        try:
            session = self.store.get_session(session_id)
        except SessionNotFound:
            log.info("Chat %s not found", session_id)
            self.view.show_notice(f"Chat not found: {session_id}")
            return None

        self._current_session = session
        self.view.load_chat_messages(list(session.messages))
        self.view.set_current_chat(session.id)
        self._update_chat_history()
        return session

    def load_chat_history(self) -> list[dict]:
        return self._update_chat_history()

    # --- Internal helpers ---

    def _ensure_session(self) -> Session:
        if self._current_session is None:
            self._current_session = self.store.create_session()
            self.view.set_current_chat(self._current_session.id)
        return self._current_session

    def _record(self, session: Session, sender: Sender, text: str) -> None:
        """Persist a turn and mirror it on the in-memory session."""
        message = self.store.add_message(session.id, sender, text)
        if message is None:
            # Storage is best-effort; keep the conversation going in memory.
            message = Message(sender=sender, content=text)
        if sender == Sender.USER and not session.has_user_messages():
            session.title = derive_title(text) or session.title
        session.messages.append(message)

    def _ask_model(self, text: str) -> str:
        context = self._context()
        if not self.stream:
            try:
                reply = self.client.generate(text, model=self.model, context=context)
            except OllamaError as e:
                log.warning("Generate failed: %s", e)
                reply = _error_text(e)
            self.view.add_message(Sender.ASSISTANT.value, reply)
            return reply

        chunks: list[str] = []

        def on_chunk(chunk: str) -> None:
            chunks.append(chunk)
            self.view.stream_chunk(chunk)

        try:
            self.client.generate_stream(text, on_chunk, model=self.model, context=context)
        except OllamaError as e:
            log.warning("Streaming generate failed after %d chunks: %s", len(chunks), e)
            partial = "".join(chunks)
            if partial:
                self.view.finish_stream(partial)
                reply = f"{partial}\n\n{_error_text(e)}"
                self.view.add_message(Sender.ASSISTANT.value, _error_text(e))
            else:
                reply = _error_text(e)
                self.view.add_message(Sender.ASSISTANT.value, reply)
            return reply

        reply = "".join(chunks)
        self.view.finish_stream(reply)
        return reply

    def _context(self) -> str | None:
        if self.context_provider is None:
            return None
        return self.context_provider() or None

    def _update_chat_history(self) -> list[dict]:
        items = [s.summary() for s in self.store.get_recent_sessions(self.history_limit)]
        self.view.update_chat_history(items)
        return items


def _error_text(error: Exception) -> str:
    return f"{ERROR_PREFIX}: {error}"
