"""Tests for ollamachat.chat.orchestrator."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from ollamachat.chat.orchestrator import ChatOrchestrator, ChatView, SendInProgress
from ollamachat.core.models import Sender
from ollamachat.core.storage import SessionStore
from ollamachat.llm.ollama_client import BackendUnavailable, OllamaClient


class RecordingView:
    """ChatView that records every notification."""

    def __init__(self):
        self.events: list[tuple] = []

    def add_message(self, sender, text):
        self.events.append(("add_message", sender, text))

    def stream_chunk(self, text):
        self.events.append(("stream_chunk", text))

    def finish_stream(self, text):
        self.events.append(("finish_stream", text))

    def update_chat_history(self, items):
        self.events.append(("update_chat_history", items))

    def set_current_chat(self, session_id):
        self.events.append(("set_current_chat", session_id))

    def clear_messages(self):
        self.events.append(("clear_messages",))

    def load_chat_messages(self, messages):
        self.events.append(("load_chat_messages", messages))

    def show_notice(self, text):
        self.events.append(("show_notice", text))

    def names(self) -> list[str]:
        return [e[0] for e in self.events]

    def last(self, name: str) -> tuple:
        return [e for e in self.events if e[0] == name][-1]


def _setup(tmp_path: Path, stream: bool = False, **kwargs):
    store = SessionStore(tmp_path / "sessions.json")
    client = MagicMock(spec=OllamaClient)
    view = RecordingView()
    orch = ChatOrchestrator(store, client, view, stream=stream, **kwargs)
    return orch, store, client, view


def test_recording_view_satisfies_protocol():
    assert isinstance(RecordingView(), ChatView)


class TestSendMessage:
    def test_creates_session_on_first_send(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path)
        client.generate.return_value = "Hi there"

        assert orch.current_session is None
        reply = orch.send_message("Hello")

        assert reply == "Hi there"
        session = store.load_session(orch.current_session.id)
        assert [(m.sender, m.content) for m in session.messages] == [
            (Sender.USER, "Hello"),
            (Sender.ASSISTANT, "Hi there"),
        ]
        assert session.title == "Hello"

    def test_notifies_both_turns(self, tmp_path: Path):
        orch, _, client, view = _setup(tmp_path)
        client.generate.return_value = "pong"

        orch.send_message("ping")

        adds = [e for e in view.events if e[0] == "add_message"]
        assert adds == [("add_message", "user", "ping"), ("add_message", "assistant", "pong")]
        assert ("set_current_chat", orch.current_session.id) in view.events
        history = view.last("update_chat_history")[1]
        assert history[0]["title"] == "ping"

    def test_session_identity_stable(self, tmp_path: Path):
        orch, store, client, _ = _setup(tmp_path)
        client.generate.return_value = "ok"

        orch.send_message("one")
        first_id = orch.current_session.id
        orch.send_message("two")

        assert orch.current_session.id == first_id
        assert len(store.load_all_sessions()) == 1
        assert len(store.load_session(first_id).messages) == 4

    def test_passes_model_and_context(self, tmp_path: Path):
        orch, _, client, _ = _setup(
            tmp_path, model="llama3", context_provider=lambda: "File: a.py"
        )
        client.generate.return_value = "ok"

        orch.send_message("explain")
        client.generate.assert_called_once_with("explain", model="llama3", context="File: a.py")

    def test_empty_context_becomes_none(self, tmp_path: Path):
        orch, _, client, _ = _setup(tmp_path, context_provider=lambda: "")
        client.generate.return_value = "ok"

        orch.send_message("explain")
        assert client.generate.call_args[1]["context"] is None

    def test_backend_failure_becomes_assistant_message(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path)
        client.generate.side_effect = BackendUnavailable("Ollama API error: 500")

        reply = orch.send_message("hello?")

        assert reply.startswith("An error occurred")
        assert "500" in reply
        messages = store.load_session(orch.current_session.id).messages
        assert messages[-1].sender == Sender.ASSISTANT
        assert messages[-1].content == reply
        assert view.last("add_message") == ("add_message", "assistant", reply)
        assert orch.busy is False

    @patch("httpx.post")
    def test_http_500_end_to_end(self, mock_post, tmp_path: Path):
        mock_resp = MagicMock()
        mock_resp.raise_for_status.side_effect = httpx.HTTPStatusError(
            "500 Internal Server Error", request=MagicMock(), response=MagicMock()
        )
        mock_post.return_value = mock_resp

        store = SessionStore(tmp_path / "sessions.json")
        orch = ChatOrchestrator(store, OllamaClient(), RecordingView(), stream=False)
        reply = orch.send_message("hi")

        messages = store.load_session(orch.current_session.id).messages
        assert [m.sender for m in messages] == [Sender.USER, Sender.ASSISTANT]
        assert messages[1].content == reply
        assert "error" in reply.lower()

    def test_rejects_concurrent_send(self, tmp_path: Path):
        orch, _, client, _ = _setup(tmp_path)
        seen: list[Exception] = []

        def reentrant(*args, **kwargs):
            with pytest.raises(SendInProgress) as exc:
                orch.send_message("second")
            seen.append(exc.value)
            return "first reply"

        client.generate.side_effect = reentrant
        assert orch.send_message("first") == "first reply"
        assert len(seen) == 1
        assert orch.busy is False

    def test_keeps_going_when_storage_fails(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path)
        client.generate.return_value = "still here"

        with patch("ollamachat.core.storage.atomic_write", side_effect=OSError("read-only")):
            reply = orch.send_message("hello")

        assert reply == "still here"
        assert [m.content for m in orch.current_session.messages] == ["hello", "still here"]
        assert ("add_message", "assistant", "still here") in view.events


class TestStreaming:
    def test_chunks_relayed_then_persisted(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path, stream=True)

        def fake_stream(message, on_chunk, model=None, context=None):
            for part in ("Hel", "lo"):
                on_chunk(part)

        client.generate_stream.side_effect = fake_stream
        reply = orch.send_message("greet me")

        assert reply == "Hello"
        assert [e for e in view.events if e[0] in ("stream_chunk", "finish_stream")] == [
            ("stream_chunk", "Hel"),
            ("stream_chunk", "lo"),
            ("finish_stream", "Hello"),
        ]
        messages = store.load_session(orch.current_session.id).messages
        assert messages[-1].content == "Hello"
        client.generate.assert_not_called()

    def test_failure_before_any_chunk(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path, stream=True)
        client.generate_stream.side_effect = BackendUnavailable("refused")

        reply = orch.send_message("hi")

        assert reply == "An error occurred: refused"
        assert view.last("add_message") == ("add_message", "assistant", reply)
        assert store.load_session(orch.current_session.id).messages[-1].content == reply

    def test_failure_mid_stream_keeps_partial(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path, stream=True)

        def broken(message, on_chunk, model=None, context=None):
            on_chunk("partial answer")
            raise BackendUnavailable("connection reset")

        client.generate_stream.side_effect = broken
        reply = orch.send_message("hi")

        assert reply.startswith("partial answer")
        assert reply.endswith("An error occurred: connection reset")
        assert ("finish_stream", "partial answer") in view.events
        assert store.load_session(orch.current_session.id).messages[-1].content == reply


class TestNewChat:
    def test_new_chat_switches_without_deleting(self, tmp_path: Path):
        orch, store, client, view = _setup(tmp_path)
        client.generate.return_value = "ok"
        orch.send_message("first chat")
        old_id = orch.current_session.id

        new = orch.new_chat()

        assert new.id != old_id
        assert orch.current_session.id == new.id
        assert store.load_session(old_id) is not None
        assert "clear_messages" in view.names()
        assert view.last("set_current_chat") == ("set_current_chat", new.id)

    def test_send_after_new_chat_goes_to_new_session(self, tmp_path: Path):
        orch, store, client, _ = _setup(tmp_path)
        client.generate.return_value = "ok"
        orch.send_message("a")
        new = orch.new_chat()
        orch.send_message("b")

        assert [m.content for m in store.load_session(new.id).messages] == ["b", "ok"]


class TestLoadChat:
    def test_load_existing(self, tmp_path: Path):
        orch, store, _, view = _setup(tmp_path)
        session = store.create_session()
        store.add_message(session.id, "user", "stored question")

        loaded = orch.load_chat(session.id)

        assert loaded.id == session.id
        assert orch.current_session.id == session.id
        shown = view.last("load_chat_messages")[1]
        assert [m.content for m in shown] == ["stored question"]
        assert view.last("set_current_chat") == ("set_current_chat", session.id)

    def test_load_unknown_keeps_current(self, tmp_path: Path):
        orch, _, client, view = _setup(tmp_path)
        client.generate.return_value = "ok"
        orch.send_message("hello")
        current = orch.current_session.id

        assert orch.load_chat("stale-id") is None
        assert orch.current_session.id == current
        assert "not found" in view.last("show_notice")[1].lower()

    def test_send_after_load_appends_to_loaded(self, tmp_path: Path):
        orch, store, client, _ = _setup(tmp_path)
        client.generate.return_value = "answer"
        session = store.create_session()
        store.add_message(session.id, "user", "old")

        orch.load_chat(session.id)
        orch.send_message("new")

        assert [m.content for m in store.load_session(session.id).messages] == ["old", "new", "answer"]


class TestHistory:
    def test_history_limit(self, tmp_path: Path):
        orch, store, _, view = _setup(tmp_path, history_limit=2)
        for _ in range(3):
            store.create_session()

        items = orch.load_chat_history()

        assert len(items) == 2
        assert set(items[0]) == {"id", "title", "updatedAt"}
        assert view.last("update_chat_history")[1] == items
