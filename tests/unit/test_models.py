"""Tests for ollamachat.core.models."""

from ollamachat.core.models import Message, Sender, Session, derive_title, new_id


class TestDeriveTitle:
    def test_first_line(self):
        assert derive_title("Fix the bug\nin parser.ts") == "Fix the bug"

    def test_strips_whitespace(self):
        assert derive_title("   hello   \nworld") == "hello"

    def test_exactly_fifty_kept(self):
        text = "x" * 50
        assert derive_title(text) == text

    def test_long_line_truncated(self):
        title = derive_title("a" * 60)
        assert title == "a" * 47 + "..."
        assert len(title) == 50

    def test_empty(self):
        assert derive_title("") == ""


class TestNewId:
    def test_unique(self):
        ids = {new_id() for _ in range(500)}
        assert len(ids) == 500

    def test_time_prefix(self):
        prefix = new_id().split("-")[0]
        assert prefix.isdigit()


class TestSession:
    def test_updated_never_before_created(self):
        s = Session(created_at=1000, updated_at=10)
        assert s.updated_at == 1000

    def test_summary(self):
        s = Session(id="abc", title="T", created_at=5, updated_at=7)
        assert s.summary() == {"id": "abc", "title": "T", "updatedAt": 7}

    def test_to_dict_uses_camel_case_keys(self):
        s = Session(
            id="s1",
            title="Hi",
            created_at=100,
            updated_at=200,
            messages=[Message(id="m1", sender=Sender.USER, content="yo", timestamp=150)],
        )
        assert s.to_dict() == {
            "id": "s1",
            "title": "Hi",
            "messages": [{"id": "m1", "sender": "user", "content": "yo", "timestamp": 150}],
            "createdAt": 100,
            "updatedAt": 200,
        }

    def test_from_dict_tolerates_missing_fields(self):
        s = Session.from_dict({"id": "old", "createdAt": 42})
        assert s.title == ""
        assert s.messages == []
        assert s.updated_at == 42

    def test_from_dict_ignores_unknown_fields(self):
        s = Session.from_dict({"id": "x", "future_field": True, "messages": [
            {"id": "m", "sender": "assistant", "content": "hi", "timestamp": 1, "extra": 1},
        ]})
        assert s.messages[0].sender == Sender.ASSISTANT

    def test_unknown_sender_kept_as_text(self):
        data = {"id": "m", "sender": "system", "content": "be brief", "timestamp": 1}
        m = Message.from_dict(data)
        assert m.sender == "system"
        assert m.sender_name == "system"
        assert m.to_dict() == data

    def test_known_sender_becomes_enum(self):
        m = Message.from_dict({"sender": "user", "content": "hi"})
        assert m.sender is Sender.USER
        assert m.sender_name == "user"

    def test_has_user_messages(self):
        s = Session(messages=[Message(sender=Sender.ASSISTANT, content="hello")])
        assert s.has_user_messages() is False
        s.messages.append(Message(sender=Sender.USER, content="hi"))
        assert s.has_user_messages() is True
