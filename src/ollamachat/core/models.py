"""Core data models for ollamachat."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum


class Sender(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


TITLE_MAX_LENGTH = 50
_ELLIPSIS = "..."


# --- Helpers ---


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    """Time-derived unique id: ``<epoch ms>-<random hex>``."""
    return f"{now_ms()}-{uuid.uuid4().hex[:8]}"


def _parse_sender(value: str) -> str:
    """Known senders become Sender members; others (from newer files) stay as plain strings."""
    try:
        return Sender(value)
    except ValueError:
        return str(value)


def derive_title(content: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """Build a session title from the first line of a message."""
    first_line = content.split("\n", 1)[0].strip()
    if len(first_line) <= max_length:
        return first_line
    return first_line[: max_length - len(_ELLIPSIS)] + _ELLIPSIS


# --- Core Models ---


@dataclass(frozen=True)
class Message:
    """A single turn in a chat session."""

    id: str = field(default_factory=new_id)
    sender: str = Sender.USER
    content: str = ""
    timestamp: int = field(default_factory=now_ms)

    @property
    def sender_name(self) -> str:
        return self.sender.value if isinstance(self.sender, Sender) else str(self.sender)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender": self.sender_name,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        return cls(
            id=str(data.get("id") or new_id()),
            sender=_parse_sender(data.get("sender", Sender.USER)),
            content=data.get("content") or "",
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class Session:
    """A titled conversation thread with ordered messages."""

    id: str = field(default_factory=new_id)
    title: str = ""
    messages: list[Message] = field(default_factory=list)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = 0

    def __post_init__(self) -> None:
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    def has_user_messages(self) -> bool:
        return any(m.sender == Sender.USER for m in self.messages)

    def summary(self) -> dict:
        """Short form used by chat history listings."""
        return {"id": self.id, "title": self.title, "updatedAt": self.updated_at}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Session:
        created = int(data.get("createdAt") or 0)
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            created_at=created,
            updated_at=int(data.get("updatedAt") or created),
        )
