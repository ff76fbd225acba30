"""Session storage: one JSON document holding every chat session.

Every mutation reloads the whole collection, applies the change and rewrites
the file atomically under an advisory lock. Cost is O(total sessions) per
write, which is fine for the tens-to-hundreds of sessions a single user keeps.

Storage is auxiliary state: I/O and parse failures are logged and degrade to
empty results or no-ops instead of propagating to the caller.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

from ollamachat.core.fileutil import atomic_write, file_lock
from ollamachat.core.models import Message, Sender, Session, derive_title, now_ms

log = logging.getLogger(__name__)

DEFAULT_TITLE = "New Chat"


class StorageError(OSError):
    """Raised internally when the session collection cannot be read or written."""


class SessionNotFound(KeyError):
    """Raised by SessionStore.get_session() for an unknown session id."""


class SessionStore:
    """Create/load/append/delete/list operations over the session collection."""

    def __init__(self, path: Path, default_title: str = DEFAULT_TITLE) -> None:
        self.path = path
        self.default_title = default_title

    # --- Reads ---

    def load_all_sessions(self) -> list[Session]:
        """Return every stored session in file order.

        A missing or unreadable collection counts as "no sessions".
        """
        try:
            return self._read()
        except StorageError:
            log.warning("Failed to read sessions from %s", self.path, exc_info=True)
            return []

    def load_session(self, session_id: str) -> Session | None:
        """Return the session with ``session_id``, or None if there is none."""
        for session in self.load_all_sessions():
            if session.id == session_id:
                return session
        return None

    def get_session(self, session_id: str) -> Session:
        """Like load_session(), but raises SessionNotFound."""
        session = self.load_session(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def get_session_messages(self, session_id: str) -> list[Message]:
        session = self.load_session(session_id)
        return list(session.messages) if session else []

    def get_recent_sessions(self, limit: int = 10) -> list[Session]:
        """Return up to ``limit`` sessions, most recently updated first."""
        if limit <= 0:
            return []
        sessions = sorted(self.load_all_sessions(), key=lambda s: s.updated_at, reverse=True)
        return sessions[:limit]

    # --- Mutations ---

    def create_session(self, title: str | None = None) -> Session:
        """Create and persist an empty session."""
        session = Session(title=title if title is not None else self.default_title)
        self.save_session(session, updated_at=session.created_at)
        log.debug("Created session %s", session.id)
        return session

    def save_session(self, session: Session, updated_at: int | None = None) -> None:
        """Insert or replace ``session`` by id and rewrite the collection.

        Stamps ``session.updated_at`` (now, unless given) before writing.
        """
        _stamp(session, updated_at)
        try:
            with file_lock(self.path):
                entries = self._read_entries_or_empty()
                _upsert(entries, session)
                self._write(entries)
        except OSError:
            log.warning("Failed to save session %s to %s", session.id, self.path, exc_info=True)

    def add_message(self, session_id: str, sender: str, content: str) -> Message | None:
        """Append a message to a stored session.

        The first user message of a session also becomes its title.

        Returns:
            The new Message, or None if the session does not exist.
        """
        message = Message(sender=Sender(sender), content=content)

        def append(session: Session) -> None:
            if message.sender == Sender.USER and not session.has_user_messages():
                session.title = derive_title(content) or session.title
            session.messages.append(message)

        if self._update(session_id, append) is None:
            log.warning("Cannot add message: session %s not found", session_id)
            return None
        return message

    def update_session_title(self, session_id: str, title: str) -> None:
        def rename(session: Session) -> None:
            session.title = title

        self._update(session_id, rename)

    def delete_session(self, session_id: str) -> None:
        """Remove a session. Unknown ids are a no-op."""
        try:
            with file_lock(self.path):
                entries = self._read_entries_or_empty()
                remaining = [e for e in entries if _entry_id(e) != session_id]
                self._write(remaining)
        except OSError:
            log.warning("Failed to delete session %s from %s", session_id, self.path, exc_info=True)

    def clear_all_sessions(self) -> None:
        try:
            with file_lock(self.path):
                self._write([])
        except OSError:
            log.warning("Failed to clear sessions in %s", self.path, exc_info=True)

    # --- Internal helpers ---

    def _update(self, session_id: str, mutate: Callable[[Session], None]) -> Session | None:
        """Load, change and save one session inside a single locked section.

        Returns the updated session, or None if it isn't stored. A failed
        write is logged; the returned session then only lives in memory.
        """
        try:
            with file_lock(self.path):
                entries = self._read_entries_or_empty()
                session = next((s for s in map(_parse, entries) if s and s.id == session_id), None)
                if session is None:
                    return None
                mutate(session)
                _stamp(session)
                _upsert(entries, session)
                try:
                    self._write(entries)
                except StorageError:
                    log.warning("Failed to save session %s to %s", session_id, self.path, exc_info=True)
                return session
        except OSError:
            log.warning("Cannot lock %s to update session %s", self.path, session_id, exc_info=True)
            return None

    def _read(self) -> list[Session]:
        return [s for s in map(_parse, self._read_entries()) if s is not None]

    def _read_entries(self) -> list:
        """Raw JSON records, including ones this version can't parse."""
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = json.loads(raw) if raw.strip() else []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e

        if not isinstance(data, list):
            raise StorageError(f"Expected a JSON array in {self.path}")
        return data

    def _read_entries_or_empty(self) -> list:
        """Read for a rewrite; a corrupt file is replaced rather than blocking writes."""
        try:
            return self._read_entries()
        except StorageError:
            log.warning("Discarding unreadable session collection %s", self.path, exc_info=True)
            return []

    def _write(self, entries: list) -> None:
        content = json.dumps(entries, indent=2, ensure_ascii=False)
        try:
            atomic_write(self.path, content)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e


def _parse(entry) -> Session | None:
    try:
        return Session.from_dict(entry)
    except (KeyError, TypeError, ValueError, AttributeError):
        log.warning("Skipping unreadable session record %.80r", entry, exc_info=True)
        return None


def _entry_id(entry) -> str | None:
    if isinstance(entry, dict) and "id" in entry:
        return str(entry["id"])
    return None


def _upsert(entries: list, session: Session) -> None:
    """Replace the record with ``session.id`` or append one. Other records stay as they are."""
    for i, entry in enumerate(entries):
        if _entry_id(entry) == session.id:
            entries[i] = session.to_dict()
            return
    entries.append(session.to_dict())


def _stamp(session: Session, updated_at: int | None = None) -> None:
    stamp = now_ms() if updated_at is None else updated_at
    session.updated_at = max(stamp, session.created_at)
