"""Project context: open workspace files rendered as text for the prompt."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

log = logging.getLogger(__name__)


def build_workspace_context(root: Path | None, files: Iterable[Path]) -> str:
    """Render the open files that live under ``root``.

    Each file becomes ``File: <relative path>\\nContent:\\n<text>\\n``. Files
    outside the workspace are skipped, as are files that can't be read.
    Returns "" when there is no workspace or nothing to include.
    """
    if root is None:
        return ""
    root = root.resolve()

    parts: list[str] = []
    for path in files:
        path = path.resolve()
        try:
            relative = path.relative_to(root)
        except ValueError:
            log.debug("Skipping %s: outside workspace %s", path, root)
            continue
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            log.warning("Cannot read %s for context", path, exc_info=True)
            continue
        parts.append(f"File: {relative.as_posix()}\nContent:\n{text}\n")

    return "\n".join(parts)


class WorkspaceContext:
    """Callable context provider bound to a workspace root and a set of open files."""

    def __init__(self, root: Path | None, files: Iterable[Path] = ()) -> None:
        self.root = root
        self.files = list(files)

    def __call__(self) -> str:
        return build_workspace_context(self.root, self.files)
